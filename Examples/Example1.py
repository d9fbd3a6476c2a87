####################################################
# Conditional Spectrum (CS) Based Record Selection #
####################################################

import logging
from time import time

import numpy as np

from EzSelect import ConditionalSpectrum, RuptureScenario, load_database
from EzSelect.gmm import OpenQuakeGMM, describe_gmpe
from EzSelect.utility import run_time

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s: %(message)s')
start_time = time()

# 1.) Load the record database (NGA-West2 meta data) and screen the candidates
pool = load_database('Meta_Data/NGA_W2.mat', num_components=2, spectrum_definition='RotD50')
pool = pool.screen(mag_limits=[5.5, 8], vs30_limits=[200, 400], rjb_limits=[0, 50])

# 2.) Initialize the ConditionalSpectrum object, check which parameters are required for the gmpe you are using.
describe_gmpe('BooreEtAl2014')
cs = ConditionalSpectrum(pool, OpenQuakeGMM('BooreEtAl2014'), output_directory='Outputs')

# 3.) Create target spectrum
rupture = RuptureScenario(mag=6.5, rjb=11, vs30=259, mechanism=1, region=1, Tstar=0.5, epsilon=1.9)
cs.create(rupture, periods=np.logspace(np.log10(0.1), np.log10(10), 30), is_conditioned=True, use_variance=1)

# 4.) Select the ground motions
cs.select(num_records=30, is_scaled=1, max_scale_factor=4, num_simulations=20, seed_value=1,
          error_weights=[1, 2, 0.3], num_greedy_loops=2, penalty=0, tolerance=10, metric='sse')

# 5.) Write the selected records and their scale factors
cs.write(filename='Output_File.dat')

# Calculate the total time passed
run_time(start_time)
