##########################################################
# Unconditional Spectrum Based Record Selection (KS fit) #
##########################################################

import logging
from time import time

import numpy as np

from EzSelect import ConditionalSpectrum, RuptureScenario, load_database
from EzSelect.gmm import OpenQuakeGMM
from EzSelect.utility import run_time

logging.basicConfig(level=logging.INFO)
start_time = time()

# 1.) Single-component selection, both horizontal components are candidates
pool = load_database('Meta_Data/NGA_W2.mat', num_components=1)
pool = pool.screen(mag_limits=[6, 7.5], mech_limits=[1, 3])

# 2.) Create the unconditional target spectrum
cs = ConditionalSpectrum(pool, OpenQuakeGMM('ChiouYoungs2014'), output_directory='Outputs_KS')
rupture = RuptureScenario(mag=7.0, rjb=20, vs30=400, mechanism=3, params={'z2pt5': 1.5})
cs.create(rupture, periods=np.logspace(np.log10(0.05), np.log10(5), 25), is_conditioned=False)

# 3.) Select the ground motions by Kolmogorov-Smirnov fit, penalize records beyond 3 sigma
cs.select(num_records=20, max_scale_factor=3, seed_value=5, metric='ks', penalty=0.1, num_greedy_loops=4,
          sampling_type='MCS', parallel=True, max_run_time=600)

# 4.) Write the selected records and their scale factors
cs.write(filename='Output_File.csv', delimiter=',')

run_time(start_time)
