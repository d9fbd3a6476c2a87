"""
Conditional spectrum based ground motion record selection
"""

import logging
import os

import numpy as np
import pandas as pd

from .correlation import get_correlation_function
from .directionality import RotD100Model
from .exceptions import PreconditionError
from .matching import find_initial_matches
from .optimization import greedy_optimize, max_percent_errors
from .settings import SelectionSettings
from .simulation import simulate_spectra
from .target import back_calculate_epsilon, create_target_spectrum

logger = logging.getLogger(__name__)


class ConditionalSpectrum:
    """
    This class is used to
        1) Create target spectrum (conditional or unconditional)
        2) Select suitable ground motions from the candidate pool to match the target
        3) Write the selected records and their scale factors

    Parameters
    ----------
    pool : EzSelect.database.CandidatePool
        Candidate records
    gmm : EzSelect.gmm.GroundMotionModel
        Ground motion model used for the target spectrum
    output_directory : str, optional
        Output directory to create. The default is 'Outputs'.
    """

    def __init__(self, pool, gmm, output_directory='Outputs'):
        self.pool = pool
        self.gmm = gmm
        self.output_directory = output_directory
        self.target = None
        self.settings = None
        self.report = None

    def create(self, rupture, periods, is_conditioned=True, use_variance=1, correlation_model='baker_jayaram',
               im_Tstar=None):
        """
        Details
        -------
        Creates the target spectrum (conditional or unconditional).

        Parameters
        ----------
        rupture : EzSelect.target.RuptureScenario
            Earthquake scenario
        periods : list or numpy.ndarray
            Periods at which the target spectrum is computed [sec]
        is_conditioned : bool, optional
            True for conditional spectrum at rupture.Tstar. The default is True.
        use_variance : int, optional
            0 not to use variance in target spectrum, 1 to use variance in target spectrum.
            The default is 1.
        correlation_model : str, optional
            Correlation model to use. The default is 'baker_jayaram'.
        im_Tstar : float, optional
            Conditioning intensity measure level [g], overrides rupture.epsilon
            by the back-calculated epsilon. The default is None.

        Returns
        -------
        target : EzSelect.target.TargetSpectrum
        """

        correlation = get_correlation_function(correlation_model)
        gmm = self.gmm
        # Modify spectral targets if RotD100 values were specified for two-component selection
        if self.pool.spectrum_definition == 'RotD100' and getattr(gmm, 'spectrum_definition', 'RotD50') != 'RotD100':
            logger.info('Target spectrum is converted to RotD100 with the Shahi and Baker (2014) ratios.')
            gmm = RotD100Model(gmm)

        epsilon = None
        if is_conditioned and im_Tstar is not None:
            epsilon = back_calculate_epsilon(gmm, rupture, im_Tstar)
            logger.info('Epsilon back-calculated from Sa(T*) = %.3f g is %.3f', im_Tstar, epsilon)

        self.rupture = rupture
        self.target = create_target_spectrum(gmm, rupture, periods, is_conditioned, bool(use_variance),
                                             correlation, epsilon)
        return self.target

    def select(self, num_records=30, is_scaled=1, max_scale_factor=4, num_simulations=20, seed_value=None,
               error_weights=(1, 2, 0.3), num_greedy_loops=2, penalty=0, tolerance=10, metric='sse',
               sampling_type='LHS', parallel=False, max_run_time=None):
        """
        Details
        -------
        Perform the ground motion selection.

        References
        ----------
        Jayaram, N., Lin, T., and Baker, J. W. (2011).
        A computationally efficient ground-motion selection algorithm for
        matching a target response spectrum mean and variance.
        Earthquake Spectra, 27(3), 797-815.

        Parameters
        ----------
        See EzSelect.settings.SelectionSettings

        Returns
        -------
        selection : list
            (record id, scale factor) pairs of the selected records
        """

        if self.target is None:
            raise PreconditionError('Target spectrum is not created, call create() before select()')

        settings = SelectionSettings(num_records=num_records, is_scaled=is_scaled, max_scale_factor=max_scale_factor,
                                     tolerance=tolerance, metric=metric, penalty=penalty,
                                     error_weights=error_weights, num_greedy_loops=num_greedy_loops,
                                     num_simulations=num_simulations, seed_value=seed_value,
                                     sampling_type=sampling_type, parallel=parallel, max_run_time=max_run_time)
        target = self.target

        # Preconditions before any simulation
        if settings.num_records > self.pool.size:
            raise PreconditionError(f'There are not enough records ({self.pool.size}) to select '
                                    f'{settings.num_records} ground motions, please broaden your selection criteria')
        if settings.metric == 'ks' and not target.use_variance:
            raise PreconditionError('The KS metric requires a target spectrum with variance')
        sample_big = self.pool.at_periods(target.periods)

        # Simulate response spectra
        self.simulated = simulate_spectra(target, settings.num_records, settings.num_simulations,
                                          settings.seed_value, settings.error_weights, settings.sampling_type)

        # Find best matches to the simulated spectra from ground-motion database
        self.initial_state = find_initial_matches(self.simulated, sample_big, target, bool(settings.is_scaled),
                                                  settings.max_scale_factor)

        # Apply greedy subset modification procedure
        state = self.initial_state.copy()
        self.report = greedy_optimize(state, target, sample_big, settings.num_greedy_loops, settings.metric,
                                      settings.error_weights[:2], settings.penalty, bool(settings.is_scaled),
                                      settings.max_scale_factor, settings.tolerance, settings.parallel,
                                      settings.max_run_time)

        self.settings = settings
        self.state = state
        self.rec_ids = self.pool.record_ids[state.rec_ids]
        self.rec_scale_factors = state.scale_factors.copy()
        self.selection = state.pairs(self.pool.record_ids)
        self.unmatched = list(state.unmatched)
        self.sample_small = state.sample_small

        median_error, std_error = max_percent_errors(state.sample_small, target)
        logger.info('Ground motion selection is finished.')
        logger.info('For T ∈ [%.2f - %.2f]', target.periods[0], target.periods[-1])
        logger.info('Max error in median = %.2f %%', median_error)
        logger.info('Max error in standard deviation = %.2f %%', std_error)
        if median_error <= settings.tolerance and std_error <= settings.tolerance:
            logger.info('The errors are within the target %s percent %%', settings.tolerance)
        if self.unmatched:
            logger.warning('Slots filled outside the scale factor limits: %s', self.unmatched)

        return self.selection

    def write(self, filename='Output_File.dat', delimiter=','):
        """
        Details
        -------
        Writes the selected records and their scale factors into the output directory.

        Parameters
        ----------
        filename : str, optional
            Name of the output file. The default is 'Output_File.dat'.
        delimiter : str, optional
            Column delimiter. The default is ','.

        Returns
        -------
        path : str
            Path of the written file
        """

        if self.report is None:
            raise PreconditionError('There is no selection to write, call select() first')

        rec_idx = self.state.rec_ids
        data = {'Record Number': np.arange(1, len(rec_idx) + 1),
                'Record ID': self.rec_ids,
                'Scale Factor': np.round(self.rec_scale_factors, 6)}
        for column, key in (('File Name H1', 'filename1'), ('File Name H2', 'filename2')):
            if key in self.pool.metadata:
                data[column] = self.pool.metadata[key][rec_idx]

        os.makedirs(self.output_directory, exist_ok=True)
        path = os.path.join(self.output_directory, filename)
        pd.DataFrame(data).to_csv(path, sep=delimiter, index=False)
        logger.info('Selected records are written to %s', path)

        return path
