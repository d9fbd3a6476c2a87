"""
Initial selection: best matches from the record database to the simulated spectra
"""

import logging
import warnings
from dataclasses import dataclass, field

import numpy as np

from .exceptions import NoMatchWarning, PreconditionError

logger = logging.getLogger(__name__)


@dataclass
class SelectionState:
    """
    Details
    -------
    Working set of the selection, refined in place by the greedy optimization.

    Parameters
    ----------
    rec_ids : numpy.ndarray (1-D)
        Row indices of the selected records in the candidate pool, no duplicates
    scale_factors : numpy.ndarray (1-D)
        Scale factor of each selected record
    sample_small : numpy.ndarray (2-D)
        Scaled logarithmic spectra of the selected records
    unmatched : list
        Slots for which no candidate was found within the scale factor bounds
    """

    rec_ids: np.ndarray
    scale_factors: np.ndarray
    sample_small: np.ndarray
    unmatched: list = field(default_factory=list)

    @property
    def num_records(self):
        return len(self.rec_ids)

    def copy(self):
        return SelectionState(self.rec_ids.copy(), self.scale_factors.copy(), self.sample_small.copy(),
                              list(self.unmatched))

    def substitute(self, slot, index, scale_factor, spectrum):
        """Replaces the record in slot by the pool record at index."""
        self.rec_ids[slot] = index
        self.scale_factors[slot] = scale_factor
        self.sample_small[slot, :] = spectrum
        if slot in self.unmatched:
            self.unmatched.remove(slot)

    def pairs(self, record_ids):
        """Returns the selection as (record id, scale factor) pairs in slot order."""
        return [(record_ids[idx].item(), float(sf)) for idx, sf in zip(self.rec_ids, self.scale_factors)]


def compute_scale_factors(sample_big, reference_ln, is_scaled=True, Tstar_index=None):
    """
    Details
    -------
    Scale factors which bring the candidate spectra closest to a reference spectrum.
    For conditional selection all records are scaled to the reference value at the conditioning
    period, otherwise the factor minimizes the squared error in linear space.

    Parameters
    ----------
    sample_big : numpy.ndarray (2-D)
        Logarithmic spectra of the candidate records
    reference_ln : numpy.ndarray (1-D)
        Logarithmic reference spectrum
    is_scaled : bool, optional
        False to disable amplitude scaling. The default is True.
    Tstar_index : int, optional
        Index of the conditioning period. The default is None.

    Returns
    -------
    scaling_factors : numpy.ndarray (1-D)
    """

    if not is_scaled:
        return np.ones(sample_big.shape[0])

    if Tstar_index is not None:
        # using conditioning IML
        return np.exp(reference_ln[Tstar_index] - sample_big[:, Tstar_index])

    # using error minimization
    sa_big = np.exp(sample_big)
    return np.sum(sa_big * np.exp(reference_ln), axis=1) / np.sum(sa_big ** 2, axis=1)


def admissible_scale_factors(scaling_factors, max_scale_factor):
    """Mask of the scale factors within [1 / max_scale_factor, max_scale_factor]."""
    return (scaling_factors >= 1 / max_scale_factor) & (scaling_factors <= max_scale_factor)


def find_initial_matches(simulated, sample_big, target, is_scaled=True, max_scale_factor=4):
    """
    Details
    -------
    Greedily finds one record from the database for each simulated spectrum. A record
    can only be used once; records which need a scale factor outside the bounds are not
    considered.

    References
    ----------
    Jayaram, N., Lin, T., and Baker, J. W. (2011).
    A computationally efficient ground-motion selection algorithm for
    matching a target response spectrum mean and variance.
    Earthquake Spectra, 27(3), 797-815.

    Parameters
    ----------
    simulated : EzSelect.simulation.SimulatedSpectrumSet
        Simulated spectra to match, one row per record to select
    sample_big : numpy.ndarray (2-D)
        Logarithmic spectra of the candidate records at the target periods
    target : EzSelect.target.TargetSpectrum
        Target spectrum
    is_scaled : bool, optional
        False to disable amplitude scaling. The default is True.
    max_scale_factor : float, optional
        The maximum allowable scale factor. The default is 4.

    Returns
    -------
    state : SelectionState
    """

    sim_spec = simulated.sample
    num_records = sim_spec.shape[0]
    len_big = sample_big.shape[0]
    if num_records > len_big:
        raise PreconditionError(f'There are not enough records ({len_big}) to select {num_records} ground motions, '
                                f'please broaden your selection criteria')

    rec_id = np.full(num_records, -1, dtype=int)
    final_scale_factors = np.ones(num_records)
    sample_small = np.zeros((num_records, sample_big.shape[1]))
    used = np.zeros(len_big, dtype=bool)
    unmatched = []

    for i in range(num_records):
        reference = target.mu_ln if target.is_conditioned else sim_spec[i, :]
        scaling_factors = compute_scale_factors(sample_big, reference, is_scaled, target.Tstar_index)

        mask = ~used
        if is_scaled:
            mask &= admissible_scale_factors(scaling_factors, max_scale_factor)

        error = np.full(len_big, np.inf)
        error[mask] = np.sum((sample_big[mask, :] + np.log(scaling_factors[mask])[:, None] - sim_spec[i, :]) ** 2,
                             axis=1)

        if not np.any(np.isfinite(error)):
            # fall back to the closest unused record with its scale factor held at the bounds
            unmatched.append(i)
            scaling_factors = np.clip(scaling_factors, 1 / max_scale_factor, max_scale_factor)
            error[~used] = np.sum((sample_big[~used, :] + np.log(scaling_factors[~used])[:, None]
                                   - sim_spec[i, :]) ** 2, axis=1)
            msg = f'No good matches found for simulated spectrum {i} within the scale factor limits'
            logger.warning(msg)
            warnings.warn(msg, NoMatchWarning)

        rec_id[i] = int(np.argmin(error))
        used[rec_id[i]] = True
        final_scale_factors[i] = scaling_factors[rec_id[i]]
        # Save the selected spectra
        sample_small[i, :] = sample_big[rec_id[i], :] + np.log(final_scale_factors[i])

    logger.info('Initial selection of %d records is finished.', num_records)

    return SelectionState(rec_ids=rec_id, scale_factors=final_scale_factors, sample_small=sample_small,
                          unmatched=unmatched)
