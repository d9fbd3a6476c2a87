"""
Greedy subset modification of the selected records
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from time import monotonic

import numpy as np
from numba import njit, prange

from .exceptions import ConvergenceNotice, PreconditionError
from .matching import admissible_scale_factors, compute_scale_factors
from .settings import METRICS

logger = logging.getLogger(__name__)


@dataclass
class OptimizationReport:
    """Outcome of the greedy optimization."""

    skipped: bool = False
    passes: int = 0
    substitutions: int = 0
    error_history: list = field(default_factory=list)
    median_error: float = np.nan
    std_error: float = np.nan
    converged: bool = False
    timed_out: bool = False


@njit
def _outside_count(value, mu, sigma):
    if sigma > 0.0 and (value > mu + 3.0 * sigma or value < mu - 3.0 * sigma):
        return 1
    return 0


@njit
def _swap_error_sse(sample_small, slot, new_row, mu_ln, sigma_ln, weight_mean, weight_std, penalty):
    """
    Sum of squared errors in mean and standard deviation of the selection with
    row slot replaced by new_row.
    """
    num_records, num_periods = sample_small.shape
    dev_total = 0.0
    num_outside = 0
    for k in range(num_periods):
        mean = 0.0
        for r in range(num_records):
            value = new_row[k] if r == slot else sample_small[r, k]
            mean += value
            num_outside += _outside_count(value, mu_ln[k], sigma_ln[k])
        mean /= num_records
        var = 0.0
        for r in range(num_records):
            value = new_row[k] if r == slot else sample_small[r, k]
            var += (value - mean) ** 2
        dev_mean = mean - mu_ln[k]
        dev_sig = math.sqrt(var / num_records) - sigma_ln[k]
        dev_total += weight_mean * dev_mean * dev_mean + weight_std * dev_sig * dev_sig

    return dev_total + penalty * num_outside


@njit
def _swap_error_ks(sample_small, slot, new_row, mu_ln, sigma_ln, weight_mean, weight_std, penalty):
    """
    Sum over periods of the Kolmogorov-Smirnov D statistic between the selection with
    row slot replaced by new_row and the target normal distribution.
    """
    num_records, num_periods = sample_small.shape
    column = np.empty(num_records)
    dev_total = 0.0
    num_outside = 0
    for k in range(num_periods):
        if sigma_ln[k] <= 0.0:
            continue
        for r in range(num_records):
            value = new_row[k] if r == slot else sample_small[r, k]
            column[r] = value
            num_outside += _outside_count(value, mu_ln[k], sigma_ln[k])
        column_sorted = np.sort(column)
        d_stat = 0.0
        for r in range(num_records):
            cdf = 0.5 * (1.0 + math.erf((column_sorted[r] - mu_ln[k]) / (sigma_ln[k] * math.sqrt(2.0))))
            d_plus = (r + 1) / num_records - cdf
            d_minus = cdf - r / num_records
            if d_plus > d_stat:
                d_stat = d_plus
            if d_minus > d_stat:
                d_stat = d_minus
        dev_total += d_stat

    return dev_total + penalty * num_outside


def _make_kernel(swap_error, parallel):
    def find_swap_errors(sample_small, slot, sample_big, log_scale, admissible, mu_ln, sigma_ln,
                         weight_mean, weight_std, penalty):
        num_candidates = sample_big.shape[0]
        errors = np.empty(num_candidates)
        for j in prange(num_candidates):
            if admissible[j]:
                errors[j] = swap_error(sample_small, slot, sample_big[j, :] + log_scale[j], mu_ln, sigma_ln,
                                       weight_mean, weight_std, penalty)
            else:
                errors[j] = np.inf
        return errors

    return njit(parallel=parallel)(find_swap_errors)


# Candidates of one slot are independent, the parallel kernels give the same errors as the serial ones
_KERNELS = {
    ('sse', False): _make_kernel(_swap_error_sse, False),
    ('sse', True): _make_kernel(_swap_error_sse, True),
    ('ks', False): _make_kernel(_swap_error_ks, False),
    ('ks', True): _make_kernel(_swap_error_ks, True),
}
_SWAP_ERRORS = {'sse': _swap_error_sse, 'ks': _swap_error_ks}


def _check_metric(metric, target):
    if metric not in METRICS:
        raise PreconditionError(f"Unknown optimization metric '{metric}', use one of: {', '.join(METRICS)}")
    if metric == 'ks' and not np.any(target.sigma_ln > 0):
        raise PreconditionError('The KS metric requires a target spectrum with variance')


def selection_error(sample_small, target, metric='sse', error_weights=(1, 2), penalty=0):
    """
    Details
    -------
    Aggregate error of a selection relative to the target spectrum.

    Parameters
    ----------
    sample_small : numpy.ndarray (2-D)
        Scaled logarithmic spectra of the selected records
    target : EzSelect.target.TargetSpectrum
        Target spectrum
    metric : str, optional
        'sse' for the weighted sum of squared errors in mean and standard deviation,
        'ks' for the sum of Kolmogorov-Smirnov D statistics. The default is 'sse'.
    error_weights : list or tuple, optional
        Weights for error in mean and standard deviation (used by 'sse').
        The default is (1, 2).
    penalty : float, optional
        Added for every spectral value beyond 3 sigma from the target. The default is 0.

    Returns
    -------
    error : float
    """

    _check_metric(metric, target)
    sample_small = np.ascontiguousarray(sample_small, dtype='float64')
    return _SWAP_ERRORS[metric](sample_small, 0, sample_small[0].copy(), target.mu_ln, target.sigma_ln,
                                float(error_weights[0]), float(error_weights[1]), float(penalty))


def max_percent_errors(sample_small, target):
    """
    Details
    -------
    Maximum (across periods) percent error of the selection in median and logarithmic
    standard deviation. The standard deviation is not checked at the conditioning period
    and at periods where the target has no variance.

    Parameters
    ----------
    sample_small : numpy.ndarray (2-D)
        Scaled logarithmic spectra of the selected records
    target : EzSelect.target.TargetSpectrum
        Target spectrum

    Returns
    -------
    median_error : float
    std_error : float
    """

    median_target = np.exp(target.mu_ln)
    median_error = np.max(np.abs(np.exp(np.mean(sample_small, axis=0)) - median_target) / median_target) * 100

    sigma_ln = target.sigma_ln
    mask = sigma_ln > 0
    if target.is_conditioned:
        mask[target.Tstar_index] = False
    if np.any(mask):
        std_error = np.max(np.abs(np.std(sample_small[:, mask], axis=0) - sigma_ln[mask]) / sigma_ln[mask]) * 100
    else:
        std_error = 0.0

    return float(median_error), float(std_error)


def greedy_optimize(state, target, sample_big, num_greedy_loops=2, metric='sse', error_weights=(1, 2),
                    penalty=0, is_scaled=True, max_scale_factor=4, tolerance=10, parallel=False,
                    max_run_time=None):
    """
    Details
    -------
    Greedy subset modification procedure. Each selected record is in turn replaced by the
    database record which reduces the aggregate error most; the selection is updated at
    once so that the following slots see the substitution. A pass without substitution
    stops the procedure.
    Candidates are scaled to the target mean, i.e. to the conditioning value when
    conditioned and by least squares to the target median spectrum otherwise, so the
    scale factors are the same for every slot (unlike the initial match, which fits
    each slot to its simulated spectrum).

    References
    ----------
    Jayaram, N., Lin, T., and Baker, J. W. (2011).
    A computationally efficient ground-motion selection algorithm for
    matching a target response spectrum mean and variance.
    Earthquake Spectra, 27(3), 797-815.

    Parameters
    ----------
    state : EzSelect.matching.SelectionState
        Initial selection, modified in place
    target : EzSelect.target.TargetSpectrum
        Target spectrum
    sample_big : numpy.ndarray (2-D)
        Logarithmic spectra of the candidate records at the target periods
    num_greedy_loops : int, optional
        Number of loops of optimization to perform. The default is 2.
    metric : str, optional
        'sse' or 'ks', see selection_error. The default is 'sse'.
    error_weights : list or tuple, optional
        Weights for error in mean and standard deviation. The default is (1, 2).
    penalty : float, optional
        > 0 to penalize selected spectra more than 3 sigma from the target at any period.
        The default is 0.
    is_scaled : bool, optional
        False to disable amplitude scaling. The default is True.
    max_scale_factor : float, optional
        The maximum allowable scale factor. The default is 4.
    tolerance : float, optional
        Tolerable percent error to skip optimization. The default is 10.
    parallel : bool, optional
        True to evaluate the candidates of a slot concurrently. The default is False.
    max_run_time : float, optional
        Wall-clock limit in seconds, checked before each slot. The default is None.

    Returns
    -------
    report : OptimizationReport
    """

    _check_metric(metric, target)
    report = OptimizationReport()
    report.median_error, report.std_error = max_percent_errors(state.sample_small, target)
    logger.info('Initial selection: max error in median = %.2f %%, max error in standard deviation = %.2f %%',
                report.median_error, report.std_error)

    if report.median_error <= tolerance and report.std_error <= tolerance:
        logger.info('Greedy optimization was skipped based on user input tolerance.')
        report.skipped = True
        report.converged = True
        return report

    sample_big = np.ascontiguousarray(sample_big, dtype='float64')
    sample_small = np.ascontiguousarray(state.sample_small, dtype='float64')
    mu_ln = np.ascontiguousarray(target.mu_ln)
    sigma_ln = np.ascontiguousarray(target.sigma_ln)
    weight_mean, weight_std, penalty = float(error_weights[0]), float(error_weights[1]), float(penalty)

    # The same scale factors apply to every slot
    scaling_factors = compute_scale_factors(sample_big, target.mu_ln, is_scaled, target.Tstar_index)
    log_scale = np.log(scaling_factors)
    in_bounds = admissible_scale_factors(scaling_factors, max_scale_factor) if is_scaled \
        else np.ones(len(scaling_factors), dtype=bool)

    find_swap_errors = _KERNELS[(metric, bool(parallel))]
    swap_error = _SWAP_ERRORS[metric]
    start = monotonic()
    report.error_history.append(selection_error(sample_small, target, metric, error_weights, penalty))

    for _ in range(num_greedy_loops):  # Number of passes
        substitutions = 0
        for i in range(state.num_records):
            if max_run_time is not None and monotonic() - start > max_run_time:
                report.timed_out = True
                break

            admissible = in_bounds.copy()
            admissible[state.rec_ids] = False
            errors = find_swap_errors(sample_small, i, sample_big, log_scale, admissible, mu_ln, sigma_ln,
                                      weight_mean, weight_std, penalty)
            current = swap_error(sample_small, i, sample_small[i].copy(), mu_ln, sigma_ln,
                                 weight_mean, weight_std, penalty)
            # argmin returns the lowest index among equal errors
            min_id = int(np.argmin(errors))
            if errors[min_id] < current:
                sample_small[i, :] = sample_big[min_id, :] + log_scale[min_id]
                state.substitute(i, min_id, scaling_factors[min_id], sample_small[i, :])
                substitutions += 1

        report.passes += 1
        report.substitutions += substitutions
        report.error_history.append(selection_error(sample_small, target, metric, error_weights, penalty))
        logger.info('Optimization pass %d: %d substitutions, error = %.5f',
                    report.passes, substitutions, report.error_history[-1])

        if report.timed_out:
            logger.warning('Greedy optimization stopped after %.1f seconds.', monotonic() - start)
            break
        if substitutions == 0:
            report.converged = True
            break

    report.median_error, report.std_error = max_percent_errors(state.sample_small, target)
    if report.median_error > tolerance or report.std_error > tolerance:
        msg = (f'Selection is outside the {tolerance} percent tolerance after optimization: '
               f'max error in median = {report.median_error:.2f} %, '
               f'max error in standard deviation = {report.std_error:.2f} %')
        logger.warning(msg)
        warnings.warn(msg, ConvergenceNotice)

    return report
