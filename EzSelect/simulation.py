"""
Simulation of response spectra consistent with the target spectrum
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.stats import norm, qmc, skew

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatedSpectrumSet:
    """Best set of simulated logarithmic spectra (num_records x num_periods) and its trial score."""

    sample: np.ndarray
    trial_index: int
    trial_error: float


def random_uniform(num_dimensions, num_samples, sampling_type, rng):
    """
    Details
    -------
    Used to perform sampling based on Monte Carlo Simulation or Latin Hypercube Sampling

    References
    ----------
    https://docs.scipy.org/doc/scipy/reference/generated/scipy.stats.qmc.LatinHypercube.html#scipy.stats.qmc.LatinHypercube

    Parameters
    ----------
    num_dimensions : int
        number of dimensions
    num_samples : int
        number of samples
    sampling_type : str
        type of sampling.
        Monte Carlo Sampling: 'MCS'
        Latin Hypercube Sampling: 'LHS'
    rng : numpy.random.Generator
        random number generator which drives the sampling

    Returns
    -------
    sample : numpy.ndarray (num_samples x num_dimensions)
        Array which contains randomly generated numbers between 0 and 1
    """

    if sampling_type == 'MCS':
        # Do Monte Carlo Sampling without any grid
        sample = rng.uniform(size=(num_samples, num_dimensions))
    elif sampling_type == 'LHS':
        # A Latin hypercube sample generates n points in [0, 1)^d.
        # Each univariate marginal distribution is stratified, placing exactly one point in each possible grid.
        sampler = qmc.LatinHypercube(d=num_dimensions, seed=rng)
        sample = sampler.random(n=num_samples)
    else:
        raise ValueError(f"Unknown sampling type '{sampling_type}', use 'LHS' or 'MCS'")

    return sample


def random_multivariate_normal(mu, cov, num_samples, sampling_type, rng):
    """
    Details
    -------
    Used to generate multivariate correlated normal samples

    References
    ----------
    Yang, T. Y., Moehle, J., Stojadinovic, B., & Der Kiureghian, A. (2009).
    Seismic Performance Evaluation of Facilities: Methodology and Implementation.
    In Journal of Structural Engineering (Vol. 135, Issue 10, pp. 1146–1154).
    American Society of Civil Engineers (ASCE). https://doi.org/10.1061/(asce)0733-9445(2009)135:10(1146)

    Parameters
    ----------
    mu : numpy.ndarray (1-D)
        Mean value vector
    cov : numpy.ndarray (2-D)
        Covariance matrix, may be singular
    num_samples : int
        number of samples
    sampling_type : str
        Monte Carlo Sampling: 'MCS'
        Latin Hypercube Sampling: 'LHS'
    rng : numpy.random.Generator
        random number generator

    Returns
    -------
    z : numpy.ndarray (num_samples x num_dimensions)
        Array which contains the correlated normal samples
    """

    mu = np.asarray(mu, dtype='float64').ravel()
    num_dimensions = len(mu)
    eigen_values, eigen_vectors = np.linalg.eigh(cov)
    # Round-off can leave tiny negative eigenvalues for singular covariance matrices
    dy = np.diag(np.sqrt(np.clip(eigen_values, 0, None)))
    u = random_uniform(num_dimensions, num_samples, sampling_type, rng)
    u = np.clip(u, 1e-12, 1 - 1e-12)
    # Compute standard random numbers
    u = norm(loc=0, scale=1).ppf(u)
    z = (eigen_vectors @ dy @ u.T).T + mu

    return z


def trial_error(sample, target, error_weights):
    """
    Details
    -------
    Combines the deviations of the sample mean, standard deviation and skewness
    from the target into a single score.

    Parameters
    ----------
    sample : numpy.ndarray (2-D)
        Simulated logarithmic spectra
    target : EzSelect.target.TargetSpectrum
        Target spectrum
    error_weights : list or tuple
        Weights for error in mean and standard deviation. The skewness error is weighted
        by 0.1 times their sum, a third (skewness) entry does not change the score.

    Returns
    -------
    dev_total : float
    """

    sigma_ln = target.sigma_ln
    # how close is the mean of the spectra to the target
    dev_mean = np.mean(sample, axis=0) - target.mu_ln
    # how close is the standard deviation of the spectra to the target
    dev_sig = np.std(sample, axis=0) - sigma_ln
    # how close is the skewness of the spectra to zero (i.e., the target)
    dispersed = sigma_ln > 0
    if np.any(dispersed) and sample.shape[0] > 2:
        dev_skew = np.nan_to_num(skew(sample[:, dispersed], axis=0))
    else:
        dev_skew = np.zeros(1)

    weight_mean, weight_std = error_weights[0], error_weights[1]

    return float(weight_mean * np.sum(dev_mean ** 2) + weight_std * np.sum(dev_sig ** 2)
                 + 0.1 * (weight_mean + weight_std) * np.sum(dev_skew ** 2))


def simulate_spectra(target, num_records, num_simulations=20, seed_value=None, error_weights=(1, 2, 0.3),
                     sampling_type='LHS'):
    """
    Details
    -------
    Generates simulated response spectra with best matches to the target values.
    num_simulations sets are simulated and the best one in terms of matching
    means, variances and skewness is returned.

    Parameters
    ----------
    target : EzSelect.target.TargetSpectrum
        Target spectrum
    num_records : int
        Number of spectra in each set
    num_simulations : int, optional
        Number of simulated sets. The default is 20.
    seed_value : int, optional
        For repeatability. None or 0 for a random seed. The default is None.
    error_weights : list or tuple, optional
        Weights for error in mean, standard deviation and skewness, see trial_error.
        The default is (1, 2, 0.3).
    sampling_type : str, optional
        'LHS' or 'MCS'. The default is 'LHS'.

    Returns
    -------
    simulated : SimulatedSpectrumSet
    """

    rng = np.random.default_rng(seed_value if seed_value else None)

    best_sample = None
    best_index = -1
    best_error = np.inf
    for j in range(num_simulations):
        sample = random_multivariate_normal(target.mu_ln, target.cov, num_records, sampling_type, rng)
        dev_total = trial_error(sample, target, error_weights)
        if dev_total < best_error or best_sample is None:
            best_sample, best_index, best_error = sample, j, dev_total

    best_sample.flags.writeable = False
    logger.info('Simulated %d sets of %d spectra, set %d is the closest to the target.',
                num_simulations, num_records, best_index)

    return SimulatedSpectrumSet(sample=best_sample, trial_index=best_index, trial_error=best_error)
