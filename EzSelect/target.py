"""
Target spectrum (conditional or unconditional) for ground motion record selection
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .correlation import baker_jayaram_correlation, correlation_matrix
from .exceptions import PreconditionError, NumericalDegeneracy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuptureScenario:
    """
    Details
    -------
    Earthquake scenario for which the target spectrum is computed.

    Parameters
    ----------
    mag : float
        Earthquake magnitude
    rjb : float
        Closest distance to surface projection of the fault rupture (km)
    vs30 : float
        Average shear wave velocity in the top 30 m of the soil (m/s)
    rrup : float, optional
        Closest distance to the fault rupture (km). Estimated from rjb if None.
    z1pt0 : float, optional
        Basin depth, depth to Vs=1 km/sec from the site (m). Estimated from vs30 if None.
    mechanism : int, optional
        0 for unspecified fault, 1 for strike-slip fault, 2 for normal fault, 3 for reverse fault
    region : int, optional
        0 for global, 1 for California, 2 for Japan, 3 for China or Turkey, 4 for Italy
    Tstar : float, optional
        Conditioning period [sec]. None if the scenario is not used for conditional selection.
    epsilon : float, optional
        Number of standard deviations of ln(Sa(Tstar)) above the median prediction
    params : dict, optional
        Additional ground motion model inputs (e.g. 'dip', 'ztor', 'hypo_depth', 'z2pt5')
    """

    mag: float
    rjb: float
    vs30: float
    rrup: Optional[float] = None
    z1pt0: Optional[float] = None
    mechanism: int = 0
    region: int = 0
    Tstar: Optional[float] = None
    epsilon: float = 0.0
    params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TargetSpectrum:
    """
    Details
    -------
    Logarithmic mean and covariance of the spectral accelerations to match.
    Arrays are read-only once the target is built.
    """

    periods: np.ndarray
    mu_ln: np.ndarray
    cov: np.ndarray
    Tstar: Optional[float] = None
    Tstar_index: Optional[int] = None
    epsilon: Optional[float] = None
    use_variance: bool = True

    def __post_init__(self):
        for name in ('periods', 'mu_ln', 'cov'):
            value = np.array(getattr(self, name), dtype='float64')
            value.flags.writeable = False
            object.__setattr__(self, name, value)

    @property
    def sigma_ln(self):
        """Logarithmic standard deviations of the target, sqrt of the covariance diagonal."""
        return np.sqrt(np.clip(np.diagonal(self.cov), 0, None))

    @property
    def is_conditioned(self):
        return self.Tstar_index is not None


def build_period_grid(periods, Tstar=None):
    """
    Details
    -------
    Sorts and de-duplicates the periods of the target spectrum and inserts the
    conditioning period when it is missing.

    Parameters
    ----------
    periods : list or numpy.ndarray
        Periods at which the target spectrum is computed [sec]
    Tstar : float, optional
        Conditioning period [sec]. The default is None.

    Returns
    -------
    periods : numpy.ndarray
        Ascending unique periods
    """

    periods = np.asarray(periods, dtype='float64').ravel()
    if periods.size == 0:
        raise PreconditionError('The period grid of the target spectrum is empty')

    if Tstar is not None:
        # drop grid points that only differ from Tstar by round-off
        periods = periods[~np.isclose(periods, Tstar, rtol=1e-9, atol=0.0)]
        periods = np.append(periods, float(Tstar))

    if np.any(~np.isfinite(periods)) or np.any(periods <= 0):
        raise PreconditionError('Periods of the target spectrum must be positive')

    return np.unique(periods)


def condition_covariance(cov, index=None):
    """
    Details
    -------
    Conditional covariance of a multivariate normal distribution given the variable at index
    (Schur complement). Without conditioning variable the covariance is returned unchanged.

    Parameters
    ----------
    cov : numpy.ndarray (2-D)
        Unconditional covariance matrix
    index : int, optional
        Index of the conditioning variable. The default is None.

    Returns
    -------
    cov_cond : numpy.ndarray (2-D)
        Conditional covariance matrix
    """

    cov = np.array(cov, dtype='float64')
    if index is None:
        return cov

    var_star = cov[index, index]
    if not var_star > 0:
        raise NumericalDegeneracy(f'Variance of the conditioning variable is not positive ({var_star})')

    cov12 = cov[:, index]
    cov_cond = cov - np.outer(cov12, cov12) / var_star
    # The conditioning variable is deterministic
    cov_cond[index, :] = 0.0
    cov_cond[:, index] = 0.0

    return 0.5 * (cov_cond + cov_cond.T)


def create_target_spectrum(gmm, rupture, periods, is_conditioned=True, use_variance=True,
                           correlation=baker_jayaram_correlation, epsilon=None):
    """
    Details
    -------
    Creates the target spectrum (conditional or unconditional).

    References
    ----------
    Baker JW. Conditional Mean Spectrum: Tool for Ground-Motion Selection.
    Journal of Structural Engineering 2011; 137(3): 322–331.
    DOI: 10.1061/(ASCE)ST.1943-541X.0000215.

    Parameters
    ----------
    gmm : EzSelect.gmm.GroundMotionModel
        Ground motion model providing the logarithmic mean and standard deviation of Sa
    rupture : RuptureScenario
        Earthquake scenario
    periods : list or numpy.ndarray
        Periods at which the target spectrum is computed [sec]
    is_conditioned : bool, optional
        True for conditional spectrum at rupture.Tstar, False for unconditional spectrum.
        The default is True.
    use_variance : bool, optional
        False to set the target covariance to zero. The default is True.
    correlation : callable, optional
        Correlation model. The default is baker_jayaram_correlation.
    epsilon : float, optional
        Overrides rupture.epsilon. The default is None.

    Returns
    -------
    target : TargetSpectrum
    """

    if is_conditioned and rupture.Tstar is None:
        raise PreconditionError('Conditional target spectrum requires a conditioning period (Tstar)')

    Tstar = float(rupture.Tstar) if is_conditioned else None
    periods = build_period_grid(periods, Tstar)
    num_periods = len(periods)

    # gmpe spectral values
    mu_lnSaT = np.zeros(num_periods)
    sigma_lnSaT = np.zeros(num_periods)
    for i in range(num_periods):
        mu_lnSaT[i], sigma_lnSaT[i] = gmm.evaluate(rupture, periods[i])

    bad = ~np.isfinite(sigma_lnSaT) | (sigma_lnSaT <= 0)
    if np.any(bad):
        raise PreconditionError(f'Ground motion model returned non-positive sigma at T = {periods[bad].tolist()}')
    if np.any(~np.isfinite(mu_lnSaT)):
        raise PreconditionError('Ground motion model returned a non-finite mean')

    rho = correlation_matrix(periods, correlation)
    cov = rho * np.outer(sigma_lnSaT, sigma_lnSaT)

    if is_conditioned:
        Tstar_index = int(np.where(periods == Tstar)[0][0])
        if epsilon is None:
            epsilon = rupture.epsilon
        epsilon = float(epsilon)
        # Get the value of the ln(CMS), conditioned on Tstar
        mu_ln = mu_lnSaT + sigma_lnSaT * epsilon * rho[:, Tstar_index]
        cov = condition_covariance(cov, Tstar_index)
    else:
        Tstar_index = None
        epsilon = None
        mu_ln = mu_lnSaT

    # over-write covariance matrix with zeros if no variance is desired in the ground motion selection
    if not use_variance:
        cov = np.zeros((num_periods, num_periods))

    target = TargetSpectrum(periods=periods, mu_ln=mu_ln, cov=cov, Tstar=Tstar, Tstar_index=Tstar_index,
                            epsilon=epsilon, use_variance=bool(use_variance))
    if is_conditioned:
        logger.info('Conditional target spectrum is created for T* = %.3f s, epsilon = %.2f.', Tstar, epsilon)
    else:
        logger.info('Unconditional target spectrum is created.')

    return target


def back_calculate_epsilon(gmm, rupture, im_Tstar):
    """
    Details
    -------
    Epsilon of the scenario which yields the given spectral acceleration at rupture.Tstar.

    Parameters
    ----------
    gmm : EzSelect.gmm.GroundMotionModel
        Ground motion model
    rupture : RuptureScenario
        Earthquake scenario with the conditioning period
    im_Tstar : float
        Conditioning intensity measure level, Sa(Tstar) [g]

    Returns
    -------
    epsilon : float
    """

    if rupture.Tstar is None:
        raise PreconditionError('Epsilon can only be back-calculated for a conditioning period (Tstar)')
    if not im_Tstar > 0:
        raise PreconditionError('Conditioning intensity measure level must be positive')

    mu, sigma = gmm.evaluate(rupture, rupture.Tstar)
    if not sigma > 0:
        raise PreconditionError(f'Ground motion model returned non-positive sigma at T = {rupture.Tstar}')

    return float((np.log(im_Tstar) - mu) / sigma)
