"""
Ground motion directionality: conversion of RotD50 predictions to RotD100
"""

import numpy as np
from scipy import interpolate

# Table 1 of Shahi and Baker (2014)
_PERIODS = np.array([0.01, 0.02, 0.03, 0.05, 0.075, 0.1, 0.15, 0.2, 0.25, 0.3, 0.4, 0.5, 0.75, 1, 1.5, 2, 3, 4, 5,
                     7.5, 10])
_MU_RATIOS = np.array([1.192438059, 1.191246217, 1.187677833, 1.186490749, 1.187677833, 1.187677833, 1.199614194,
                       1.205627285, 1.216526905, 1.218962394, 1.228753204, 1.228753204, 1.237384651, 1.241102379,
                       1.242344102, 1.243587068, 1.247323431, 1.259859239, 1.264908769, 1.285310084, 1.294338819])
_SIGMA = 0.08


def sb_2014_ratios(periods):
    """
    Details
    -------
    Computes Sa_RotD100/Sa_RotD50 ratios.

    References
    ----------
    Shahi, S. K., and Baker, J. W. (2014). "NGA-West2 models for ground-
    motion directionality." Earthquake Spectra, 30(3), 1285-1300.

    Parameters
    ----------
    periods : float or numpy.ndarray
        Period(s) of interest (sec), within 0.01-10 sec

    Returns
    -------
    ratio : float or numpy.ndarray
         geometric mean of Sa_RotD100/Sa_RotD50
    sigma : float or numpy.ndarray
        standard deviation of log(Sa_RotD100/Sa_RotD50)
    """

    log_periods = np.log(np.clip(periods, _PERIODS[0], _PERIODS[-1]))
    mu_ratio = interpolate.interp1d(np.log(_PERIODS), _MU_RATIOS)(log_periods)
    sigma = np.full_like(mu_ratio, _SIGMA, dtype='float64')

    return mu_ratio, sigma


class RotD100Model:
    """
    Details
    -------
    Wraps a ground motion model predicting RotD50 so that it predicts RotD100:
    the logarithmic mean is shifted by the log ratio and the ratio dispersion is
    added to the standard deviation.

    Parameters
    ----------
    gmm : EzSelect.gmm.GroundMotionModel
        RotD50 ground motion model
    """

    spectrum_definition = 'RotD100'

    def __init__(self, gmm):
        self.gmm = gmm

    def evaluate(self, rupture, period):
        mu, sigma = self.gmm.evaluate(rupture, period)
        return to_rotd100(mu, sigma, period)


def to_rotd100(mu, sigma, period):
    """Converts the logarithmic mean and standard deviation of RotD50 at period to RotD100."""
    ratio, ratio_sigma = sb_2014_ratios(period)
    return float(mu + np.log(ratio)), float(np.sqrt(sigma ** 2 + ratio_sigma ** 2))
