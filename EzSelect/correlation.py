"""
Correlation models for logarithmic spectral accelerations at two periods
"""

import numpy as np


def baker_jayaram_correlation(period1, period2):
    """
    Details
    -------
    Valid for T = 0.01-10sec

    References
    ----------
    Baker JW, Jayaram N. Correlation of Spectral Acceleration Values from NGA Ground Motion Models.
    Earthquake Spectra 2008; 24(1): 299–317. DOI: 10.1193/1.2857544.

    Parameters
    ----------
    period1 : float
        First period
    period2 : float
        Second period

    Returns
    -------
    rho: float
         Predicted correlation coefficient
    """

    period_min = min(period1, period2)
    period_max = max(period1, period2)

    if period_min == period_max:
        return 1.0

    c1 = 1.0 - np.cos(np.pi / 2.0 - np.log(period_max / max(period_min, 0.109)) * 0.366)

    if period_max < 0.2:
        c2 = 1.0 - 0.105 * (1.0 - 1.0 / (1.0 + np.exp(100.0 * period_max - 5.0))) * (period_max - period_min) / (period_max - 0.0099)
    else:
        c2 = 0

    if period_max < 0.109:
        c3 = c2
    else:
        c3 = c1

    c4 = c1 + 0.5 * (np.sqrt(c3) - c3) * (1.0 + np.cos(np.pi * period_min / 0.109))

    if period_max <= 0.109:
        rho = c2
    elif period_min > 0.109:
        rho = c1
    elif period_max < 0.2:
        rho = min(c2, c4)
    else:
        rho = c4

    return float(rho)


CORRELATION_MODELS = {
    'baker_jayaram': baker_jayaram_correlation,
}


def get_correlation_function(name):
    """Returns the correlation model registered under name."""
    try:
        return CORRELATION_MODELS[name]
    except KeyError:
        raise KeyError(f'{name} is not a valid correlation model, use one of: {", ".join(CORRELATION_MODELS)}')


def correlation_matrix(periods, correlation=baker_jayaram_correlation):
    """
    Details
    -------
    Builds the symmetric matrix of correlation coefficients between all period pairs.

    Parameters
    ----------
    periods : numpy.ndarray (1-D)
        Periods of the target spectrum
    correlation : callable, optional
        Correlation model with the signature correlation(period1, period2) -> rho.
        The default is baker_jayaram_correlation.

    Returns
    -------
    rho : numpy.ndarray (2-D)
        Correlation coefficients, rho[i, j] = correlation(periods[i], periods[j])
    """

    num_periods = len(periods)
    rho = np.eye(num_periods)
    for i in range(num_periods):
        for j in range(i + 1, num_periods):
            rho[i, j] = rho[j, i] = correlation(periods[i], periods[j])

    return rho


def selection_correlation(sample_small):
    """
    Details
    -------
    Empirical correlation of the logarithmic spectral accelerations of the selected
    records between all period pairs. Periods at which the selection has no dispersion
    (e.g. the conditioning period) have undefined correlations, returned as NaN.

    Parameters
    ----------
    sample_small : numpy.ndarray (2-D)
        Logarithmic spectra of the selected records, one row per record

    Returns
    -------
    rho : numpy.ndarray (2-D)
    """

    sample_small = np.asarray(sample_small, dtype='float64')
    deviations = sample_small - np.mean(sample_small, axis=0)
    std = np.sqrt(np.mean(deviations ** 2, axis=0))
    # constant columns up to round-off
    std[std <= 1e-10 * np.maximum(np.abs(np.mean(sample_small, axis=0)), 1.0)] = np.nan
    rho = (deviations.T @ deviations) / sample_small.shape[0] / np.outer(std, std)

    return np.clip(rho, -1.0, 1.0)


def correlation_error(sample_small, periods, correlation=baker_jayaram_correlation):
    """Maximum absolute difference between the selection's correlations and the model, NaNs ignored."""
    difference = np.abs(selection_correlation(sample_small) - correlation_matrix(periods, correlation))
    return float(np.nanmax(difference)) if np.any(np.isfinite(difference)) else 0.0
