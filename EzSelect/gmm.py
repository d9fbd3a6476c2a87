"""
Ground motion models providing logarithmic mean and standard deviation of spectral accelerations
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from openquake.hazardlib import gsim, imt
from openquake.hazardlib.contexts import simple_cmaker

logger = logging.getLogger(__name__)

# Representative rake angles of the fault mechanisms
MECHANISM_RAKE = {0: 0.0, 1: 0.0, 2: -90.0, 3: 90.0}


class GroundMotionModel(ABC):
    """
    Details
    -------
    Capability used to build target spectra. evaluate(rupture, period) must be
    deterministic and return the logarithmic mean and the total logarithmic
    standard deviation of Sa(period) for the rupture scenario.
    """

    @abstractmethod
    def evaluate(self, rupture, period):
        """Returns (mu_ln, sigma_ln) of Sa(period) for rupture."""


class OpenQuakeGMM(GroundMotionModel):
    """
    Details
    -------
    Ground motion model backed by a GSIM of the OpenQuake hazard library.

    Parameters
    ----------
    gmpe : str, optional
        GMPE model (see OpenQuake library).
        The default is 'BooreEtAl2014'.

    Attributes
    ----------
    spectrum_definition : str
        Horizontal component predicted by the GSIM, e.g. 'RotD50'
    """

    def __init__(self, gmpe='BooreEtAl2014'):
        try:  # this is smth like self.bgmpe = gsim.boore_2014.BooreEtAl2014()
            self.bgmpe = gsim.get_available_gsims()[gmpe]()
            self.gmpe = gmpe
            self.spectrum_definition = self.bgmpe.DEFINED_FOR_INTENSITY_MEASURE_COMPONENT.name
        except KeyError:
            logger.error('%s is not a valid gmpe name', gmpe)
            raise

    def evaluate(self, rupture, period):
        cmaker = simple_cmaker([self.bgmpe], [imt.SA(period).string], mags=['%.2f' % rupture.mag])
        ctx = cmaker.new_ctx(1)
        for key, value in context_parameters(rupture).items():
            if key in ctx.dtype.names:
                ctx[key] = value
        mean, sig, _, _ = cmaker.get_mean_stds([ctx])

        return float(mean[0, 0, 0]), float(sig[0, 0, 0])


def context_parameters(rupture):
    """
    Details
    -------
    Sets the parameters for the computation of a ground motion model. If
    not defined by the user in rupture.params, most parameters (rake, dip, hypocentral depth,
    fault width, ztor, rx, ry0, rrup, z1pt0, z2pt5) are defined according to the
    relationships included in Kaklamanos et al. 2011.

    References
    ----------
    Kaklamanos J, Baise LG, Boore DM. (2011) Estimating unknown input parameters
    when implementing the NGA ground-motion prediction equations in engineering
    practice. Earthquake Spectra 27: 1219-1235.
    https://doi.org/10.1193/1.3650372.

    Parameters
    ----------
    rupture : EzSelect.target.RuptureScenario
        Earthquake scenario

    Returns
    -------
    params : dict
        Rupture, site and distance parameters by their OpenQuake names
    """

    extra = dict(rupture.params)
    mag = rupture.mag
    rake = extra.pop('rake', MECHANISM_RAKE.get(rupture.mechanism, 0.0))
    strike_slip = (-45 <= rake <= 45) or (rake >= 135) or (rake <= -135)

    # Hypocentral depth
    if 'hypo_depth' in extra:
        hypo_depth = extra.pop('hypo_depth')
    elif strike_slip:
        hypo_depth = 5.63 + 0.68 * mag
    else:
        hypo_depth = 11.24 - 0.2 * mag

    # Fault dip
    if 'dip' in extra:
        dip = extra.pop('dip')
    elif strike_slip:
        dip = 90
    elif rake > 0:
        dip = 40
    else:
        dip = 50

    # Rupture width and depth to top of coseismic rupture (km)
    if strike_slip:
        width = 10.0 ** (-0.76 + 0.27 * mag)
    elif rake > 0:
        width = 10.0 ** (-1.61 + 0.41 * mag)
    else:
        width = 10.0 ** (-1.14 + 0.35 * mag)
    source_vertical_width = width * np.sin(np.radians(dip))
    ztor = max(hypo_depth - 0.6 * source_vertical_width, 0)
    width = extra.pop('width', width)
    ztor = extra.pop('ztor', ztor)

    # Site on the footwall side unless stated otherwise
    azimuth = extra.pop('azimuth', -50)
    rjb = rupture.rjb
    if rjb == 0:
        rx = 0.5 * width * np.cos(np.radians(dip))
    else:
        rx = rjb * np.sin(np.radians(azimuth))
    rx = extra.pop('rx', rx)

    if azimuth in (90, -90):
        ry0 = 0
    else:
        ry0 = np.abs(rx / np.tan(np.radians(azimuth)))

    if rupture.rrup is not None:
        rrup = rupture.rrup
    else:
        rrup = np.sqrt(np.square(rjb) + np.square(ztor))

    # Basin depths from Chiou and Youngs (2014) and Campbell and Bozorgnia (2014)
    vs30 = rupture.vs30
    if rupture.z1pt0 is not None:
        z1pt0 = rupture.z1pt0
    else:
        z1pt0 = np.exp(-7.15 / 4 * np.log((vs30 ** 4 + 570.94 ** 4) / (1360 ** 4 + 570.94 ** 4)))
    z2pt5 = extra.pop('z2pt5', np.exp(7.089 - 1.144 * np.log(vs30)))

    params = {'mag': mag, 'rake': rake, 'dip': dip, 'hypo_depth': hypo_depth, 'width': width, 'ztor': ztor,
              'rjb': rjb, 'rrup': rrup, 'rx': rx, 'ry0': ry0, 'rhypo': np.sqrt(rrup ** 2 + hypo_depth ** 2),
              'repi': rjb, 'vs30': vs30, 'vs30measured': True, 'z1pt0': z1pt0, 'z2pt5': z2pt5}
    params.update(extra)

    return params


def describe_gmpe(gmpe):
    """
    Details
    -------
    Logs the attributes of a ground motion prediction equation (gmpe) in OpenQuake.

    Parameters
    ----------
    gmpe : str
        gmpe name for which attributes going to be checked

    Returns
    -------
    None.
    """

    try:
        oq_gmpe = gsim.get_available_gsims()[gmpe]()
    except KeyError:
        raise KeyError(f'{gmpe} is not a valid gmpe name')

    logger.info('GMPE name: %s', gmpe)
    logger.info('Supported intensity measure component: %s', oq_gmpe.DEFINED_FOR_INTENSITY_MEASURE_COMPONENT.name)
    logger.info('Supported standard deviation: %s', ', '.join(std for std in oq_gmpe.DEFINED_FOR_STANDARD_DEVIATION_TYPES))
    logger.info('Required distance parameters: %s', ', '.join(oq_gmpe.REQUIRES_DISTANCES))
    logger.info('Required rupture parameters: %s', ', '.join(oq_gmpe.REQUIRES_RUPTURE_PARAMETERS))
    logger.info('Required site parameters: %s', ', '.join(oq_gmpe.REQUIRES_SITES_PARAMETERS))
