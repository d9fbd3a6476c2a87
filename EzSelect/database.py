"""
Candidate ground motion records: spectra, identifiers and screening
"""

import logging
from dataclasses import dataclass, field, replace

import numpy as np
from scipy import interpolate
from scipy.io import loadmat

from .exceptions import PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidatePool:
    """
    Details
    -------
    Logarithmic response spectra of the admissible records, one row per record,
    one column per period, with the record identifiers of the original database.

    Parameters
    ----------
    periods : numpy.ndarray (1-D)
        Periods at which the spectra are defined [sec]
    sa_ln : numpy.ndarray (2-D)
        Logarithmic spectral accelerations
    record_ids : numpy.ndarray (1-D)
        Identifiers of the records in the original database
    metadata : dict, optional
        Arrays with one entry per record, e.g. 'magnitude', 'vs30', 'rjb', 'mechanism',
        'filename1', 'filename2'
    spectrum_definition : str, optional
        Horizontal component of the spectra, 'RotD50', 'RotD100', 'GeoMean' or 'Arbitrary'.
        The default is 'RotD50'.
    """

    periods: np.ndarray
    sa_ln: np.ndarray
    record_ids: np.ndarray
    metadata: dict = field(default_factory=dict)
    spectrum_definition: str = 'RotD50'

    def __post_init__(self):
        if self.sa_ln.ndim != 2 or self.sa_ln.shape[1] != len(self.periods):
            raise PreconditionError('Spectra must have one column per period')
        if len(self.record_ids) != self.sa_ln.shape[0]:
            raise PreconditionError('There must be one record id per spectrum')
        for key, value in self.metadata.items():
            if len(value) != self.sa_ln.shape[0]:
                raise PreconditionError(f"Metadata '{key}' must have one entry per record")

    @classmethod
    def from_spectra(cls, periods, sa, record_ids=None, spectrum_definition='RotD50', **metadata):
        """
        Details
        -------
        Creates the pool from spectral accelerations in linear scale.

        Parameters
        ----------
        periods : list or numpy.ndarray
            Periods at which the spectra are defined [sec]
        sa : numpy.ndarray (2-D)
            Spectral accelerations [g]
        record_ids : list or numpy.ndarray, optional
            Record identifiers, row numbers are used if None.
        spectrum_definition : str, optional
            Horizontal component of the spectra. The default is 'RotD50'.
        **metadata
            Per-record arrays (magnitude, vs30, rjb, mechanism, filename1, filename2)

        Returns
        -------
        pool : CandidatePool
        """

        periods = np.asarray(periods, dtype='float64').ravel()
        sa = np.atleast_2d(np.asarray(sa, dtype='float64'))
        if np.any(np.isnan(sa)):
            raise PreconditionError('NaNs found in input response spectra')
        if np.any(sa <= 0):
            raise PreconditionError('Spectral accelerations must be positive')
        if np.any(np.diff(periods) <= 0):
            order = np.argsort(periods)
            periods, sa = periods[order], sa[:, order]
        if record_ids is None:
            record_ids = np.arange(sa.shape[0])
        metadata = {key: np.asarray(value) for key, value in metadata.items() if value is not None}

        return cls(periods=periods, sa_ln=np.log(sa), record_ids=np.asarray(record_ids), metadata=metadata,
                   spectrum_definition=spectrum_definition)

    @property
    def size(self):
        return self.sa_ln.shape[0]

    def subset(self, index):
        """Returns the pool restricted to the records at index (boolean mask or positions)."""
        return replace(self, sa_ln=self.sa_ln[index], record_ids=self.record_ids[index],
                       metadata={key: value[index] for key, value in self.metadata.items()})

    def at_periods(self, periods):
        """
        Details
        -------
        Spectra of the pool at the given periods. Values at periods which are not part
        of the pool are interpolated linearly in log-log space.

        Parameters
        ----------
        periods : numpy.ndarray (1-D)
            Target periods [sec]

        Returns
        -------
        sample_big : numpy.ndarray (2-D)
            Logarithmic spectral accelerations of the pool at periods
        """

        periods = np.asarray(periods, dtype='float64')
        if periods.min() < self.periods.min() or periods.max() > self.periods.max():
            raise PreconditionError(f'Target periods must lie within the periods of the record database '
                                    f'[{self.periods.min()}, {self.periods.max()}]')
        if len(periods) == len(self.periods) and np.array_equal(periods, self.periods):
            return self.sa_ln.copy()

        f = interpolate.interp1d(np.log(self.periods), self.sa_ln, axis=1)
        sample_big = f(np.log(periods))
        # keep exact values where the periods match
        idx = np.searchsorted(self.periods, periods)
        idx = np.clip(idx, 0, len(self.periods) - 1)
        exact = self.periods[idx] == periods
        sample_big[:, exact] = self.sa_ln[:, idx[exact]]

        return sample_big

    def screen(self, mag_limits=None, vs30_limits=None, rjb_limits=None, mech_limits=None):
        """
        Details
        -------
        Searches the pool and does the filtering. Records outside any of the given
        limits are removed, all others are kept.

        Parameters
        ----------
        mag_limits : list, optional
            The limiting values on magnitude.
        vs30_limits : list, optional
            The limiting values on Vs30.
        rjb_limits : list, optional
            The limiting values on Rjb.
        mech_limits : list, optional
            The allowed fault mechanisms.

        Returns
        -------
        pool : CandidatePool
            Records satisfying all criteria
        """

        allowed = np.ones(self.size, dtype=bool)
        for key, limits in (('magnitude', mag_limits), ('vs30', vs30_limits), ('rjb', rjb_limits)):
            if limits is None:
                continue
            if key not in self.metadata:
                raise PreconditionError(f"The record database does not contain '{key}' to screen")
            values = self.metadata[key]
            allowed &= (values >= min(limits)) & (values <= max(limits))

        if mech_limits is not None:
            if 'mechanism' not in self.metadata:
                raise PreconditionError("The record database does not contain 'mechanism' to screen")
            allowed &= np.isin(self.metadata['mechanism'], mech_limits)

        logger.info('Number of allowed ground motions = %d', int(allowed.sum()))

        return self.subset(allowed)


def load_database(path, num_components=2, spectrum_definition='RotD50', id_key='NGA_num'):
    """
    Details
    -------
    Loads a record database saved in the NGA-West2 meta data format (.mat).

    Parameters
    ----------
    path : str
        Path to the .mat file
    num_components : int, optional
        1 for single-component selection (both horizontal components are candidates),
        2 for two-component selection. The default is 2.
    spectrum_definition : str, optional
        The spectra definition of horizontal component for two-component selection,
        'GeoMean', 'RotD50', 'RotD100'. The default is 'RotD50'.
    id_key : str, optional
        Key of the record identifiers. Row numbers are used if missing.
        The default is 'NGA_num'.

    Returns
    -------
    pool : CandidatePool
    """

    database = loadmat(path, squeeze_me=True)

    def get(key):
        value = database.get(key)
        return None if value is None else np.atleast_1d(value)

    def stack(key1, key2):
        if get(key1) is None or get(key2) is None:
            return None
        return np.append(get(key1), get(key2))

    record_ids = get(id_key)
    if record_ids is None:
        record_ids = np.arange(np.atleast_2d(database['Sa_1']).shape[0])

    if num_components == 1:  # sa_known is from arbitrary ground motion component
        sa_known = np.append(np.atleast_2d(database['Sa_1']), np.atleast_2d(database['Sa_2']), axis=0)
        metadata = {key: stack(name, name) for key, name in (('magnitude', 'magnitude'), ('vs30', 'soil_Vs30'),
                                                             ('rjb', 'Rjb'), ('mechanism', 'mechanism'))}
        metadata['filename1'] = stack('Filename_1', 'Filename_2')
        spectrum_definition = 'Arbitrary'
        record_ids = np.append(record_ids, record_ids)

    elif num_components == 2:
        if spectrum_definition == 'GeoMean':
            sa_1, sa_2 = np.atleast_2d(database['Sa_1']), np.atleast_2d(database['Sa_2'])
            sa_known = np.sqrt(np.abs(sa_1 * sa_2))
            sa_known[(sa_1 <= 0) | (sa_2 <= 0)] = -999
        elif spectrum_definition in ('RotD50', 'RotD100'):
            sa_known = np.atleast_2d(database['Sa_' + spectrum_definition])
        else:
            raise ValueError(f'Unexpected Sa definition {spectrum_definition}')
        metadata = {'magnitude': get('magnitude'), 'vs30': get('soil_Vs30'), 'rjb': get('Rjb'),
                    'mechanism': get('mechanism'), 'filename1': get('Filename_1'), 'filename2': get('Filename_2')}

    else:
        raise ValueError('Selection can only be performed for one or two components at the moment')

    # Sa cannot be negative or zero, invalid entries are marked with -999
    valid = np.all(sa_known > 0, axis=1) & ~np.any(np.isnan(sa_known), axis=1)
    metadata = {key: value[valid] for key, value in metadata.items() if value is not None}
    logger.info('Loaded %d records from %s (%d with invalid spectra removed).',
                int(valid.sum()), path, int((~valid).sum()))

    return CandidatePool.from_spectra(get('Periods'), sa_known[valid], record_ids[valid], spectrum_definition,
                                      **metadata)
