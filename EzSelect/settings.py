"""
Options of the ground motion selection
"""

from dataclasses import dataclass, fields
from typing import Optional, Tuple

from .exceptions import PreconditionError

SAMPLING_TYPES = ('LHS', 'MCS')
METRICS = ('sse', 'ks')
DEFAULT_MAX_SCALE_FACTOR = 10


@dataclass(frozen=True)
class SelectionSettings:
    """
    Details
    -------
    Selection options, validated on construction.

    Parameters
    ----------
    num_records : int, optional
        Number of ground motions to be selected. The default is 30.
    is_scaled : int, optional
        1 to allow amplitude scaling, 0 otherwise. The default is 1.
    max_scale_factor : float, optional
        The maximum allowable scale factor, 10 is used if None. The default is 4.
    tolerance : float, optional
        Tolerable percent error to skip optimization. The default is 10.
    metric : str, optional
        Optimization metric, 'sse' or 'ks'. The default is 'sse'.
    penalty : float, optional
        > 0 to penalize selected spectra more than 3 sigma from the target at any period.
        The default is 0.
    error_weights : tuple, optional
        Weights for error in mean and standard deviation, an optional skewness entry is
        accepted (see EzSelect.simulation.trial_error). The default is (1, 2, 0.3).
    num_greedy_loops : int, optional
        Number of loops of optimization to perform. The default is 2.
    num_simulations : int, optional
        Number of simulated sets of response spectra. The default is 20.
    seed_value : int, optional
        For repeatability, None or 0 randomizes the selection. The default is None.
    sampling_type : str, optional
        'LHS' or 'MCS'. The default is 'LHS'.
    parallel : bool, optional
        True to evaluate the candidates concurrently during optimization. The default is False.
    max_run_time : float, optional
        Wall-clock limit of the optimization in seconds. The default is None.
    """

    num_records: int = 30
    is_scaled: int = 1
    max_scale_factor: Optional[float] = 4
    tolerance: float = 10
    metric: str = 'sse'
    penalty: float = 0
    error_weights: Tuple[float, ...] = (1, 2, 0.3)
    num_greedy_loops: int = 2
    num_simulations: int = 20
    seed_value: Optional[int] = None
    sampling_type: str = 'LHS'
    parallel: bool = False
    max_run_time: Optional[float] = None

    def __post_init__(self):
        if self.max_scale_factor is None:
            object.__setattr__(self, 'max_scale_factor', DEFAULT_MAX_SCALE_FACTOR)
        object.__setattr__(self, 'error_weights', tuple(float(w) for w in self.error_weights))

        if int(self.num_records) < 1:
            raise PreconditionError('At least one record must be selected')
        if self.max_scale_factor < 1:
            raise PreconditionError('The maximum allowable scale factor must be at least 1')
        if self.tolerance < 0:
            raise PreconditionError('Tolerance must be non-negative')
        if self.metric not in METRICS:
            raise PreconditionError(f"Unknown optimization metric '{self.metric}', use one of: {', '.join(METRICS)}")
        if self.penalty < 0:
            raise PreconditionError('Penalty must be non-negative')
        if len(self.error_weights) not in (2, 3) or any(w < 0 for w in self.error_weights):
            raise PreconditionError('Two or three non-negative error weights are required (mean, std[, skew])')
        if self.num_greedy_loops < 0:
            raise PreconditionError('Number of greedy loops must be non-negative')
        if self.num_simulations < 1:
            raise PreconditionError('At least one set of spectra must be simulated')
        if self.sampling_type not in SAMPLING_TYPES:
            raise PreconditionError(f"Unknown sampling type '{self.sampling_type}', use 'LHS' or 'MCS'")
        if self.max_run_time is not None and self.max_run_time <= 0:
            raise PreconditionError('Maximum run time must be positive')

    @classmethod
    def option_names(cls):
        return [f.name for f in fields(cls)]
