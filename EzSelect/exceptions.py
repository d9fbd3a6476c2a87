"""
Exceptions and warnings raised during ground motion record selection
"""


class EzSelectError(Exception):
    """Base class for the errors raised by EzSelect."""


class PreconditionError(EzSelectError, ValueError):
    """
    Details
    -------
    Raised before any simulation takes place when the inputs cannot produce a selection,
    e.g. the candidate pool is smaller than the number of records to select, the period
    grid is empty or the ground motion model returns a non-positive standard deviation.
    """


class NumericalDegeneracy(EzSelectError, ArithmeticError):
    """Raised when the covariance block of the conditioning variable is singular."""


class NoMatchWarning(UserWarning):
    """
    Details
    -------
    Issued when a simulated spectrum has no candidate record within the scale factor bounds.
    The selection continues with the best available record for that slot.
    """


class ConvergenceNotice(UserWarning):
    """Issued when the optimized selection is still outside the error tolerance."""
