from .database import CandidatePool, load_database
from .exceptions import ConvergenceNotice, EzSelectError, NoMatchWarning, NumericalDegeneracy, PreconditionError
from .settings import SelectionSettings
from .selection import ConditionalSpectrum
from .target import RuptureScenario, TargetSpectrum, create_target_spectrum
