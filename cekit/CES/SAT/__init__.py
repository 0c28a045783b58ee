from .encoding import ConstraintSet, Encoding, build_constraints
from .solver import SatSolver, SearchHandle
from .search import (
    DeadlockReport,
    FiringSet,
    Search,
    deadlock_report,
    enumerate_florets,
    find_firing_components,
    start_search,
)

__all__ = [
    "ConstraintSet",
    "Encoding",
    "build_constraints",
    "SatSolver",
    "SearchHandle",
    "DeadlockReport",
    "FiringSet",
    "Search",
    "deadlock_report",
    "enumerate_florets",
    "find_firing_components",
    "start_search",
]
