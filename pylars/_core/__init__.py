"""
Core algorithms (backend-agnostic).
"""

from .gram import GramCache
from .active_set import ActiveSet
from .cholesky import CholeskyFactor, givens_rotation
from .lasso_rule import LassoBoundaryRule
from .interpolate import interpolate_last
from .path_solver import (
    PathSolver,
    SolverState,
    Activate,
    Deactivate,
    PathEvent,
)

__all__ = [
    "GramCache",
    "ActiveSet",
    "CholeskyFactor",
    "givens_rotation",
    "LassoBoundaryRule",
    "interpolate_last",
    "PathSolver",
    "SolverState",
    "Activate",
    "Deactivate",
    "PathEvent",
]
