"""
pylars: Least angle regression, LASSO and Elastic-Net regularization paths.

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .lars import lars, Lars
from .config import LarsConfig
from ._core.path_solver import PathSolver, SolverState
from .exceptions import (
    LarsError,
    DimensionMismatch,
    IllConditioned,
    InvalidConfiguration,
    PathConvergenceWarning,
)

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'lars',
    'Lars',
    'LarsConfig',
    'PathSolver',
    'SolverState',
    'LarsError',
    'DimensionMismatch',
    'IllConditioned',
    'InvalidConfiguration',
    'PathConvergenceWarning',
    'get_backend',
    'list_available_backends',
]
