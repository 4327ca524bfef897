"""
Error kinds raised by the path solver.

All errors are unrecoverable for the current run: the caller restarts
with different input or configuration.
"""

import numpy as np


class LarsError(Exception):
    """Base class for all pylars errors."""
    pass


class DimensionMismatch(LarsError, ValueError):
    """Dataset, response or column-update shapes are inconsistent.

    Raised at call time; no solver state is mutated.
    """
    pass


class IllConditioned(LarsError, np.linalg.LinAlgError):
    """Active predictors are (numerically) collinear.

    Raised when a Cholesky insertion radicand is not positive or the
    equiangular direction cannot be normalised.
    """
    pass


class InvalidConfiguration(LarsError, ValueError):
    """Configuration or internal-consistency failure."""
    pass


class PathConvergenceWarning(UserWarning):
    """Path following stopped before a natural termination point."""
    pass
