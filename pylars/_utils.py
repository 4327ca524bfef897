"""
Utility functions.
"""

import numpy as np

from .exceptions import DimensionMismatch


def check_array(X, name='X', dtype=np.float64):
    """Validate array input."""
    X = np.array(X, dtype=dtype)
    if X.ndim != 2:
        raise DimensionMismatch(f"{name} must be 2-dimensional")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', dtype=np.float64):
    """Validate vector input."""
    y = np.array(y, dtype=dtype)
    if y.ndim != 1:
        raise DimensionMismatch(f"{name} must be 1-dimensional")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    return y


def check_consistent_length(X, y, X_name='X', y_name='y'):
    """Check that X has one row per entry of y."""
    if X.shape[0] != y.shape[0]:
        raise DimensionMismatch(
            f"{X_name} has {X.shape[0]} rows but {y_name} has {y.shape[0]} entries"
        )


def check_column_update(X, indices, new_columns):
    """
    Validate a column replacement against the current design matrix.
    
    Parameters
    ----------
    X : ndarray, shape (n, p)
        Current design matrix
    indices : sequence of int
        Column positions to replace
    new_columns : array_like, shape (n, len(indices)) or (n,)
        Replacement columns (a 1-D array is accepted for a single index)
    
    Returns
    -------
    (indices, new_columns) as validated ndarrays
    """
    n, p = X.shape
    indices = np.asarray(indices)
    if indices.ndim == 0:
        indices = indices.reshape(1)
    if indices.ndim != 1:
        raise DimensionMismatch("Column indices must be 1-dimensional")
    if indices.size and not np.issubdtype(indices.dtype, np.integer):
        raise DimensionMismatch("Column indices must be integers")
    indices = indices.astype(np.intp)
    
    if np.any(indices < 0) or np.any(indices >= p):
        raise DimensionMismatch(
            f"Column indices must lie in [0, {p}), got {indices.tolist()}"
        )
    if np.unique(indices).size != indices.size:
        raise DimensionMismatch("Column indices must be distinct")
    
    new_columns = np.array(new_columns, dtype=np.float64)
    if new_columns.ndim == 1 and indices.size == 1:
        new_columns = new_columns[:, np.newaxis]
    if new_columns.shape != (n, indices.size):
        raise DimensionMismatch(
            f"Replacement columns must have shape ({n}, {indices.size}), "
            f"got {new_columns.shape}"
        )
    if not np.all(np.isfinite(new_columns)):
        raise ValueError("Replacement columns contain NaN or Inf")
    
    return indices, new_columns
