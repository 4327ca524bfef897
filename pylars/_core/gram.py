"""
Cross-product cache.

Owns the design matrix, the response, the (optionally ridge-shifted) Gram
matrix X'X + ridge*I and the target correlations X'y.
"""

import logging
import numpy as np
from typing import Optional, Sequence

from .._utils import check_column_update, check_vector
from ..exceptions import DimensionMismatch

logger = logging.getLogger(__name__)


class GramCache:
    """
    Precomputed cross products of a dataset.
    
    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix. Taken over by the cache; pass a copy if the caller
        keeps using it.
    y : ndarray, shape (n,)
        Response vector
    ridge : float
        Ridge coefficient added to the Gram diagonal (0 disables it)
    compute_gram : bool
        Materialise the p x p Gram matrix. When False, cross products are
        computed from the columns of X on demand.
    backend : BackendBase, optional
        Computational backend
    """
    
    def __init__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        ridge: float = 0.0,
        compute_gram: bool = True,
        backend=None,
    ):
        if backend is None:
            from .._backends import get_backend
            backend = get_backend('cpu')
        
        self.X = X
        self.y = y
        self.ridge = float(ridge)
        self.compute_gram = compute_gram
        self.backend = backend
        
        self.gram: Optional[np.ndarray] = None
        self.xty: Optional[np.ndarray] = None
        self.compute_full()
    
    @property
    def n(self) -> int:
        return self.X.shape[0]
    
    @property
    def p(self) -> int:
        return self.X.shape[1]
    
    def compute_full(self) -> None:
        """Recompute Gram (if kept) and X'y from scratch. O(n p^2)."""
        if self.compute_gram:
            self.gram = self.backend.gram(self.X, ridge=self.ridge)
        self.compute_xty()
    
    def compute_xty(self) -> None:
        """Recompute the target correlations X'y."""
        self.xty = self.backend.crossprod(self.X, self.y)
    
    def update_columns(self, indices: Sequence[int], new_columns: np.ndarray) -> np.ndarray:
        """
        Replace columns of X and refresh only the affected cross products.
        
        Rows and columns of the Gram matrix belonging to ``indices`` are
        recomputed against all p columns (ridge re-added on their
        diagonal); the matching entries of X'y are recomputed.
        
        Parameters
        ----------
        indices : sequence of int
            Distinct column positions
        new_columns : array_like, shape (n, len(indices))
            Replacement columns
        
        Returns
        -------
        ndarray
            The validated column indices
        
        Raises
        ------
        DimensionMismatch
            On invalid indices or mismatched column shape (nothing is
            modified in that case)
        """
        indices, new_columns = check_column_update(self.X, indices, new_columns)
        if indices.size == 0:
            return indices
        
        self.X[:, indices] = new_columns
        
        if self.compute_gram:
            block = self.backend.crossprod(new_columns, self.X)  # k x p
            self.gram[indices, :] = block
            self.gram[:, indices] = block.T
            if self.ridge:
                self.gram[indices, indices] += self.ridge
        
        self.xty[indices] = self.backend.crossprod(new_columns, self.y)
        logger.debug("Updated %d column(s): %s", indices.size, indices.tolist())
        return indices
    
    def set_response(self, y: np.ndarray) -> None:
        """
        Replace the response vector.
        
        X'y is left untouched; call ``compute_xty`` to refresh it.
        """
        y = check_vector(y, name='y')
        if y.shape[0] != self.n:
            raise DimensionMismatch(
                f"y must have {self.n} entries, got {y.shape[0]}"
            )
        self.y = y
    
    def active_gram(self, active: np.ndarray) -> np.ndarray:
        """Ridge-shifted Gram matrix restricted to the ordered active set."""
        if self.compute_gram:
            return self.gram[np.ix_(active, active)]
        return self.backend.gram(self.X[:, active], ridge=self.ridge)
    
    def cross_products(self, index: int, active: np.ndarray) -> np.ndarray:
        """Inner products of column ``index`` with the active columns."""
        if self.compute_gram:
            return self.gram[active, index].copy()
        return self.backend.crossprod(self.X[:, active], self.X[:, index])
    
    def column_sq_norm(self, index: int) -> float:
        """Squared Euclidean norm of column ``index`` (no ridge)."""
        if self.compute_gram:
            return float(self.gram[index, index] - self.ridge)
        col = self.X[:, index]
        return float(self.backend.crossprod(col, col))
    
    def correlations(self, y_hat: np.ndarray, beta: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Current correlations ``X'y - X'y_hat``.
        
        With a ridge term the shrinkage ``ridge * beta`` is folded in, so
        active predictors keep equal absolute correlation on the
        Elastic-Net path.
        """
        corr = self.xty - self.backend.crossprod(self.X, y_hat)
        if self.ridge and beta is not None:
            corr = corr - self.ridge * beta
        return corr
    
    def direction_correlations(self, indices: np.ndarray, y_hat_direction: np.ndarray) -> np.ndarray:
        """Inner products of the listed columns with a prediction-space direction."""
        return self.backend.crossprod(self.X[:, indices], y_hat_direction)
    
    def prediction_direction(self, active: np.ndarray, beta_direction: np.ndarray) -> np.ndarray:
        """Map an active-coefficient direction to prediction space."""
        return self.backend.matvec(self.X[:, active], beta_direction)
