"""
Abstract base classes for backends.

Defines the dense linear-algebra interface the path solver calls into.
"""

from abc import ABC, abstractmethod
import numpy as np


class BackendBase(ABC):
    """Abstract base class for all backends.

    Backends accept and return NumPy float64 arrays; any device-specific
    representation stays inside the backend.
    """
    
    @abstractmethod
    def crossprod(self, A: np.ndarray, B: np.ndarray) -> np.ndarray:
        """
        Cross product ``A.T @ B``.
        
        Parameters
        ----------
        A : ndarray, shape (n,) or (n, k)
        B : ndarray, shape (n,) or (n, m)
        
        Returns
        -------
        ndarray
            Scalar-shaped, vector or matrix product, following NumPy
            ``matmul`` rules for 1-D operands.
        """
        pass
    
    @abstractmethod
    def matvec(self, A: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Matrix-vector product ``A @ v``."""
        pass
    
    @abstractmethod
    def solve_triangular(
        self,
        R: np.ndarray,
        b: np.ndarray,
        trans: bool = False
    ) -> np.ndarray:
        """
        Solve ``R x = b`` (or ``R.T x = b`` when ``trans``) for upper
        triangular ``R``.
        """
        pass
    
    @abstractmethod
    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Solve the dense square system ``A x = b``.
        
        Raises
        ------
        numpy.linalg.LinAlgError
            If ``A`` is singular
        """
        pass
    
    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass
    
    def gram(self, X: np.ndarray, ridge: float = 0.0) -> np.ndarray:
        """Gram matrix ``X.T @ X + ridge * I``."""
        G = self.crossprod(X, X)
        if ridge:
            G[np.diag_indices_from(G)] += ridge
        return G
    
    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass


class GPUBackendFP64(BackendBase):
    """GPU backend base class for FP64."""
    pass
