"""
CPU backend using NumPy + SciPy.

This is the reference implementation every other backend is tested against.
"""

import numpy as np
from scipy.linalg import solve_triangular

from .base import CPUBackend


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy + SciPy.
    
    Reference implementation. Always uses FP64 precision.
    """
    
    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"
    
    def crossprod(self, A: np.ndarray, B: np.ndarray) -> np.ndarray:
        """Cross product via BLAS."""
        return np.asarray(A.T @ B, dtype=np.float64)
    
    def matvec(self, A: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Matrix-vector product via BLAS."""
        return np.asarray(A @ v, dtype=np.float64)
    
    def solve_triangular(
        self,
        R: np.ndarray,
        b: np.ndarray,
        trans: bool = False
    ) -> np.ndarray:
        """Triangular solve via LAPACK (dtrtrs)."""
        return solve_triangular(
            R, b,
            trans='T' if trans else 'N',
            lower=False,
            check_finite=False
        )
    
    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Dense solve via LAPACK (dgesv)."""
        return np.linalg.solve(A, b)
    
    def get_device_info(self) -> dict:
        """Get backend information."""
        import scipy
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}, SciPy {scipy.__version__}',
        }
