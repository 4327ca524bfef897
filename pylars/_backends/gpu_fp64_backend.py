"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100. The minimum-ratio test of the path
solver is precision sensitive, so there is no FP32 GPU backend.
"""

import numpy as np
import warnings
from typing import Optional

from .base import GPUBackendFP64


class PyTorchBackendFP64(GPUBackendFP64):
    """
    PyTorch GPU backend with FP64 precision.
    
    Converts at entry (numpy -> torch) and exit (torch -> numpy) of
    every call; the path solver state itself stays in NumPy.
    """
    
    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch FP64 backend."""
        self.name = "pytorch_fp64"
        self.precision = "fp64"
        
        try:
            import torch
            self.torch = torch
        except ImportError:
            raise ImportError(
                "PyTorch required for GPU backend. "
                "Install: pip install torch"
            )
        
        # Device selection (no Metal for FP64)
        if device == 'mps':
            raise RuntimeError(
                "FP64 not supported on Apple Metal. "
                "Use the CPU backend."
            )
        
        if device is None:
            if torch.cuda.is_available():
                device = 'cuda'
            else:
                warnings.warn("No CUDA GPU available, using CPU")
                device = 'cpu'
        
        self.device = torch.device(device)
        
        # Warn if using FP64 on gimped hardware
        if self.device.type == 'cuda':
            from .precision_detector import detect_gpu_capabilities
            caps = detect_gpu_capabilities()
            if caps.fp64_support.value == 'gimped_fp64':
                warnings.warn(
                    f"Using FP64 on {caps.gpu_name} with gimped FP64 support. "
                    f"This will be ~{int(1/caps.fp64_throughput_ratio)}x slower than FP32.",
                    UserWarning
                )
    
    def _to_device(self, a: np.ndarray):
        return self.torch.from_numpy(np.ascontiguousarray(a, dtype=np.float64)).to(self.device)
    
    def _to_numpy(self, t) -> np.ndarray:
        return t.cpu().numpy()
    
    def crossprod(self, A: np.ndarray, B: np.ndarray) -> np.ndarray:
        """Cross product on device."""
        A_gpu = self._to_device(A)
        if A_gpu.ndim == 2:
            A_gpu = A_gpu.T
        return self._to_numpy(A_gpu @ self._to_device(B))
    
    def matvec(self, A: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Matrix-vector product on device."""
        return self._to_numpy(self._to_device(A) @ self._to_device(v))
    
    def solve_triangular(
        self,
        R: np.ndarray,
        b: np.ndarray,
        trans: bool = False
    ) -> np.ndarray:
        """Triangular solve on device."""
        torch = self.torch
        R_gpu = self._to_device(R)
        b_gpu = self._to_device(b)
        vector = b_gpu.ndim == 1
        if vector:
            b_gpu = b_gpu.unsqueeze(1)  # Make it (k, 1)
        
        if trans:
            x = torch.linalg.solve_triangular(R_gpu.T, b_gpu, upper=False)
        else:
            x = torch.linalg.solve_triangular(R_gpu, b_gpu, upper=True)
        
        if vector:
            x = x.squeeze(1)
        return self._to_numpy(x)
    
    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Dense solve on device."""
        torch = self.torch
        try:
            x = torch.linalg.solve(self._to_device(A), self._to_device(b))
        except RuntimeError as e:
            # torch reports singular systems as RuntimeError subclasses
            raise np.linalg.LinAlgError(f"Singular system: {e}") from e
        return self._to_numpy(x)
    
    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'gpu',
            'precision': 'fp64',
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
