"""
Backend selection and management.

The path solver calls a small dense linear-algebra interface
(cross products, matrix-vector products, triangular and dense solves).
It is served by NumPy/SciPy on the CPU or, optionally, by PyTorch on an
NVIDIA GPU in FP64.
"""

import warnings

from .base import BackendBase
from .precision_detector import detect_gpu_capabilities, GPUCapabilities

# Try importing CPU backend (always available)
try:
    from .cpu_fp64_backend import CPUBackendFP64
    CPU_AVAILABLE = True
except ImportError:
    CPU_AVAILABLE = False
    warnings.warn("CPU backend unavailable - installation error!")

# PyTorch is an optional extra
try:
    import torch  # noqa: F401
    from .gpu_fp64_backend import PyTorchBackendFP64
    PYTORCH_FP64_AVAILABLE = True
except ImportError:
    PYTORCH_FP64_AVAILABLE = False


def _cpu_backend() -> BackendBase:
    if not CPU_AVAILABLE:
        raise RuntimeError("CPU backend unavailable!")
    return CPUBackendFP64()


def _cuda_backend() -> BackendBase:
    if not PYTORCH_FP64_AVAILABLE:
        raise RuntimeError(
            "PyTorch backend unavailable.\n"
            "Install: pip install pylars[gpu]"
        )
    if detect_gpu_capabilities().gpu_type != 'cuda':
        raise ValueError(
            "No CUDA GPU detected (FP64 path following needs CUDA).\n"
            "Use backend='cpu'"
        )
    return PyTorchBackendFP64()


def get_backend(backend='cpu') -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str or BackendBase
        Backend selection:
        - 'cpu': NumPy/SciPy in FP64 (reference)
        - 'gpu' / 'pytorch': PyTorch CUDA in FP64
        - 'auto': the GPU if it runs FP64 at full rate, else the CPU
        - a BackendBase instance is returned unchanged

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> backend = get_backend('cpu')
    >>> solver = PathSolver(X, y, backend=get_backend('auto'))
    """
    if isinstance(backend, BackendBase):
        return backend

    if backend == 'cpu':
        return _cpu_backend()
    if backend in ('gpu', 'pytorch'):
        return _cuda_backend()
    if backend == 'auto':
        if PYTORCH_FP64_AVAILABLE and detect_gpu_capabilities().usable_for_fp64:
            return PyTorchBackendFP64()
        return _cpu_backend()

    raise ValueError(
        f"Unknown backend: '{backend}'\n"
        f"Valid options: 'auto', 'cpu', 'gpu', 'pytorch'"
    )


def list_available_backends() -> list:
    """Names accepted by get_backend on this machine."""
    backends = ['cpu'] if CPU_AVAILABLE else []
    if PYTORCH_FP64_AVAILABLE and detect_gpu_capabilities().gpu_type == 'cuda':
        backends.append('pytorch')
    return backends


def print_backend_info():
    """Print detected hardware and the backend 'auto' resolves to."""
    caps = detect_gpu_capabilities()

    print("pylars Backend Status")
    print("=" * 50)
    print()
    print(f"CPU (FP64):          {'yes' if CPU_AVAILABLE else 'no'}")
    print(f"PyTorch CUDA (FP64): {'yes' if PYTORCH_FP64_AVAILABLE else 'no'}")
    print()
    if caps.has_gpu:
        print(f"GPU: {caps.gpu_name} ({caps.gpu_type}, FP64 {caps.fp64_support.value})")
    else:
        print("GPU: none detected")

    try:
        print(f"Auto-selected backend: {get_backend('auto').name}")
    except (RuntimeError, ValueError, ImportError) as e:
        print(f"Auto-selected backend: unavailable ({e})")


__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'GPUCapabilities',
    'detect_gpu_capabilities',
    'CPU_AVAILABLE',
    'PYTORCH_FP64_AVAILABLE',
]


if __name__ == "__main__":
    print_backend_info()
