"""
GPU double-precision capability detection.

Path following runs in FP64 end to end (the minimum-ratio tests compare
nearly equal step lengths), so a GPU is only selected automatically when
it executes double precision at full rate.
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum


class PrecisionSupport(Enum):
    """FP64 support level for hardware."""
    NO_GPU = "no_gpu"
    NO_FP64 = "no_fp64"          # Apple Metal
    GIMPED_FP64 = "gimped_fp64"  # Consumer NVIDIA
    FULL_FP64 = "full_fp64"      # Data center NVIDIA


# (name fragment, FP64/FP32 throughput) checked in order against the
# upper-cased device name
_FULL_RATE_MODELS = ('A100', 'A800', 'H100', 'H800', 'H200', 'B200', 'V100', 'P100')
_REDUCED_RATE_MODELS = (
    ('RTX 50', 1 / 64),
    ('RTX 40', 1 / 64),
    ('RTX 30', 1 / 64),
    ('RTX 20', 1 / 32),
    ('GTX', 1 / 32),
)


@dataclass
class GPUCapabilities:
    """
    What the detected accelerator can do for the path solver.

    Attributes
    ----------
    has_gpu : bool
    gpu_name : str
        Device name, "CPU only" without a GPU
    gpu_type : str
        'cuda', 'metal' or 'none'
    fp64_support : PrecisionSupport
    fp64_throughput_ratio : float
        FP64 relative to FP32 throughput (1.0 on CPU)
    """
    has_gpu: bool
    gpu_name: str
    gpu_type: str
    fp64_support: PrecisionSupport
    fp64_throughput_ratio: float

    @property
    def usable_for_fp64(self) -> bool:
        """Whether path following on this device is worth it."""
        return self.has_gpu and self.fp64_support == PrecisionSupport.FULL_FP64


_CPU_ONLY = GPUCapabilities(
    has_gpu=False,
    gpu_name="CPU only",
    gpu_type="none",
    fp64_support=PrecisionSupport.NO_GPU,
    fp64_throughput_ratio=1.0,
)


def detect_gpu_capabilities() -> GPUCapabilities:
    """Probe PyTorch for a CUDA or Metal device (CUDA wins)."""
    try:
        import torch
    except ImportError:
        return _CPU_ONLY

    caps = _detect_cuda_capabilities(torch)
    if caps is None:
        caps = _detect_metal_capabilities(torch)
    return caps if caps is not None else _CPU_ONLY


def _detect_cuda_capabilities(torch) -> Optional[GPUCapabilities]:
    if not torch.cuda.is_available():
        return None

    gpu_name = torch.cuda.get_device_name(0)
    support, ratio = _classify_nvidia_gpu(gpu_name)
    return GPUCapabilities(
        has_gpu=True,
        gpu_name=gpu_name,
        gpu_type="cuda",
        fp64_support=support,
        fp64_throughput_ratio=ratio,
    )


def _detect_metal_capabilities(torch) -> Optional[GPUCapabilities]:
    mps = getattr(torch.backends, 'mps', None)
    if mps is None or not mps.is_available():
        return None

    return GPUCapabilities(
        has_gpu=True,
        gpu_name="Apple Metal GPU",
        gpu_type="metal",
        fp64_support=PrecisionSupport.NO_FP64,
        fp64_throughput_ratio=0.0,
    )


def _classify_nvidia_gpu(gpu_name: str) -> Tuple[PrecisionSupport, float]:
    """
    FP64 support of an NVIDIA device from its marketing name.

    Returns
    -------
    (support_level, throughput_ratio)
    """
    name = gpu_name.upper()

    if any(model in name for model in _FULL_RATE_MODELS):
        return PrecisionSupport.FULL_FP64, 0.5

    for fragment, ratio in _REDUCED_RATE_MODELS:
        if fragment in name:
            return PrecisionSupport.GIMPED_FP64, ratio

    warnings.warn(f"Unknown NVIDIA GPU '{gpu_name}'. Assuming reduced-rate FP64.")
    return PrecisionSupport.GIMPED_FP64, 1 / 32


def print_capabilities() -> None:
    """Print detected GPU capabilities (for debugging)."""
    caps = detect_gpu_capabilities()

    print("GPU Capability Detection")
    print("=" * 50)
    print(f"GPU Available: {caps.has_gpu}")
    print(f"GPU Name: {caps.gpu_name}")
    print(f"GPU Type: {caps.gpu_type}")
    print(f"FP64 Support: {caps.fp64_support.value}")
    print(f"FP64/FP32 Ratio: {caps.fp64_throughput_ratio:.4f}")
    print(f"Usable for path following: {caps.usable_for_fp64}")


if __name__ == "__main__":
    print_capabilities()
