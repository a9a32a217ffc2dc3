"""
Acceleration Module

This module provides the execution infrastructure behind the kernels:
- Parallel fan-out of CPU kernels over worker threads (parallel.py)
- Compute-device interface, CUDA device and compiled program cache (device.py)
- CUDA kernel sources (cuda_sources.py)
- CUDA device detection (hardware_detection.py)
"""

from .parallel import ParallelFanOut, split_range
from .device import ComputeDevice, CudaComputeDevice, KernelBinaryCache
from .hardware_detection import (
    GPUInfo,
    detect_gpu,
    get_gpu_info,
    check_gpu_memory,
    clear_gpu_cache,
)

__all__ = [
    # Parallel processing
    "ParallelFanOut",
    "split_range",
    # Devices
    "ComputeDevice",
    "CudaComputeDevice",
    "KernelBinaryCache",
    # GPU detection
    "GPUInfo",
    "detect_gpu",
    "get_gpu_info",
    "check_gpu_memory",
    "clear_gpu_cache",
]
