"""
CUDA device detection.

Provides device availability detection with graceful CPU fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class GPUInfo:
    """CUDA device information."""

    available: bool
    device_count: int
    device_id: int = 0
    device_name: Optional[str] = None
    memory_gb: Optional[float] = None
    cuda_version: Optional[str] = None
    compute_capability: Optional[tuple] = None
    error_message: Optional[str] = None


def detect_gpu(device_id: int = 0) -> GPUInfo:
    """
    Detect CUDA availability and the capabilities of one device.

    Attempts to import CuPy and query CUDA devices. Falls back gracefully
    to CPU-only mode if no device is usable or CuPy is not installed.

    Args:
        device_id: Ordinal of the device to describe

    Returns:
        GPUInfo with device details, or unavailable marker with error message

    Example:
        >>> gpu_info = detect_gpu()
        >>> if gpu_info.available:
        ...     print(f"GPU: {gpu_info.device_name}, {gpu_info.memory_gb:.1f} GB")
        ... else:
        ...     print(f"GPU unavailable: {gpu_info.error_message}")
    """
    try:
        import cupy as cp

        if not cp.cuda.is_available():
            logger.info("CUDA not available - accelerator backend disabled")
            return GPUInfo(
                available=False,
                device_count=0,
                device_id=device_id,
                error_message="CUDA runtime not available",
            )

        device_count = cp.cuda.runtime.getDeviceCount()
        if device_id >= device_count:
            logger.info(
                f"CUDA device {device_id} not present ({device_count} found) - "
                f"accelerator backend disabled"
            )
            return GPUInfo(
                available=False,
                device_count=device_count,
                device_id=device_id,
                error_message=f"CUDA device {device_id} not present",
            )

        device = cp.cuda.Device(device_id)
        mem_info = device.mem_info

        # "86" -> (8, 6), "120" -> (12, 0)
        cc_str = str(device.compute_capability)
        if len(cc_str) >= 2:
            compute_capability = (int(cc_str[:-1]), int(cc_str[-1]))
        else:
            compute_capability = (int(cc_str), 0)

        device_name = cp.cuda.runtime.getDeviceProperties(device_id)["name"].decode("utf-8")

        info = GPUInfo(
            available=True,
            device_count=device_count,
            device_id=device_id,
            device_name=device_name,
            memory_gb=mem_info[1] / 1024**3,
            cuda_version=str(cp.cuda.runtime.runtimeGetVersion()),
            compute_capability=compute_capability,
        )

        logger.info(
            f"GPU detected: {info.device_name} "
            f"({info.memory_gb:.1f} GB, "
            f"compute {info.compute_capability[0]}.{info.compute_capability[1]})"
        )

        return info

    except ImportError as e:
        logger.info(f"CuPy not installed - accelerator backend disabled: {e}")
        return GPUInfo(
            available=False,
            device_count=0,
            device_id=device_id,
            error_message="CuPy not installed",
        )

    except Exception as e:
        logger.warning(f"GPU detection failed - accelerator backend disabled: {e}")
        return GPUInfo(
            available=False,
            device_count=0,
            device_id=device_id,
            error_message=str(e),
        )


def check_gpu_memory(required_gb: float, device_id: int = 0) -> tuple[bool, Optional[float]]:
    """
    Check if a device has sufficient free memory.

    Args:
        required_gb: Required memory in gigabytes
        device_id: Device ordinal

    Returns:
        Tuple of (has_sufficient_memory, available_gb)
    """
    try:
        import cupy as cp

        if not cp.cuda.is_available():
            return False, None

        free_gb = cp.cuda.Device(device_id).mem_info[0] / 1024**3
        has_sufficient = free_gb >= required_gb

        if not has_sufficient:
            logger.warning(
                f"Insufficient GPU memory: {free_gb:.1f} GB available, "
                f"{required_gb:.1f} GB required"
            )

        return has_sufficient, free_gb

    except ImportError:
        return False, None
    except Exception as e:
        logger.warning(f"Failed to check GPU memory: {e}")
        return False, None


_gpu_info_cache: dict = {}


def get_gpu_info(device_id: int = 0) -> GPUInfo:
    """
    Get cached device information.

    Detects the device on first call and caches the result per device id.
    """
    if device_id not in _gpu_info_cache:
        _gpu_info_cache[device_id] = detect_gpu(device_id)
    return _gpu_info_cache[device_id]


def clear_gpu_cache():
    """Clear the device info cache, forcing re-detection on next get_gpu_info() call."""
    _gpu_info_cache.clear()
