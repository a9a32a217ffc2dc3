"""
Tests for CUDA device detection.
"""

import pytest

from vision_kernels.acceleration.hardware_detection import (
    GPUInfo,
    detect_gpu,
    get_gpu_info,
    check_gpu_memory,
    clear_gpu_cache,
)


def test_detect_gpu():
    """Test GPU detection returns valid GPUInfo."""
    info = detect_gpu()

    assert isinstance(info, GPUInfo)
    assert isinstance(info.available, bool)
    assert isinstance(info.device_count, int)
    assert info.device_count >= 0
    assert info.device_id == 0

    if info.available:
        assert info.device_count > 0
        assert info.device_name is not None
        assert info.memory_gb is not None
        assert info.memory_gb > 0
        assert info.compute_capability is not None
        assert len(info.compute_capability) == 2
        assert info.error_message is None
        print(f"GPU detected: {info.device_name}, {info.memory_gb:.1f} GB")
    else:
        assert info.error_message is not None
        print(f"GPU not available: {info.error_message}")


def test_detect_missing_device():
    """Test that an ordinal past the last device is reported unavailable."""
    info = detect_gpu(device_id=1024)
    assert not info.available
    assert info.device_id == 1024
    assert info.error_message is not None


def test_get_gpu_info_caching():
    """Test that get_gpu_info() returns cached result."""
    clear_gpu_cache()

    info1 = get_gpu_info()
    info2 = get_gpu_info()

    # Should return same object (cached)
    assert info1 is info2

    clear_gpu_cache()


def test_check_gpu_memory():
    """Test GPU memory checking."""
    has_memory, available_gb = check_gpu_memory(1.0)

    assert isinstance(has_memory, bool)

    if has_memory:
        assert available_gb is not None
        assert available_gb >= 1.0


def test_check_gpu_memory_missing_device():
    """Test that a device ordinal past the last device reports no memory."""
    assert check_gpu_memory(0.0, device_id=1024) == (False, None)


@pytest.mark.skipif(
    not get_gpu_info().available,
    reason="GPU not available"
)
def test_gpu_compute_capability():
    """Test GPU compute capability is valid (requires GPU)."""
    info = get_gpu_info()

    assert info.compute_capability is not None
    major, minor = info.compute_capability
    assert major >= 3
    assert 0 <= minor <= 9
