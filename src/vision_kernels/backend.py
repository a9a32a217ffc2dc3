"""
Backend selection.

Builds an ``ImagingProgram`` on the CUDA backend when it is preferred and
usable, and on the CPU reference backend otherwise, falling back
gracefully when the device cannot be initialised.
"""

from __future__ import annotations

import logging
from typing import Optional

from .acceleration.device import ComputeDevice, CudaComputeDevice, KernelBinaryCache
from .acceleration.hardware_detection import check_gpu_memory, get_gpu_info
from .acceleration.parallel import ParallelFanOut
from .errors import BuildError
from .kernels.dispatch import CpuDispatcher, DeviceDispatcher
from .kernels.program import ImagingProgram
from .utils.config import AppConfig, load_config

logger = logging.getLogger(__name__)


def create_cpu_program(config: Optional[AppConfig] = None) -> ImagingProgram:
    """
    Build the CPU reference program.

    Args:
        config: Application config (None loads ``config/default.yaml`` or defaults)
    """
    config = config or load_config()
    fan_out = ParallelFanOut(config.parallel.n_workers) if config.parallel.enabled else None
    dispatcher = CpuDispatcher(fan_out=fan_out, min_pixels=config.parallel.min_pixels)
    workers = fan_out.n_workers if fan_out is not None else 1
    logger.info(f"Using CPU reference backend ({workers} worker threads)")
    return ImagingProgram(dispatcher)


def create_device_program(device: ComputeDevice) -> ImagingProgram:
    """Build an accelerator program over an existing compute device."""
    return ImagingProgram(DeviceDispatcher(device))


def create_program(
    config: Optional[AppConfig] = None,
    binary_cache: Optional[KernelBinaryCache] = None,
) -> ImagingProgram:
    """
    Build the preferred program with graceful CPU fallback.

    The CUDA backend is used when ``backend.prefer_gpu`` is set and the
    configured device is detected with at least
    ``backend.min_free_memory_gb`` free. If the device cannot be
    initialised, the CPU program is returned when
    ``backend.fallback_to_cpu`` is set; otherwise the error propagates.
    A kernel program that fails to compile is never masked.

    Args:
        config: Application config (None loads ``config/default.yaml`` or defaults)
        binary_cache: Compiled program cache shared between backends

    Returns:
        ImagingProgram on the selected backend

    Raises:
        BuildError: The CUDA program failed to compile
    """
    config = config or load_config()
    backend_cfg = config.backend

    if not backend_cfg.prefer_gpu:
        logger.info("GPU disabled in configuration")
        return create_cpu_program(config)

    gpu_info = get_gpu_info(backend_cfg.device_id)
    if not gpu_info.available:
        logger.info(f"GPU not available ({gpu_info.error_message}), using CPU backend")
        return create_cpu_program(config)

    if backend_cfg.min_free_memory_gb > 0:
        has_memory, free_gb = check_gpu_memory(backend_cfg.min_free_memory_gb, backend_cfg.device_id)
        if not has_memory:
            logger.info(
                f"GPU has {free_gb if free_gb is not None else 0.0:.2f} GB free, "
                f"{backend_cfg.min_free_memory_gb:.2f} GB required, using CPU backend"
            )
            return create_cpu_program(config)

    cache = binary_cache if config.cuda.use_binary_cache else None
    try:
        device = CudaComputeDevice(
            device_id=backend_cfg.device_id,
            binary_cache=cache,
            options=config.cuda.compile_options,
            block_2d=config.cuda.block_2d,
            block_1d=config.cuda.block_1d,
        )
    except BuildError as e:
        logger.error(f"CUDA kernel program failed to build:\n{e.log or e}")
        raise
    except (ImportError, RuntimeError) as e:
        if not backend_cfg.fallback_to_cpu:
            raise
        logger.warning(f"CUDA backend initialisation failed, falling back to CPU: {e}")
        return create_cpu_program(config)

    logger.info(f"Using CUDA backend on {device.name}")
    return create_device_program(device)
