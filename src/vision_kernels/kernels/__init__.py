"""
Kernels Module

Kernel-level image API and its backends:
- Kernel registration table and tagged arguments (registry.py)
- Shared argument validation (validation.py)
- ImagingProgram, the API both backends expose (program.py)
- Numba CPU reference kernels (cpu_kernels.py)
- CPU and accelerator dispatchers (dispatch.py)
"""

from .registry import (
    AddressMode,
    ArgShape,
    BufferArg,
    KernelSpec,
    SamplerArg,
    ScalarArg,
    build_kernel_table,
)
from .dispatch import CpuDispatcher, DeviceDispatcher, Dispatcher
from .program import ImagingProgram

__all__ = [
    "AddressMode",
    "ArgShape",
    "BufferArg",
    "KernelSpec",
    "SamplerArg",
    "ScalarArg",
    "build_kernel_table",
    "Dispatcher",
    "CpuDispatcher",
    "DeviceDispatcher",
    "ImagingProgram",
]
