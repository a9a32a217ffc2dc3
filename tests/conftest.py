"""
Shared fixtures.

``EmulatedComputeDevice`` stands in for a CUDA device: device arrays are
separate NumPy copies and launches run the CPU reference kernels over the
full extent. It exercises the accelerator dispatcher (mirroring, dirty
flags, lazy pulls) on machines without a GPU.
"""

import numpy as np
import pytest

from vision_kernels.acceleration.device import ComputeDevice
from vision_kernels.acceleration.parallel import ParallelFanOut
from vision_kernels.backend import create_device_program
from vision_kernels.kernels.cpu_kernels import CPU_KERNELS
from vision_kernels.kernels.dispatch import CpuDispatcher
from vision_kernels.kernels.program import ImagingProgram


class EmulatedComputeDevice(ComputeDevice):
    """Compute device backed by host memory."""

    name = "emulated"

    def __init__(self):
        self.launches = []
        self.writes = 0
        self.reads = 0

    def allocate(self, length, dtype):
        return np.zeros(int(length), dtype=dtype)

    def write(self, handle, host):
        handle[:] = host
        self.writes += 1

    def read(self, handle, host):
        host[:] = handle
        self.reads += 1

    def launch(self, kernel_name, args, global_size):
        self.launches.append(kernel_name)
        if any(extent <= 0 for extent in global_size):
            return
        CPU_KERNELS[kernel_name](*args, *global_size, 0, global_size[-1])


@pytest.fixture
def cpu_program():
    """CPU reference program running every kernel on the calling thread."""
    program = ImagingProgram(CpuDispatcher())
    yield program
    program.close()


@pytest.fixture
def parallel_program():
    """CPU reference program that fans every partitionable kernel out."""
    program = ImagingProgram(CpuDispatcher(fan_out=ParallelFanOut(n_workers=4), min_pixels=1))
    yield program
    program.close()


@pytest.fixture
def emulated_device():
    return EmulatedComputeDevice()


@pytest.fixture
def device_program(emulated_device):
    """Accelerator program over the emulated device."""
    return create_device_program(emulated_device)


@pytest.fixture(params=["cpu", "parallel", "device"])
def program(request, cpu_program, parallel_program, device_program):
    """Every backend in turn; results must not depend on the backend."""
    return {"cpu": cpu_program, "parallel": parallel_program, "device": device_program}[request.param]


@pytest.fixture
def rng():
    return np.random.default_rng(42)
