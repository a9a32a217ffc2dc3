"""
Vision Kernels Package

Image-compute core of a vision toolkit: 2D image buffers that live on the
host or are mirrored on a CUDA device, and the numerical kernels built on
them (integral images, colour histograms, histogram backprojection and
per-pixel transforms). Every kernel has a CPU reference implementation
(NumPy + Numba) and a CUDA implementation (CuPy) with the same contract.
"""

__version__ = "0.1.0"

from .errors import (
    BuildError,
    ImageFormatError,
    InvalidAliasingError,
    KernelArgumentError,
    NullArgumentError,
    OutOfRangeError,
    SizeMismatchError,
    TransferError,
    VisionKernelError,
)
from . import acceleration
from .imaging import *
from .kernels import *
from .backend import create_cpu_program, create_device_program, create_program
from .utils import *

__all__ = [
    "imaging",
    "kernels",
    "acceleration",
    "utils",
    "create_program",
    "create_cpu_program",
    "create_device_program",
    "VisionKernelError",
    "NullArgumentError",
    "SizeMismatchError",
    "TransferError",
    "OutOfRangeError",
    "InvalidAliasingError",
    "ImageFormatError",
    "KernelArgumentError",
    "BuildError",
]
