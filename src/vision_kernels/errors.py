"""
Error types shared by both kernel backends.

Every validation error is raised before a kernel is dispatched, so a failing
call never leaves a partially written destination behind. ``BuildError`` is
the only error that is not correctable by the caller.
"""

from __future__ import annotations

from typing import Optional


class VisionKernelError(Exception):
    """Base class for all errors raised by vision_kernels."""


class NullArgumentError(VisionKernelError, ValueError):
    """A required buffer, image or histogram argument was None."""

    def __init__(self, name: str):
        super().__init__(f"Argument '{name}' must not be None")
        self.argument = name


class SizeMismatchError(VisionKernelError, ValueError):
    """Destination smaller than source, or a buffer below its required length."""


class TransferError(SizeMismatchError):
    """Host/device copy failed because the host array and device mirror disagree."""


class OutOfRangeError(VisionKernelError, ValueError):
    """A scalar parameter (channel offset, bins, region) is outside its valid range."""


class InvalidAliasingError(VisionKernelError, ValueError):
    """Source and destination are the same buffer on a kernel that cannot run in place."""


class ImageFormatError(VisionKernelError, TypeError):
    """Element type or channel layout is not accepted by the kernel."""


class KernelArgumentError(VisionKernelError, TypeError):
    """Argument list does not match the kernel's registered argument shape."""


class BuildError(VisionKernelError, RuntimeError):
    """
    Accelerator program failed to compile.

    The message contains the full per-device diagnostic log; ``log`` holds
    the raw compiler output.
    """

    def __init__(self, message: str, log: Optional[str] = None):
        super().__init__(message)
        self.log = log or ""
