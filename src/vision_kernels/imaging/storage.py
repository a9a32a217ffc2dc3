"""
Storage strategies for element buffers.

A buffer picks its storage at construction time:

- ``HostStorage``: host array only (CPU reference backend). Transfers are
  no-ops and the buffer is never marked modified.
- ``DeviceStorage``: host array plus a mirrored allocation on a
  ``ComputeDevice`` (accelerator backend).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from ..errors import TransferError

if TYPE_CHECKING:  # pragma: no cover
    from ..acceleration.device import ComputeDevice

logger = logging.getLogger(__name__)


class HostStorage:
    """Host-resident storage without a device mirror."""

    is_mirrored = False
    handle = None

    def attach(self, length: int, dtype: np.dtype) -> None:
        pass

    def upload(self, host: np.ndarray) -> None:
        pass

    def download(self, host: np.ndarray) -> None:
        pass

    def __repr__(self) -> str:
        return "HostStorage()"


class DeviceStorage:
    """
    Host array mirrored on a compute device.

    The device allocation is made once in ``attach`` and has a fixed length;
    every transfer checks the host array against that length.
    """

    is_mirrored = True

    def __init__(self, device: "ComputeDevice"):
        if device is None:
            raise TransferError("DeviceStorage requires a compute device")
        self.device = device
        self.handle: Optional[Any] = None
        self.length = 0

    def attach(self, length: int, dtype: np.dtype) -> None:
        self.handle = self.device.allocate(length, dtype)
        self.length = length
        logger.debug(
            f"Allocated device mirror of {length} x {np.dtype(dtype).name} "
            f"on {self.device.name}"
        )

    def _check(self, host: np.ndarray, direction: str) -> None:
        if self.handle is None:
            raise TransferError(f"Cannot {direction}: device mirror is not allocated")
        if host.size != self.length:
            raise TransferError(
                f"Cannot {direction}: host array length ({host.size}) does not "
                f"match the device mirror length ({self.length})"
            )

    def upload(self, host: np.ndarray) -> None:
        self._check(host, "upload")
        self.device.write(self.handle, host)

    def download(self, host: np.ndarray) -> None:
        self._check(host, "download")
        self.device.read(self.handle, host)

    def __repr__(self) -> str:
        return f"DeviceStorage(device={self.device.name!r}, length={self.length})"
