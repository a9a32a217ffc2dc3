"""
Element buffers, 2D images and histograms.

Host arrays are exclusively owned by their buffer and never resized. A
buffer created on the accelerator backend also owns a device mirror; the
``modified`` flag records that the mirror is ahead of the host array and
that the host copy must be pulled before it is inspected. Reading ``host``
performs that pull lazily.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

import numpy as np

from ..errors import OutOfRangeError, SizeMismatchError
from .storage import DeviceStorage, HostStorage

Storage = Union[HostStorage, DeviceStorage]


class ElementType(Enum):
    """Scalar element types supported by buffers and images."""

    BYTE = "byte"
    UINT32 = "uint32"
    FLOAT32 = "float32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_DTYPES[self])

    @property
    def max_value(self) -> float:
        """Largest value of the conventional pixel range (255 or 1.0)."""
        return 1.0 if self is ElementType.FLOAT32 else 255.0

    @classmethod
    def from_dtype(cls, dtype) -> "ElementType":
        dtype = np.dtype(dtype)
        for element_type, name in _DTYPES.items():
            if np.dtype(name) == dtype:
                return element_type
        raise TypeError(f"Unsupported element dtype: {dtype}")


_DTYPES = {
    ElementType.BYTE: "uint8",
    ElementType.UINT32: "uint32",
    ElementType.FLOAT32: "float32",
}


class ChannelLayout(IntEnum):
    """Channel layout; the value is the channel count."""

    A = 1
    RGBA = 4


@dataclass(frozen=True)
class Region:
    """
    Rectangular region of interest.

    A width or height of 0 extends the region to the image edge.
    """

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def resolve(self, image_width: int, image_height: int) -> "Region":
        """Return the region with zero sizes expanded and bounds checked."""
        if self.x < 0 or self.y < 0:
            raise OutOfRangeError(f"Region origin must not be negative: ({self.x}, {self.y})")
        width = self.width if self.width else image_width - self.x
        height = self.height if self.height else image_height - self.y
        if width < 0:
            raise OutOfRangeError(f"Region width resolves to {width}")
        if height < 0:
            raise OutOfRangeError(f"Region height resolves to {height}")
        if self.x + width > image_width or self.y + height > image_height:
            raise OutOfRangeError(
                f"Region ({self.x}, {self.y}, {width}x{height}) exceeds image "
                f"bounds {image_width}x{image_height}"
            )
        return Region(self.x, self.y, width, height)


class ElementBuffer:
    """
    Contiguous host array of one element type with an optional device mirror.

    Args:
        length: Number of elements
        element_type: Scalar type of the elements
        storage: ``HostStorage`` (default) or ``DeviceStorage``
        data: Optional initial contents; must hold exactly ``length`` elements
    """

    def __init__(
        self,
        length: int,
        element_type: ElementType = ElementType.BYTE,
        storage: Optional[Storage] = None,
        data: Optional[np.ndarray] = None,
    ):
        if length < 1:
            raise OutOfRangeError(f"Buffer length must be at least 1, got {length}")
        self.element_type = ElementType(element_type)
        self.length = int(length)

        if data is None:
            self._host = np.zeros(self.length, dtype=self.element_type.dtype)
        else:
            data = np.array(data, dtype=self.element_type.dtype).reshape(-1)
            if data.size != self.length:
                raise SizeMismatchError(
                    f"Initial data has {data.size} elements, buffer length is {self.length}"
                )
            self._host = data

        self._modified = False
        self._transfer_lock = threading.Lock()
        self.storage: Storage = storage if storage is not None else HostStorage()
        self.storage.attach(self.length, self.element_type.dtype)
        self.storage.upload(self._host)

    @property
    def dtype(self) -> np.dtype:
        return self.element_type.dtype

    @property
    def is_device_backed(self) -> bool:
        return self.storage.is_mirrored

    @property
    def device_handle(self):
        """Backend-owned handle of the device mirror (None for host-only buffers)."""
        return self.storage.handle

    @property
    def modified(self) -> bool:
        return self._modified

    def mark_modified(self) -> None:
        """Record that the device mirror was written and the host copy is stale."""
        if self.storage.is_mirrored:
            self._modified = True

    @property
    def host(self) -> np.ndarray:
        """Host array, pulled from the device first when it is stale."""
        if self._modified:
            self.download_from_device()
        return self._host

    def upload_to_device(self, data: Optional[np.ndarray] = None) -> None:
        """
        Copy the host array to the device mirror (blocking).

        Args:
            data: Optional replacement host array of the same length
        """
        with self._transfer_lock:
            host = self._host
            if data is not None:
                host = np.array(data, dtype=self.dtype).reshape(-1)
            self.storage.upload(host)
            self._host = host
            self._modified = False

    def download_from_device(self) -> None:
        """Copy the device mirror into the host array (blocking)."""
        with self._transfer_lock:
            self.storage.download(self._host)
            self._modified = False

    def fill(self, value) -> None:
        """Fill the host array with ``value`` and push it to the mirror."""
        self.host[:] = value
        self.upload_to_device()

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(length={self.length}, "
            f"type={self.element_type.value}, storage={self.storage!r})"
        )


class Image2D(ElementBuffer):
    """
    2D image stored row-major with interleaved channels.

    ``normalized`` is meaningful for float images only: True means values
    are conceptually in [0, 1], False means [0, 255].
    """

    def __init__(
        self,
        width: int,
        height: int,
        layout: ChannelLayout = ChannelLayout.A,
        element_type: ElementType = ElementType.BYTE,
        storage: Optional[Storage] = None,
        data: Optional[np.ndarray] = None,
        normalized: bool = False,
    ):
        if width < 1 or height < 1:
            raise OutOfRangeError(
                f"Images need a width and height of at least one pixel, got {width}x{height}"
            )
        self.width = int(width)
        self.height = int(height)
        self.layout = ChannelLayout(layout)
        self.normalized = bool(normalized)
        super().__init__(
            self.width * self.height * self.channels,
            element_type=element_type,
            storage=storage,
            data=data,
        )

    @property
    def channels(self) -> int:
        return int(self.layout)

    @property
    def is_float(self) -> bool:
        return self.element_type is ElementType.FLOAT32

    @property
    def row_pitch(self) -> int:
        """Number of elements per image row."""
        return self.width * self.channels

    def pixels(self) -> np.ndarray:
        """Host array viewed as (height, width, channels)."""
        return self.host.reshape(self.height, self.width, self.channels)

    def __repr__(self) -> str:
        return (
            f"Image2D({self.width}x{self.height}, {self.layout.name}, "
            f"{self.element_type.value}, normalized={self.normalized}, "
            f"storage={self.storage!r})"
        )


class Histogram(ElementBuffer):
    """
    uint32 accumulator of ``bins**3`` colour buckets (or 256 gray buckets).
    """

    def __init__(self, bins: int, gray: bool = False, storage: Optional[Storage] = None):
        if not 2 <= bins <= 256:
            raise OutOfRangeError(f"bins must be between 2 and 256, got {bins}")
        self.bins = int(bins)
        self.gray = bool(gray)
        length = 256 if gray else self.bins ** 3
        super().__init__(length, element_type=ElementType.UINT32, storage=storage)

    @classmethod
    def gray_levels(cls, storage: Optional[Storage] = None) -> "Histogram":
        return cls(256, gray=True, storage=storage)

    def total(self) -> int:
        return int(self.host.sum(dtype=np.uint64))
