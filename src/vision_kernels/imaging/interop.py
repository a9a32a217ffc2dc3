"""
Boundary helpers for capture devices and image codecs.

Capture hardware and bitmap codecs deliver pixels in BGR(A) order with
padded rows; images in this package are tightly packed and store RGBA in
logical order. These helpers do the reordering explicitly at the
boundary so kernels never see BGR data.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Union

import numpy as np

from ..errors import ImageFormatError, NullArgumentError, SizeMismatchError
from .buffers import ChannelLayout, ElementType, Image2D

if TYPE_CHECKING:  # pragma: no cover
    from ..kernels.program import ImagingProgram


class PixelFormat(Enum):
    """Raw frame pixel formats delivered by capture devices."""

    BGR24 = "bgr24"
    BGRA32 = "bgra32"
    GRAY8 = "gray8"

    @property
    def bytes_per_pixel(self) -> int:
        return {PixelFormat.BGR24: 3, PixelFormat.BGRA32: 4, PixelFormat.GRAY8: 1}[self]


@dataclass(frozen=True)
class RawFrame:
    """
    One captured frame.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        stride: Bytes per row, including padding
        pixel_format: Channel order and depth of ``data``
        data: Frame bytes, at least ``stride * height`` long
        bottom_up: Rows are stored last row first
    """

    width: int
    height: int
    stride: int
    pixel_format: PixelFormat
    data: Union[bytes, bytearray, memoryview, np.ndarray]
    bottom_up: bool = False

    def pixels(self) -> np.ndarray:
        """Frame viewed as ``(height, width, bytes_per_pixel)`` in top-down row order."""
        bpp = self.pixel_format.bytes_per_pixel
        if self.stride < self.width * bpp:
            raise SizeMismatchError(
                f"Stride {self.stride} is shorter than a row of {self.width} "
                f"{self.pixel_format.value} pixels"
            )
        if isinstance(self.data, np.ndarray):
            raw = self.data.reshape(-1).view(np.uint8)
        else:
            raw = np.frombuffer(self.data, dtype=np.uint8)
        if raw.size < self.stride * self.height:
            raise SizeMismatchError(
                f"Frame data holds {raw.size} bytes, {self.stride * self.height} expected"
            )
        rows = raw[: self.stride * self.height].reshape(self.height, self.stride)
        pixels = rows[:, : self.width * bpp].reshape(self.height, self.width, bpp)
        return pixels[::-1] if self.bottom_up else pixels


class FrameSink(Protocol):
    """Consumer of captured frames."""

    def on_frame(self, frame: RawFrame) -> None:
        ...


def _allocate(
    width: int,
    height: int,
    layout: ChannelLayout,
    element_type: ElementType,
    data: np.ndarray,
    program: Optional["ImagingProgram"],
    normalized: bool = False,
) -> Image2D:
    if program is not None:
        return program.create_image(
            width, height, layout=layout, element_type=element_type, data=data, normalized=normalized
        )
    return Image2D(width, height, layout=layout, element_type=element_type, data=data, normalized=normalized)


def frame_to_image(
    frame: RawFrame,
    program: Optional["ImagingProgram"] = None,
    dest: Optional[Image2D] = None,
) -> Image2D:
    """
    Convert a captured frame into a byte image in logical channel order.

    BGR24 and BGRA32 frames become RGBA images (BGR24 gets A = 255), GRAY8
    frames become single-channel images. Row padding is dropped.

    Args:
        frame: Captured frame
        program: Optional program whose backend allocates the image
        dest: Optional existing byte image of exactly the frame size and
            matching layout; its host array is overwritten and uploaded

    Returns:
        The converted image (``dest`` when given)
    """
    if frame is None:
        raise NullArgumentError("frame")
    pixels = frame.pixels()

    if frame.pixel_format is PixelFormat.GRAY8:
        layout = ChannelLayout.A
        converted = pixels[:, :, 0]
    else:
        layout = ChannelLayout.RGBA
        converted = np.empty((frame.height, frame.width, 4), dtype=np.uint8)
        converted[:, :, 0:3] = pixels[:, :, 2::-1]
        if frame.pixel_format is PixelFormat.BGRA32:
            converted[:, :, 3] = pixels[:, :, 3]
        else:
            converted[:, :, 3] = 255

    if dest is None:
        return _allocate(frame.width, frame.height, layout, ElementType.BYTE, converted, program)

    if dest.element_type is not ElementType.BYTE or dest.layout is not layout:
        raise ImageFormatError(
            f"Frame {frame.pixel_format.value} needs a byte {layout.name} image, "
            f"got {dest.element_type.value} {dest.layout.name}"
        )
    if dest.width != frame.width or dest.height != frame.height:
        raise SizeMismatchError(
            f"Frame is {frame.width}x{frame.height}, image is {dest.width}x{dest.height}"
        )
    dest.upload_to_device(converted)
    return dest


def image_from_array(
    array: np.ndarray,
    bgr: bool = False,
    program: Optional["ImagingProgram"] = None,
    normalized: bool = False,
) -> Image2D:
    """
    Build an image from a decoded ``(H, W)``, ``(H, W, 3)`` or ``(H, W, 4)`` array.

    Args:
        array: uint8, uint32 or float32 pixels
        bgr: The colour channels are stored B, G, R (codec order)
        program: Optional program whose backend allocates the image
        normalized: Tag for float images

    Three-channel input gets an opaque alpha channel (255, or 1.0 for
    normalized float images).
    """
    if array is None:
        raise NullArgumentError("array")
    array = np.asarray(array)
    try:
        element_type = ElementType.from_dtype(array.dtype)
    except TypeError as e:
        raise ImageFormatError(str(e)) from e

    if array.ndim == 2:
        height, width = array.shape
        return _allocate(width, height, ChannelLayout.A, element_type, array, program, normalized)

    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise ImageFormatError(f"Unsupported array shape {array.shape}")

    height, width, channels = array.shape
    rgba = np.empty((height, width, 4), dtype=array.dtype)
    colour = array[:, :, 2::-1] if bgr else array[:, :, 0:3]
    rgba[:, :, 0:3] = colour
    if channels == 4:
        rgba[:, :, 3] = array[:, :, 3]
    else:
        rgba[:, :, 3] = 1.0 if (element_type is ElementType.FLOAT32 and normalized) else 255
    return _allocate(width, height, ChannelLayout.RGBA, element_type, rgba, program, normalized)


def image_to_array(image: Image2D, bgr: bool = False) -> np.ndarray:
    """
    Copy an image into a ``(H, W)`` or ``(H, W, 4)`` array for a codec.

    Args:
        image: Source image; pulled from the device first if stale
        bgr: Emit B, G, R, A channel order
    """
    if image is None:
        raise NullArgumentError("image")
    pixels = image.pixels()
    if image.layout is ChannelLayout.A:
        return pixels[:, :, 0].copy()
    out = pixels.copy()
    if bgr:
        out[:, :, 0:3] = pixels[:, :, 2::-1]
    return out
