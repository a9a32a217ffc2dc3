"""
Imaging Module

Buffers and images shared by both kernel backends:
- ElementBuffer, Image2D and Histogram with host/device storage (buffers.py, storage.py)
- Capture and codec boundary helpers (interop.py)
"""

from .buffers import ChannelLayout, ElementBuffer, ElementType, Histogram, Image2D, Region
from .storage import DeviceStorage, HostStorage
from .interop import (
    FrameSink,
    PixelFormat,
    RawFrame,
    frame_to_image,
    image_from_array,
    image_to_array,
)

__all__ = [
    "ChannelLayout",
    "ElementBuffer",
    "ElementType",
    "Histogram",
    "Image2D",
    "Region",
    "HostStorage",
    "DeviceStorage",
    "FrameSink",
    "PixelFormat",
    "RawFrame",
    "frame_to_image",
    "image_from_array",
    "image_to_array",
]
