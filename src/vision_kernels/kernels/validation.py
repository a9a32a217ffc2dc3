"""
Fail-fast argument checks shared by both backends.

All checks run before anything is dispatched. Because both backends call
the same ImagingProgram methods, the error surface is identical.
"""

from __future__ import annotations

from typing import Optional

from ..errors import (
    ImageFormatError,
    InvalidAliasingError,
    NullArgumentError,
    OutOfRangeError,
    SizeMismatchError,
)
from ..imaging.buffers import ChannelLayout, ElementBuffer, ElementType, Image2D, Region


def require(**arguments) -> None:
    """Raise NullArgumentError for the first argument that is None."""
    for name, value in arguments.items():
        if value is None:
            raise NullArgumentError(name)


def require_image(image, name: str, *element_types: ElementType, layout: Optional[ChannelLayout] = None) -> None:
    """Check that ``image`` is a non-null Image2D of an accepted type and layout."""
    if image is None:
        raise NullArgumentError(name)
    if not isinstance(image, Image2D):
        raise ImageFormatError(f"'{name}' must be an Image2D, got {type(image).__name__}")
    if element_types and image.element_type not in element_types:
        accepted = ", ".join(t.value for t in element_types)
        raise ImageFormatError(
            f"'{name}' has element type {image.element_type.value}; expected {accepted}"
        )
    if layout is not None and image.layout is not layout:
        raise ImageFormatError(
            f"'{name}' has layout {image.layout.name}; expected {layout.name}"
        )


def require_same_layout(source: Image2D, dest: Image2D) -> None:
    if source.layout is not dest.layout:
        raise ImageFormatError(
            f"source layout {source.layout.name} does not match dest layout {dest.layout.name}"
        )


def require_covers(source: Image2D, dest: Image2D, dest_name: str = "dest") -> None:
    """Destination must be at least as large as the source in both dimensions."""
    if dest.width < source.width or dest.height < source.height:
        raise SizeMismatchError(
            f"'{dest_name}' ({dest.width}x{dest.height}) is smaller than the "
            f"source ({source.width}x{source.height})"
        )


def require_distinct(source: ElementBuffer, dest: ElementBuffer, operation: str) -> None:
    if source is dest:
        raise InvalidAliasingError(f"{operation} cannot run in place")


def require_channel(offset: int, name: str = "offset") -> None:
    if not 0 <= offset <= 3:
        raise OutOfRangeError(f"Channel {name} must be between 0 and 3, got {offset}")


def require_bins(bins: int) -> None:
    if not 2 <= bins <= 256:
        raise OutOfRangeError(f"bins must be between 2 and 256, got {bins}")


def require_length(buffer: ElementBuffer, needed: int, name: str) -> None:
    if buffer.length < needed:
        raise SizeMismatchError(
            f"'{name}' holds {buffer.length} elements, at least {needed} are required"
        )


def require_element_type(buffer: ElementBuffer, name: str, element_type: ElementType) -> None:
    if buffer is None:
        raise NullArgumentError(name)
    if buffer.element_type is not element_type:
        raise ImageFormatError(
            f"'{name}' has element type {buffer.element_type.value}; "
            f"expected {element_type.value}"
        )


def resolve_region(image: Image2D, region: Optional[Region]) -> Region:
    """Resolve ``region`` (None means the whole image) against ``image``."""
    if region is None:
        return Region(0, 0, image.width, image.height)
    return region.resolve(image.width, image.height)
