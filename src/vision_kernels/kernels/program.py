"""
Image kernel API shared by the CPU reference and accelerator backends.

``ImagingProgram`` validates every call (see ``validation``), builds the
tagged argument list of the matching registry entry and hands it to its
dispatcher. Because validation and argument construction live here, both
backends raise the same errors and receive identical arguments.

Example:
    >>> program = create_cpu_program()
    >>> src = program.create_image(64, 48, element_type=ElementType.BYTE)
    >>> dst = program.create_image(64, 48, element_type=ElementType.UINT32)
    >>> src.fill(1)
    >>> program.integral(src, dst)
    >>> int(dst.host[-1])
    2961
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..errors import ImageFormatError, OutOfRangeError, SizeMismatchError
from ..imaging.buffers import (
    ChannelLayout,
    ElementBuffer,
    ElementType,
    Histogram,
    Image2D,
    Region,
)
from .dispatch import Dispatcher
from .registry import AddressMode, BufferArg, SamplerArg, ScalarArg
from .validation import (
    require,
    require_bins,
    require_channel,
    require_covers,
    require_distinct,
    require_element_type,
    require_image,
    require_length,
    require_same_layout,
    resolve_region,
)

logger = logging.getLogger(__name__)

BYTE = ElementType.BYTE
UINT32 = ElementType.UINT32
FLOAT32 = ElementType.FLOAT32
A = ChannelLayout.A
RGBA = ChannelLayout.RGBA

_PREFIX = {BYTE: "byte", UINT32: "uint", FLOAT32: "float"}


def _u32(value: int) -> ScalarArg:
    return ScalarArg.u32(value)


class ImagingProgram:
    """
    Kernel-level image API over one backend.

    Args:
        dispatcher: ``CpuDispatcher`` or ``DeviceDispatcher``
    """

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        logger.debug(f"Created ImagingProgram on {dispatcher.name} backend")

    @property
    def name(self) -> str:
        return self.dispatcher.name

    @property
    def is_accelerated(self) -> bool:
        return self.dispatcher.is_accelerated

    def close(self) -> None:
        close = getattr(self.dispatcher, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------

    def create_buffer(
        self,
        length: int,
        element_type: ElementType = BYTE,
        data: Optional[np.ndarray] = None,
    ) -> ElementBuffer:
        """Allocate a buffer with storage appropriate to this backend."""
        return ElementBuffer(length, element_type, storage=self.dispatcher.create_storage(), data=data)

    def create_image(
        self,
        width: int,
        height: int,
        layout: ChannelLayout = A,
        element_type: ElementType = BYTE,
        data: Optional[np.ndarray] = None,
        normalized: bool = False,
    ) -> Image2D:
        """Allocate an image with storage appropriate to this backend."""
        return Image2D(
            width,
            height,
            layout=layout,
            element_type=element_type,
            storage=self.dispatcher.create_storage(),
            data=data,
            normalized=normalized,
        )

    def create_histogram(self, bins: int) -> Histogram:
        return Histogram(bins, storage=self.dispatcher.create_storage())

    def create_gray_histogram(self) -> Histogram:
        return Histogram.gray_levels(storage=self.dispatcher.create_storage())

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _check_pair(self, source, dest, source_types, dest_types=None, same_layout=True) -> None:
        require(source=source, dest=dest)
        require_image(source, "source", *source_types)
        require_image(dest, "dest", *(dest_types or source_types))
        if same_layout:
            require_same_layout(source, dest)
        require_covers(source, dest)

    def _elementwise(self, kernel: str, source: Image2D, dest: Image2D, *scalars) -> None:
        self.dispatcher.dispatch(
            kernel,
            [BufferArg(source), BufferArg(dest), _u32(source.row_pitch), _u32(dest.row_pitch), *scalars],
            (source.row_pitch, source.height),
        )

    def _pixelwise(self, kernel: str, source: Image2D, dest: Image2D, *extra) -> None:
        self.dispatcher.dispatch(
            kernel,
            [BufferArg(source), BufferArg(dest), _u32(source.width), _u32(dest.width), *extra],
            (source.width, source.height),
        )

    # ------------------------------------------------------------------
    # elementwise float arithmetic
    # ------------------------------------------------------------------

    def abs(self, source: Image2D, dest: Image2D) -> None:
        """Absolute value of every element."""
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise("float_abs", source, dest)
        dest.normalized = source.normalized

    def add_value(self, source: Image2D, dest: Image2D, value: float) -> None:
        """Add a constant to every element."""
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise("float_add_value", source, dest, ScalarArg.f32(value))
        dest.normalized = source.normalized

    def multiply_value(
        self,
        source: Image2D,
        dest: Image2D,
        factor: float,
        normalized: Optional[bool] = None,
    ) -> None:
        """
        Multiply every element by ``factor``.

        Args:
            normalized: Tag for ``dest``; None propagates the source tag
        """
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise("float_multiply_value", source, dest, ScalarArg.f32(factor))
        dest.normalized = source.normalized if normalized is None else bool(normalized)

    def clamp(self, source: Image2D, dest: Image2D, min_value: float, max_value: float) -> None:
        """Clamp every element into ``[min_value, max_value]``."""
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise(
            "float_clamp", source, dest, ScalarArg.f32(min_value), ScalarArg.f32(max_value)
        )
        dest.normalized = source.normalized

    def normalize(self, source: Image2D, dest: Image2D) -> None:
        """Divide by 255; ``dest`` is tagged normalized."""
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise("float_normalize", source, dest)
        dest.normalized = True

    def denormalize(self, source: Image2D, dest: Image2D) -> None:
        """Multiply by 255; ``dest`` is tagged not normalized."""
        self._check_pair(source, dest, (FLOAT32,))
        self._elementwise("float_denormalize", source, dest)
        dest.normalized = False

    # ------------------------------------------------------------------
    # format conversion
    # ------------------------------------------------------------------

    def byte_to_float(self, source: Image2D, dest: Image2D) -> None:
        self._check_pair(source, dest, (BYTE,), (FLOAT32,))
        self._elementwise("byte_to_float", source, dest)
        dest.normalized = False

    def float_to_byte(self, source: Image2D, dest: Image2D) -> None:
        """Convert to bytes, scaling normalized sources by 255, clamping to [0, 255] and truncating."""
        self._check_pair(source, dest, (FLOAT32,), (BYTE,))
        scale = 255.0 if source.normalized else 1.0
        self._elementwise("float_to_byte", source, dest, ScalarArg.f32(scale))

    def byte_a_to_byte_rgba(self, source: Image2D, dest: Image2D) -> None:
        """Expand a gray image to RGBA with R = G = B = gray and A = 255."""
        require(source=source, dest=dest)
        require_image(source, "source", BYTE, layout=A)
        require_image(dest, "dest", BYTE, layout=RGBA)
        require_covers(source, dest)
        self._pixelwise("byte_a_to_byte_rgba", source, dest)

    # ------------------------------------------------------------------
    # fills
    # ------------------------------------------------------------------

    def set_value(self, image: Image2D, value) -> None:
        """
        Set every element of ``image`` to ``value``.

        For byte RGBA images ``value`` is a packed 32-bit colour
        ``0xRRGGBBAA``.
        """
        require(image=image)
        require_image(image, "image", BYTE, UINT32, FLOAT32)
        if image.element_type is BYTE and image.layout is RGBA:
            value = int(value)
            if not 0 <= value <= 0xFFFFFFFF:
                raise OutOfRangeError(f"Packed RGBA value must fit in 32 bits, got {value}")
            self.dispatcher.dispatch(
                "byte_set_value_rgba",
                [
                    BufferArg(image),
                    ScalarArg.u8((value >> 24) & 0xFF),
                    ScalarArg.u8((value >> 16) & 0xFF),
                    ScalarArg.u8((value >> 8) & 0xFF),
                    ScalarArg.u8(value & 0xFF),
                ],
                (image.width * image.height,),
            )
            return
        self.set_buffer_value(image, value)

    def set_buffer_value(self, buffer: ElementBuffer, value) -> None:
        """Set every element of a byte, uint32 or float buffer."""
        require(buffer=buffer)
        element_type = buffer.element_type
        if element_type is FLOAT32:
            scalar = ScalarArg.f32(value)
        elif element_type is BYTE:
            if not 0 <= int(value) <= 0xFF:
                raise OutOfRangeError(f"Byte value must be between 0 and 255, got {value}")
            scalar = ScalarArg.u8(value)
        else:
            if not 0 <= int(value) <= 0xFFFFFFFF:
                raise OutOfRangeError(f"uint32 value out of range: {value}")
            scalar = ScalarArg.u32(value)
        self.dispatcher.dispatch(
            f"{_PREFIX[element_type]}_set_value", [BufferArg(buffer), scalar], (buffer.length,)
        )

    # ------------------------------------------------------------------
    # geometry
    # ------------------------------------------------------------------

    def _flip(self, axis: str, source: Image2D, dest: Image2D) -> None:
        self._check_pair(source, dest, (BYTE, FLOAT32))
        if source.element_type is not dest.element_type:
            raise ImageFormatError("Flip source and dest must share an element type")
        require_distinct(source, dest, f"flip_{axis}")
        self._pixelwise(
            f"{_PREFIX[source.element_type]}_flip_{axis}", source, dest, _u32(source.channels)
        )
        if source.is_float:
            dest.normalized = source.normalized

    def flip_x(self, source: Image2D, dest: Image2D) -> None:
        """Mirror horizontally; cannot run in place."""
        self._flip("x", source, dest)

    def flip_y(self, source: Image2D, dest: Image2D) -> None:
        """Mirror vertically; cannot run in place."""
        self._flip("y", source, dest)

    # ------------------------------------------------------------------
    # channels
    # ------------------------------------------------------------------

    def _check_rgba_pair(self, source, dest, dest_layout: ChannelLayout) -> str:
        require(source=source, dest=dest)
        require_image(source, "source", BYTE, FLOAT32, layout=RGBA)
        require_image(dest, "dest", source.element_type, layout=dest_layout)
        require_covers(source, dest)
        return _PREFIX[source.element_type]

    def extract_channel(self, source: Image2D, dest: Image2D, offset: int) -> None:
        """Copy channel ``offset`` of an RGBA image into a single-channel image."""
        prefix = self._check_rgba_pair(source, dest, A)
        require_channel(offset)
        self._pixelwise(f"{prefix}_extract_channel", source, dest, _u32(offset))
        if source.is_float:
            dest.normalized = source.normalized

    def set_channel(self, source: Image2D, dest: Image2D, offset: int, value) -> None:
        """Copy ``source`` with channel ``offset`` replaced by a constant."""
        prefix = self._check_rgba_pair(source, dest, RGBA)
        require_channel(offset)
        if source.is_float:
            scalar = ScalarArg.f32(value)
        else:
            if not 0 <= int(value) <= 0xFF:
                raise OutOfRangeError(f"Byte value must be between 0 and 255, got {value}")
            scalar = ScalarArg.u8(value)
        self._pixelwise(f"{prefix}_set_channel", source, dest, _u32(offset), scalar)
        if source.is_float:
            dest.normalized = source.normalized

    def set_channel_mask(self, source: Image2D, mask: Image2D, dest: Image2D, offset: int) -> None:
        """Copy ``source`` with channel ``offset`` taken from a single-channel mask."""
        require(source=source, mask=mask, dest=dest)
        prefix = self._check_rgba_pair(source, dest, RGBA)
        require_image(mask, "mask", source.element_type, layout=A)
        require_channel(offset)
        require_covers(source, mask, "mask")
        self.dispatcher.dispatch(
            f"{prefix}_set_channel_mask",
            [
                BufferArg(source),
                BufferArg(mask),
                BufferArg(dest),
                _u32(source.width),
                _u32(mask.width),
                _u32(dest.width),
                _u32(offset),
            ],
            (source.width, source.height),
        )
        if source.is_float:
            dest.normalized = source.normalized

    def swap_channel(self, source: Image2D, dest: Image2D, offset_a: int, offset_b: int) -> None:
        """Copy ``source`` with two channels exchanged."""
        prefix = self._check_rgba_pair(source, dest, RGBA)
        require_channel(offset_a, "offset_a")
        require_channel(offset_b, "offset_b")
        self._pixelwise(f"{prefix}_swap_channel", source, dest, _u32(offset_a), _u32(offset_b))
        if source.is_float:
            dest.normalized = source.normalized

    # ------------------------------------------------------------------
    # colour
    # ------------------------------------------------------------------

    def gray_scale(self, source: Image2D, dest: Image2D) -> None:
        """
        Luminance ``0.2989 R + 0.5870 G + 0.1140 B`` of an RGBA image.

        Supported: byte -> byte (truncated), byte -> float, float -> float.
        """
        require(source=source, dest=dest)
        require_image(source, "source", BYTE, FLOAT32, layout=RGBA)
        require_image(dest, "dest", BYTE, FLOAT32, layout=A)
        require_covers(source, dest)
        if source.element_type is BYTE and dest.element_type is BYTE:
            kernel, tag = "byte_gray_scale", dest.normalized
        elif source.element_type is BYTE:
            kernel, tag = "byte_gray_scale_float", False
        elif dest.element_type is FLOAT32:
            kernel, tag = "float_gray_scale", source.normalized
        else:
            raise ImageFormatError("gray_scale does not convert float sources to byte")
        self._pixelwise(kernel, source, dest)
        dest.normalized = tag

    def _hsl(self, direction: str, source: Image2D, dest: Image2D) -> None:
        prefix = self._check_rgba_pair(source, dest, RGBA)
        if source.is_float:
            scale = 1.0 if source.normalized else 255.0
            self._pixelwise(f"float_{direction}", source, dest, ScalarArg.f32(scale))
            dest.normalized = source.normalized
        else:
            self._pixelwise(f"{prefix}_{direction}", source, dest)

    def rgb_to_hsl(self, source: Image2D, dest: Image2D) -> None:
        """RGB to HSL; hue, saturation and lightness use the channel scale."""
        self._hsl("rgb_to_hsl", source, dest)

    def hsl_to_rgb(self, source: Image2D, dest: Image2D) -> None:
        """HSL to RGB; the inverse of ``rgb_to_hsl``."""
        self._hsl("hsl_to_rgb", source, dest)

    # ------------------------------------------------------------------
    # difference and neighbourhood filters
    # ------------------------------------------------------------------

    def diff(self, source1: Image2D, source2: Image2D, dest: Image2D) -> None:
        """
        Per-pixel absolute difference into a single-channel float image.

        RGBA sources produce the mean absolute difference of R, G and B.
        """
        require(source1=source1, source2=source2, dest=dest)
        require_image(source1, "source1", FLOAT32)
        require_image(source2, "source2", FLOAT32)
        require_image(dest, "dest", FLOAT32, layout=A)
        require_same_layout(source1, source2)
        if source1.width != source2.width or source1.height != source2.height:
            raise SizeMismatchError(
                f"diff sources differ in size: {source1.width}x{source1.height} vs "
                f"{source2.width}x{source2.height}"
            )
        require_covers(source1, dest)
        self.dispatcher.dispatch(
            "float_diff",
            [
                BufferArg(source1),
                BufferArg(source2),
                BufferArg(dest),
                _u32(source1.width),
                _u32(dest.width),
                _u32(source1.channels),
            ],
            (source1.width, source1.height),
        )
        dest.normalized = False

    def box_blur(
        self,
        source: Image2D,
        dest: Image2D,
        offset: int,
        sampler: AddressMode = AddressMode.CLAMP_TO_EDGE,
    ) -> None:
        """Mean over the ``(2 * offset + 1)`` square window; cannot run in place."""
        self._check_pair(source, dest, (BYTE, FLOAT32))
        if source.element_type is not dest.element_type:
            raise ImageFormatError("box_blur source and dest must share an element type")
        if offset < 0:
            raise OutOfRangeError(f"offset must not be negative, got {offset}")
        require_distinct(source, dest, "box_blur")
        self._pixelwise(
            f"{_PREFIX[source.element_type]}_box_blur",
            source,
            dest,
            _u32(source.channels),
            ScalarArg.i32(offset),
            SamplerArg(AddressMode(sampler)),
        )
        if source.is_float:
            dest.normalized = source.normalized

    def sobel(
        self,
        source: Image2D,
        dest: Image2D,
        sampler: AddressMode = AddressMode.CLAMP_TO_EDGE,
    ) -> None:
        """Sobel gradient magnitude per colour channel; alpha is copied."""
        self._check_pair(source, dest, (BYTE, FLOAT32))
        if source.element_type is not dest.element_type:
            raise ImageFormatError("sobel source and dest must share an element type")
        require_distinct(source, dest, "sobel")
        self._pixelwise(
            f"{_PREFIX[source.element_type]}_sobel",
            source,
            dest,
            _u32(source.channels),
            SamplerArg(AddressMode(sampler)),
        )
        if source.is_float:
            dest.normalized = source.normalized

    # ------------------------------------------------------------------
    # integral images
    # ------------------------------------------------------------------

    def _integral(self, source: Image2D, dest: Image2D, squared: bool) -> None:
        require(source=source, dest=dest)
        require_image(source, "source", BYTE, FLOAT32, layout=A)
        expected = UINT32 if source.element_type is BYTE else FLOAT32
        require_image(dest, "dest", expected, layout=A)
        require_distinct(source, dest, "integral")
        require_covers(source, dest)

        src_prefix = _PREFIX[source.element_type]
        dst_prefix = _PREFIX[dest.element_type]
        rows = f"{src_prefix}_integral_square_rows" if squared else f"{src_prefix}_integral_rows"

        self.dispatcher.dispatch(
            f"{dst_prefix}_integral_borders",
            [BufferArg(dest), _u32(dest.width), _u32(dest.height)],
            (max(dest.width, dest.height),),
        )
        self.dispatcher.dispatch(
            rows,
            [BufferArg(source), BufferArg(dest), _u32(source.width), _u32(dest.width), _u32(source.width)],
            (source.height,),
        )
        self.dispatcher.dispatch(
            f"{dst_prefix}_integral_columns",
            [BufferArg(dest), _u32(dest.width), _u32(source.height)],
            (source.width,),
        )
        if dest.is_float:
            dest.normalized = False

    def integral(self, source: Image2D, dest: Image2D) -> None:
        """
        Integral image: byte -> uint32 or float -> float.

        Row 0 and column 0 of ``dest`` are zero and
        ``dest[y, x] = sum(source[:y, :x])`` for ``1 <= y < H`` and
        ``1 <= x < W``, so the last source row and column are not summed.
        uint32 results wrap modulo 2**32.
        """
        self._integral(source, dest, squared=False)

    def integral_square(self, source: Image2D, dest: Image2D) -> None:
        """Integral image of the squared source; same layout rules as ``integral``."""
        self._integral(source, dest, squared=True)

    # ------------------------------------------------------------------
    # histograms
    # ------------------------------------------------------------------

    def _clear_histogram(self, histogram: ElementBuffer) -> None:
        self.dispatcher.dispatch(
            "uint_set_value", [BufferArg(histogram), ScalarArg.u32(0)], (histogram.length,)
        )

    def histogram_256(
        self,
        source: Image2D,
        histogram: ElementBuffer,
        region: Optional[Region] = None,
    ) -> None:
        """Count the 256 gray levels of ``source`` inside ``region``."""
        require(source=source, histogram=histogram)
        require_image(source, "source", BYTE, layout=A)
        require_element_type(histogram, "histogram", UINT32)
        require_length(histogram, 256, "histogram")
        roi = resolve_region(source, region)

        self._clear_histogram(histogram)
        self.dispatcher.dispatch(
            "byte_histogram_256",
            [BufferArg(source), BufferArg(histogram), _u32(source.width), _u32(roi.x), _u32(roi.y)],
            (roi.width, roi.height),
        )

    def histogram_n(
        self,
        source: Image2D,
        histogram: ElementBuffer,
        bins: int,
        region: Optional[Region] = None,
    ) -> None:
        """
        Colour histogram with ``bins`` buckets per channel.

        Bucket index is ``r' + g' * bins + b' * bins**2`` with
        ``c' = (c * bins) >> 8``; alpha is ignored.
        """
        require(source=source, histogram=histogram)
        require_image(source, "source", BYTE, layout=RGBA)
        require_element_type(histogram, "histogram", UINT32)
        require_bins(bins)
        require_length(histogram, bins ** 3, "histogram")
        roi = resolve_region(source, region)

        self._clear_histogram(histogram)
        self.dispatcher.dispatch(
            "byte_rgba_histogram_n",
            [
                BufferArg(source),
                BufferArg(histogram),
                _u32(source.width),
                _u32(bins),
                _u32(roi.x),
                _u32(roi.y),
            ],
            (roi.width, roi.height),
        )

    def histogram_backprojection(
        self,
        source: Image2D,
        dest: Image2D,
        model: ElementBuffer,
        frame: ElementBuffer,
        bins: int,
        region: Optional[Region] = None,
    ) -> None:
        """
        Probability of each pixel's colour under a model histogram.

        For the pixel's bucket ``b``: an all-zero model gives 1; otherwise
        ``frame[b] == 0`` gives 1 if ``model[b] > 0`` else 0; otherwise
        ``min(model[b] / frame[b], 1)``. Byte destinations store
        ``trunc(p * 255)``, float destinations store ``p`` and are tagged
        normalized. RGBA destinations get ``p`` in R, G, B and the maximum
        value in A. Pixels outside ``region`` are left untouched.
        """
        require(source=source, dest=dest, model=model, frame=frame)
        require_image(source, "source", BYTE, layout=RGBA)
        require_image(dest, "dest", BYTE, FLOAT32)
        require_element_type(model, "model", UINT32)
        require_element_type(frame, "frame", UINT32)
        require_bins(bins)
        require_length(model, bins ** 3, "model")
        require_length(frame, bins ** 3, "frame")
        require_covers(source, dest)
        roi = resolve_region(source, region)

        model_empty = int(model.host[: bins ** 3].sum(dtype=np.uint64)) == 0
        kernel = "byte_rgba_backprojection_float" if dest.is_float else "byte_rgba_backprojection_byte"
        self.dispatcher.dispatch(
            kernel,
            [
                BufferArg(source),
                BufferArg(dest),
                BufferArg(model),
                BufferArg(frame),
                _u32(source.width),
                _u32(dest.width),
                _u32(dest.channels),
                _u32(bins),
                _u32(roi.x),
                _u32(roi.y),
                _u32(1 if model_empty else 0),
            ],
            (roi.width, roi.height),
        )
        if dest.is_float:
            dest.normalized = True

    def __repr__(self) -> str:
        return f"ImagingProgram(backend={self.name!r})"
