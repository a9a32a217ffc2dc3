"""
Tests for the capture and codec boundary helpers.
"""

import numpy as np
import pytest

from vision_kernels.errors import ImageFormatError, NullArgumentError, SizeMismatchError
from vision_kernels.imaging import (
    ChannelLayout,
    ElementType,
    PixelFormat,
    RawFrame,
    frame_to_image,
    image_from_array,
    image_to_array,
)


def _bgr_frame(bottom_up=False, pad=2):
    # 2x2 BGR24 frame with two padding bytes per row
    rows = [
        [1, 2, 3, 4, 5, 6] + [0] * pad,
        [7, 8, 9, 10, 11, 12] + [0] * pad,
    ]
    data = bytes(v for row in rows for v in row)
    return RawFrame(2, 2, 6 + pad, PixelFormat.BGR24, data, bottom_up=bottom_up)


class TestRawFrame:
    """Test frame decoding."""

    def test_bytes_per_pixel(self):
        assert PixelFormat.BGR24.bytes_per_pixel == 3
        assert PixelFormat.BGRA32.bytes_per_pixel == 4
        assert PixelFormat.GRAY8.bytes_per_pixel == 1

    def test_pixels_drop_padding(self):
        pixels = _bgr_frame().pixels()
        assert pixels.shape == (2, 2, 3)
        np.testing.assert_array_equal(pixels[1, 0], [7, 8, 9])

    def test_bottom_up(self):
        pixels = _bgr_frame(bottom_up=True).pixels()
        np.testing.assert_array_equal(pixels[0, 0], [7, 8, 9])

    def test_short_stride(self):
        frame = RawFrame(4, 1, 8, PixelFormat.BGR24, bytes(8))
        with pytest.raises(SizeMismatchError):
            frame.pixels()

    def test_short_data(self):
        frame = RawFrame(2, 2, 6, PixelFormat.BGR24, bytes(10))
        with pytest.raises(SizeMismatchError):
            frame.pixels()


class TestFrameToImage:
    """Test frame conversion into images."""

    def test_bgr24_to_rgba(self):
        img = frame_to_image(_bgr_frame())
        assert img.layout is ChannelLayout.RGBA
        np.testing.assert_array_equal(img.pixels()[0, 0], [3, 2, 1, 255])
        np.testing.assert_array_equal(img.pixels()[1, 1], [12, 11, 10, 255])

    def test_bgra32_keeps_alpha(self):
        frame = RawFrame(1, 1, 4, PixelFormat.BGRA32, bytes([10, 20, 30, 40]))
        img = frame_to_image(frame)
        np.testing.assert_array_equal(img.pixels()[0, 0], [30, 20, 10, 40])

    def test_gray8(self):
        frame = RawFrame(3, 1, 4, PixelFormat.GRAY8, bytes([5, 6, 7, 0]))
        img = frame_to_image(frame)
        assert img.layout is ChannelLayout.A
        np.testing.assert_array_equal(img.host, [5, 6, 7])

    def test_into_existing_device_image(self, device_program, emulated_device):
        dest = device_program.create_image(2, 2, layout=ChannelLayout.RGBA)
        out = frame_to_image(_bgr_frame(), dest=dest)
        assert out is dest
        np.testing.assert_array_equal(dest.device_handle[:4], [3, 2, 1, 255])

    def test_dest_wrong_size(self, cpu_program):
        dest = cpu_program.create_image(3, 2, layout=ChannelLayout.RGBA)
        with pytest.raises(SizeMismatchError):
            frame_to_image(_bgr_frame(), dest=dest)

    def test_dest_wrong_layout(self, cpu_program):
        dest = cpu_program.create_image(2, 2)
        with pytest.raises(ImageFormatError):
            frame_to_image(_bgr_frame(), dest=dest)

    def test_null_frame(self):
        with pytest.raises(NullArgumentError):
            frame_to_image(None)


class TestArrays:
    """Test array import and export."""

    def test_rgb_gets_alpha(self):
        array = np.array([[[1, 2, 3]]], dtype=np.uint8)
        img = image_from_array(array)
        np.testing.assert_array_equal(img.pixels()[0, 0], [1, 2, 3, 255])

    def test_normalized_float_alpha(self):
        array = np.zeros((1, 1, 3), dtype=np.float32)
        img = image_from_array(array, normalized=True)
        assert img.normalized
        assert img.element_type is ElementType.FLOAT32
        assert img.pixels()[0, 0, 3] == 1.0

    def test_bgr_round_trip(self, rng):
        array = rng.integers(0, 256, size=(4, 5, 4), dtype=np.uint8)
        img = image_from_array(array, bgr=True)
        np.testing.assert_array_equal(img.pixels()[:, :, 0], array[:, :, 2])
        np.testing.assert_array_equal(image_to_array(img, bgr=True), array)

    def test_gray(self, cpu_program):
        array = np.arange(6, dtype=np.uint8).reshape(2, 3)
        img = image_from_array(array, program=cpu_program)
        assert img.layout is ChannelLayout.A
        np.testing.assert_array_equal(image_to_array(img), array)

    def test_unsupported_dtype(self):
        with pytest.raises(ImageFormatError):
            image_from_array(np.zeros((2, 2), dtype=np.float64))

    def test_unsupported_shape(self):
        with pytest.raises(ImageFormatError):
            image_from_array(np.zeros((2, 2, 2), dtype=np.uint8))
