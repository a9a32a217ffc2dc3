"""
Tests for the accelerator dispatcher over the emulated compute device.

Covers the host/device synchronisation contract: written buffers are
marked modified, host reads pull lazily, and buffers that are not
mirrored on the dispatcher's device are rejected.
"""

import numpy as np
import pytest

from vision_kernels.acceleration import KernelBinaryCache
from vision_kernels.backend import create_device_program
from vision_kernels.errors import TransferError
from vision_kernels.imaging import ChannelLayout, ElementType, Image2D
from vision_kernels.kernels import DeviceDispatcher

from conftest import EmulatedComputeDevice


class TestDeviceDispatcher:
    """Test the accelerator dispatcher."""

    def test_identity(self, device_program, emulated_device):
        assert device_program.is_accelerated
        assert device_program.name == "emulated"
        assert device_program.dispatcher.device is emulated_device

    def test_requires_device(self):
        with pytest.raises(TransferError):
            DeviceDispatcher(None)

    def test_buffers_are_mirrored(self, device_program):
        img = device_program.create_image(4, 4)
        assert img.is_device_backed
        assert img.device_handle is not None

    def test_written_buffer_marked_modified(self, device_program):
        src = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        dst = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        device_program.set_value(src, 3.0)
        assert src.modified
        device_program.normalize(src, dst)
        assert dst.modified

    def test_source_not_marked_modified(self, device_program):
        src = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        dst = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        device_program.abs(src, dst)
        assert not src.modified

    def test_lazy_pull(self, device_program, emulated_device):
        img = device_program.create_image(3, 3)
        device_program.set_value(img, 42)
        assert img.modified
        reads = emulated_device.reads
        assert np.all(img.host == 42)
        assert emulated_device.reads == reads + 1
        assert not img.modified
        img.host
        assert emulated_device.reads == reads + 1

    def test_host_edit_needs_upload(self, device_program):
        src = device_program.create_image(2, 1, element_type=ElementType.FLOAT32)
        dst = device_program.create_image(2, 1, element_type=ElementType.FLOAT32)
        src.host[:] = -1.0
        device_program.abs(src, dst)
        np.testing.assert_array_equal(dst.host, [0.0, 0.0])
        src.upload_to_device()
        device_program.abs(src, dst)
        np.testing.assert_array_equal(dst.host, [1.0, 1.0])

    def test_host_only_buffer_rejected(self, device_program):
        src = Image2D(4, 4, element_type=ElementType.FLOAT32)
        dst = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        with pytest.raises(TransferError):
            device_program.abs(src, dst)

    def test_foreign_device_rejected(self, device_program):
        other = create_device_program(EmulatedComputeDevice())
        src = other.create_image(4, 4, element_type=ElementType.FLOAT32)
        dst = device_program.create_image(4, 4, element_type=ElementType.FLOAT32)
        with pytest.raises(TransferError):
            device_program.abs(src, dst)

    def test_integral_launch_sequence(self, device_program, emulated_device):
        src = device_program.create_image(8, 8)
        dst = device_program.create_image(8, 8, element_type=ElementType.UINT32)
        device_program.integral(src, dst)
        assert emulated_device.launches[-3:] == [
            "uint_integral_borders",
            "byte_integral_rows",
            "uint_integral_columns",
        ]

    def test_parity_with_cpu(self, device_program, cpu_program, rng):
        values = rng.integers(0, 256, size=(32, 24, 4), dtype=np.uint8)
        results = []
        for program in (cpu_program, device_program):
            src = program.create_image(24, 32, layout=ChannelLayout.RGBA, data=values)
            blurred = program.create_image(24, 32, layout=ChannelLayout.RGBA)
            edges = program.create_image(24, 32, layout=ChannelLayout.RGBA)
            hsl = program.create_image(24, 32, layout=ChannelLayout.RGBA)
            program.box_blur(src, blurred, 2)
            program.sobel(blurred, edges)
            program.rgb_to_hsl(edges, hsl)
            results.append(hsl.pixels().copy())
        np.testing.assert_array_equal(results[0], results[1])


class TestKernelBinaryCache:
    """Test the compiled program cache bookkeeping."""

    def test_hits_and_misses(self):
        cache = KernelBinaryCache()
        key = KernelBinaryCache.make_key("source", ("--std=c++11",), 0)
        assert cache.get(key) is None
        cache.put(key, "program")
        assert cache.get(key) == "program"
        assert (cache.hits, cache.misses) == (1, 1)
        assert key in cache
        assert len(cache) == 1

    def test_key_separates_devices_and_options(self):
        base = KernelBinaryCache.make_key("source", ("--std=c++11",), 0)
        assert base != KernelBinaryCache.make_key("source", ("--std=c++11",), 1)
        assert base != KernelBinaryCache.make_key("source", ("--std=c++14",), 0)
        assert base != KernelBinaryCache.make_key("other", ("--std=c++11",), 0)

    def test_clear(self):
        cache = KernelBinaryCache()
        cache.put(KernelBinaryCache.make_key("s", (), 0), object())
        cache.clear()
        assert len(cache) == 0
