"""
Tests for the kernel registration table and dispatch argument checks.
"""

import numpy as np
import pytest

from vision_kernels.errors import KernelArgumentError
from vision_kernels.imaging import ElementType, Image2D
from vision_kernels.kernels import (
    AddressMode,
    ArgShape,
    BufferArg,
    CpuDispatcher,
    SamplerArg,
    ScalarArg,
    build_kernel_table,
)
from vision_kernels.kernels.cpu_kernels import CPU_KERNELS
from vision_kernels.kernels.registry import check_arguments


@pytest.fixture
def table():
    return build_kernel_table()


class TestKernelTable:
    """Test the registration table."""

    def test_every_kernel_has_cpu_implementation(self, table):
        assert set(table) <= set(CPU_KERNELS)

    def test_writes_point_at_buffers(self, table):
        for spec in table.values():
            for index in spec.writes:
                assert spec.params[index] is ArgShape.BUFFER

    def test_integral_and_histogram_kernels_not_partitioned(self, table):
        for name, spec in table.items():
            if "integral" in name or "histogram" in name:
                assert not spec.partitioned, name

    def test_fills_are_1d(self, table):
        for name in ("byte_set_value", "uint_set_value", "float_set_value", "byte_set_value_rgba"):
            assert table[name].dims == 1


class TestScalarArgs:
    """Test tagged scalar arguments."""

    def test_native_widths(self):
        assert ScalarArg.u8(200).native().dtype == np.uint8
        assert ScalarArg.i32(-3).native().dtype == np.int32
        assert ScalarArg.u32(7).native().dtype == np.uint32
        assert ScalarArg.f32(0.5).native().dtype == np.float32

    def test_sampler_native(self):
        assert SamplerArg(AddressMode.ZERO).native() == 1
        assert SamplerArg().shape is ArgShape.SAMPLER


class TestCheckArguments:
    """Test call validation against the registered shapes."""

    def test_unknown_kernel(self, table):
        with pytest.raises(KernelArgumentError, match="Unknown kernel"):
            check_arguments(table, "nope", [], (1,))

    def test_wrong_arity(self, table):
        img = Image2D(2, 2, element_type=ElementType.FLOAT32)
        with pytest.raises(KernelArgumentError, match="expects 4 arguments"):
            check_arguments(table, "float_abs", [BufferArg(img), BufferArg(img)], (2, 2))

    def test_wrong_scalar_width(self, table):
        img = Image2D(2, 2, element_type=ElementType.FLOAT32)
        args = [BufferArg(img), BufferArg(img), ScalarArg.u32(2), ScalarArg.u32(2), ScalarArg.u32(1)]
        with pytest.raises(KernelArgumentError, match="argument 4 must be f32"):
            check_arguments(table, "float_add_value", args, (2, 2))

    def test_wrong_extent_dims(self, table):
        img = Image2D(2, 2, element_type=ElementType.FLOAT32)
        with pytest.raises(KernelArgumentError, match="1D"):
            check_arguments(table, "float_set_value", [BufferArg(img), ScalarArg.f32(0)], (2, 2))

    def test_dispatcher_rejects_bad_call(self):
        dispatcher = CpuDispatcher()
        img = Image2D(2, 2)
        with pytest.raises(KernelArgumentError):
            dispatcher.dispatch("byte_set_value", [BufferArg(img), ScalarArg.u32(1)], (4,))

    def test_dispatcher_runs_registered_kernel(self):
        dispatcher = CpuDispatcher()
        img = Image2D(2, 2)
        dispatcher.dispatch("byte_set_value", [BufferArg(img), ScalarArg.u8(9)], (4,))
        assert np.all(img.host == 9)
