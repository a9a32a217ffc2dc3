"""
Kernel registration table and tagged kernel arguments.

Every kernel that either backend can run is declared once here with the
shape of its argument list. Dispatchers build the table when they are
created and check each call against it, so both backends agree on the
argument order and scalar widths without inspecting argument types at
run time.

Launch convention shared by both backends: the global extent is appended
to the argument list, ``(gw, gh)`` for 2D kernels and ``(n,)`` for 1D
kernels. CPU reference kernels additionally receive the half-open range
``[start, end)`` of the last extent dimension they should process.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Mapping, Sequence, Tuple, Union

import numpy as np

from ..errors import KernelArgumentError
from ..imaging.buffers import ElementBuffer


class ArgShape(Enum):
    """Shape of one kernel argument."""

    BUFFER = "buffer"
    SAMPLER = "sampler"
    U8 = "u8"
    I32 = "i32"
    U32 = "u32"
    F32 = "f32"


_SCALAR_DTYPES = {
    ArgShape.U8: np.uint8,
    ArgShape.I32: np.int32,
    ArgShape.U32: np.uint32,
    ArgShape.F32: np.float32,
}


class AddressMode(IntEnum):
    """How neighbourhood kernels read pixels outside the image."""

    CLAMP_TO_EDGE = 0
    ZERO = 1


@dataclass(frozen=True)
class BufferArg:
    buffer: ElementBuffer

    shape = ArgShape.BUFFER


@dataclass(frozen=True)
class ScalarArg:
    """Scalar argument with an explicit width."""

    kind: ArgShape
    value: Union[int, float]

    @property
    def shape(self) -> ArgShape:
        return self.kind

    def native(self):
        return _SCALAR_DTYPES[self.kind](self.value)

    @classmethod
    def u8(cls, value: int) -> "ScalarArg":
        return cls(ArgShape.U8, int(value))

    @classmethod
    def i32(cls, value: int) -> "ScalarArg":
        return cls(ArgShape.I32, int(value))

    @classmethod
    def u32(cls, value: int) -> "ScalarArg":
        return cls(ArgShape.U32, int(value))

    @classmethod
    def f32(cls, value: float) -> "ScalarArg":
        return cls(ArgShape.F32, float(value))


@dataclass(frozen=True)
class SamplerArg:
    mode: AddressMode = AddressMode.CLAMP_TO_EDGE

    shape = ArgShape.SAMPLER

    def native(self):
        return np.int32(self.mode)


KernelArg = Union[BufferArg, ScalarArg, SamplerArg]


@dataclass(frozen=True)
class KernelSpec:
    """
    Registered kernel.

    Attributes:
        name: Symbolic kernel name, identical on every backend
        params: Argument shapes, in order, excluding the appended extent
        dims: 1 or 2 (number of global extent dimensions)
        partitioned: Whether the CPU backend may split the last extent
            dimension across worker threads
        writes: Indices of the buffer arguments the kernel writes
    """

    name: str
    params: Tuple[ArgShape, ...]
    dims: int = 2
    partitioned: bool = True
    writes: Tuple[int, ...] = (1,)


B = ArgShape.BUFFER
S = ArgShape.SAMPLER
U8 = ArgShape.U8
I32 = ArgShape.I32
U32 = ArgShape.U32
F32 = ArgShape.F32


def _declarations() -> Sequence[KernelSpec]:
    return (
        # whole-buffer fills, 1D over elements (or pixels for rgba)
        KernelSpec("byte_set_value", (B, U8), dims=1, writes=(0,)),
        KernelSpec("uint_set_value", (B, U32), dims=1, writes=(0,)),
        KernelSpec("float_set_value", (B, F32), dims=1, writes=(0,)),
        KernelSpec("byte_set_value_rgba", (B, U8, U8, U8, U8), dims=1, writes=(0,)),
        # elementwise float, extent (width * channels, height)
        KernelSpec("float_abs", (B, B, U32, U32)),
        KernelSpec("float_add_value", (B, B, U32, U32, F32)),
        KernelSpec("float_multiply_value", (B, B, U32, U32, F32)),
        KernelSpec("float_clamp", (B, B, U32, U32, F32, F32)),
        KernelSpec("float_normalize", (B, B, U32, U32)),
        KernelSpec("float_denormalize", (B, B, U32, U32)),
        KernelSpec("byte_to_float", (B, B, U32, U32)),
        KernelSpec("float_to_byte", (B, B, U32, U32, F32)),
        # geometry, extent (width, height); args: src, dst, src_w, dst_w, channels
        KernelSpec("byte_flip_x", (B, B, U32, U32, U32)),
        KernelSpec("byte_flip_y", (B, B, U32, U32, U32)),
        KernelSpec("float_flip_x", (B, B, U32, U32, U32)),
        KernelSpec("float_flip_y", (B, B, U32, U32, U32)),
        # channels, extent (width, height)
        KernelSpec("byte_extract_channel", (B, B, U32, U32, U32)),
        KernelSpec("float_extract_channel", (B, B, U32, U32, U32)),
        KernelSpec("byte_set_channel", (B, B, U32, U32, U32, U8)),
        KernelSpec("float_set_channel", (B, B, U32, U32, U32, F32)),
        KernelSpec("byte_set_channel_mask", (B, B, B, U32, U32, U32, U32), writes=(2,)),
        KernelSpec("float_set_channel_mask", (B, B, B, U32, U32, U32, U32), writes=(2,)),
        KernelSpec("byte_swap_channel", (B, B, U32, U32, U32, U32)),
        KernelSpec("float_swap_channel", (B, B, U32, U32, U32, U32)),
        KernelSpec("byte_a_to_byte_rgba", (B, B, U32, U32)),
        # colour
        KernelSpec("byte_gray_scale", (B, B, U32, U32)),
        KernelSpec("byte_gray_scale_float", (B, B, U32, U32)),
        KernelSpec("float_gray_scale", (B, B, U32, U32)),
        KernelSpec("byte_rgb_to_hsl", (B, B, U32, U32)),
        KernelSpec("byte_hsl_to_rgb", (B, B, U32, U32)),
        KernelSpec("float_rgb_to_hsl", (B, B, U32, U32, F32)),
        KernelSpec("float_hsl_to_rgb", (B, B, U32, U32, F32)),
        # neighbourhood and difference; channels passed explicitly
        KernelSpec("float_diff", (B, B, B, U32, U32, U32), writes=(2,)),
        KernelSpec("byte_box_blur", (B, B, U32, U32, U32, I32, S)),
        KernelSpec("float_box_blur", (B, B, U32, U32, U32, I32, S)),
        KernelSpec("byte_sobel", (B, B, U32, U32, U32, S)),
        KernelSpec("float_sobel", (B, B, U32, U32, U32, S)),
        # integral images: border zeroing (1D over max(dst_w, dst_h)),
        # row prefix sums (1D over rows), column prefix sums (1D over columns)
        KernelSpec("uint_integral_borders", (B, U32, U32), dims=1, writes=(0,), partitioned=False),
        KernelSpec("float_integral_borders", (B, U32, U32), dims=1, writes=(0,), partitioned=False),
        KernelSpec("byte_integral_rows", (B, B, U32, U32, U32), dims=1, partitioned=False),
        KernelSpec("byte_integral_square_rows", (B, B, U32, U32, U32), dims=1, partitioned=False),
        KernelSpec("float_integral_rows", (B, B, U32, U32, U32), dims=1, partitioned=False),
        KernelSpec("float_integral_square_rows", (B, B, U32, U32, U32), dims=1, partitioned=False),
        KernelSpec("uint_integral_columns", (B, U32, U32), dims=1, writes=(0,), partitioned=False),
        KernelSpec("float_integral_columns", (B, U32, U32), dims=1, writes=(0,), partitioned=False),
        # histograms, extent (region width, region height)
        KernelSpec("byte_histogram_256", (B, B, U32, U32, U32), partitioned=False),
        KernelSpec("byte_rgba_histogram_n", (B, B, U32, U32, U32, U32), partitioned=False),
        # src, dst, model, frame, src_w, dst_w, dst_channels, bins, x0, y0, model_empty
        KernelSpec(
            "byte_rgba_backprojection_byte",
            (B, B, B, B, U32, U32, U32, U32, U32, U32, U32),
        ),
        KernelSpec(
            "byte_rgba_backprojection_float",
            (B, B, B, B, U32, U32, U32, U32, U32, U32, U32),
        ),
    )


def build_kernel_table() -> Dict[str, KernelSpec]:
    """Build the kernel table; duplicate names are a programming error."""
    table: Dict[str, KernelSpec] = {}
    for spec in _declarations():
        if spec.name in table:
            raise KernelArgumentError(f"Kernel '{spec.name}' registered twice")
        if spec.dims not in (1, 2):
            raise KernelArgumentError(f"Kernel '{spec.name}' has unsupported dims {spec.dims}")
        for index in spec.writes:
            if index >= len(spec.params) or spec.params[index] is not ArgShape.BUFFER:
                raise KernelArgumentError(
                    f"Kernel '{spec.name}' declares non-buffer argument {index} as written"
                )
        table[spec.name] = spec
    return table


def check_arguments(
    table: Mapping[str, KernelSpec],
    name: str,
    args: Sequence[KernelArg],
    extent: Sequence[int],
) -> KernelSpec:
    """
    Check a call against the registered argument shape.

    Returns:
        The matching KernelSpec

    Raises:
        KernelArgumentError: Unknown kernel, wrong arity, wrong argument
            shape or wrong extent dimensionality
    """
    spec = table.get(name)
    if spec is None:
        raise KernelArgumentError(f"Unknown kernel '{name}'")
    if len(args) != len(spec.params):
        raise KernelArgumentError(
            f"Kernel '{name}' expects {len(spec.params)} arguments, got {len(args)}"
        )
    for index, (arg, expected) in enumerate(zip(args, spec.params)):
        if arg.shape is not expected:
            raise KernelArgumentError(
                f"Kernel '{name}' argument {index} must be {expected.value}, "
                f"got {arg.shape.value}"
            )
    if len(extent) != spec.dims:
        raise KernelArgumentError(
            f"Kernel '{name}' is {spec.dims}D but was given extent {tuple(extent)}"
        )
    return spec
