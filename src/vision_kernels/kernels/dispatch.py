"""
Backend dispatchers.

A dispatcher owns the kernel table, decides what storage new buffers get
and runs a registered kernel over a global extent. ``ImagingProgram`` is
written once against this interface:

- ``CpuDispatcher`` runs the Numba reference kernels on host arrays,
  fanning row-partitionable kernels out over a thread pool.
- ``DeviceDispatcher`` lowers buffers to device handles, launches on a
  ``ComputeDevice`` and marks every written buffer modified.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from ..acceleration.device import ComputeDevice
from ..acceleration.parallel import ParallelFanOut
from ..errors import TransferError
from ..imaging.buffers import Storage
from ..imaging.storage import DeviceStorage, HostStorage
from .cpu_kernels import CPU_KERNELS
from .registry import BufferArg, KernelArg, KernelSpec, build_kernel_table, check_arguments

logger = logging.getLogger(__name__)


class Dispatcher(ABC):
    """Runs registered kernels for one backend."""

    name = "dispatcher"

    def __init__(self):
        self.kernels: Dict[str, KernelSpec] = build_kernel_table()

    @property
    def is_accelerated(self) -> bool:
        return False

    @abstractmethod
    def create_storage(self) -> Storage:
        """Storage for a buffer allocated on this backend."""

    def dispatch(self, kernel_name: str, args: Sequence[KernelArg], extent: Sequence[int]) -> None:
        """
        Check ``args`` against the registered shape and run the kernel.

        Args:
            kernel_name: Registered kernel name
            args: Tagged arguments in registry order
            extent: Global extent, ``(gw, gh)`` or ``(n,)``

        Raises:
            KernelArgumentError: The call does not match the registry entry
        """
        spec = check_arguments(self.kernels, kernel_name, args, extent)
        self._run(spec, list(args), tuple(int(e) for e in extent))

    @abstractmethod
    def _run(self, spec: KernelSpec, args: List[KernelArg], extent: Tuple[int, ...]) -> None:
        ...


class CpuDispatcher(Dispatcher):
    """
    Host reference backend.

    Args:
        fan_out: Thread pool for row-partitionable kernels (None runs
            every kernel on the calling thread)
        min_pixels: Smallest extent (product of dimensions) that fans out
    """

    name = "cpu"

    def __init__(self, fan_out: Optional[ParallelFanOut] = None, min_pixels: int = 65536):
        super().__init__()
        self.fan_out = fan_out
        self.min_pixels = int(min_pixels)
        missing = sorted(set(self.kernels) - set(CPU_KERNELS))
        if missing:
            raise RuntimeError(f"CPU kernels missing for: {', '.join(missing)}")

    def create_storage(self) -> Storage:
        return HostStorage()

    def close(self) -> None:
        if self.fan_out is not None:
            self.fan_out.close()

    @staticmethod
    def _lower(args: Sequence[KernelArg]) -> list:
        return [arg.buffer.host if isinstance(arg, BufferArg) else arg.native() for arg in args]

    def _should_fan_out(self, spec: KernelSpec, extent: Tuple[int, ...]) -> bool:
        if self.fan_out is None or self.fan_out.n_workers < 2 or not spec.partitioned:
            return False
        work = 1
        for e in extent:
            work *= e
        return work >= self.min_pixels

    def _run(self, spec: KernelSpec, args: List[KernelArg], extent: Tuple[int, ...]) -> None:
        fn = CPU_KERNELS[spec.name]
        native = self._lower(args)
        total = extent[-1]
        if total <= 0:
            return
        if self._should_fan_out(spec, extent):
            self.fan_out.for_range(total, lambda start, end: fn(*native, *extent, start, end))
        else:
            fn(*native, *extent, 0, total)


class DeviceDispatcher(Dispatcher):
    """
    Accelerator backend over a ``ComputeDevice``.

    Every buffer argument must be mirrored on this dispatcher's device.
    """

    name = "device"

    def __init__(self, device: ComputeDevice):
        super().__init__()
        if device is None:
            raise TransferError("DeviceDispatcher requires a compute device")
        self.device = device
        self.name = device.name

    @property
    def is_accelerated(self) -> bool:
        return True

    def create_storage(self) -> Storage:
        return DeviceStorage(self.device)

    def _lower(self, spec: KernelSpec, args: Sequence[KernelArg]) -> list:
        lowered = []
        for index, arg in enumerate(args):
            if isinstance(arg, BufferArg):
                buffer = arg.buffer
                storage = buffer.storage
                if not storage.is_mirrored or getattr(storage, "device", None) is not self.device:
                    raise TransferError(
                        f"Kernel '{spec.name}' argument {index} is not mirrored on "
                        f"{self.device.name}; create it through the accelerator program"
                    )
                lowered.append(buffer.device_handle)
            else:
                lowered.append(arg.native())
        return lowered

    def _run(self, spec: KernelSpec, args: List[KernelArg], extent: Tuple[int, ...]) -> None:
        lowered = self._lower(spec, args)
        self.device.launch(spec.name, lowered, extent)
        for index in spec.writes:
            args[index].buffer.mark_modified()
