"""
Compute-device collaborator and its CUDA implementation.

The accelerator dispatcher only talks to a ``ComputeDevice``: it allocates
mirrors, copies host arrays in and out and launches kernels by name with
an already lowered argument list. ``CudaComputeDevice`` implements that
interface with CuPy: the kernel program is compiled once per device through
``cupy.RawModule`` and every launch and transfer synchronises before it
returns.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from ..errors import BuildError
from .cuda_sources import CUDA_SOURCE

logger = logging.getLogger(__name__)

DEFAULT_COMPILE_OPTIONS: Tuple[str, ...] = ("--std=c++11", "--fmad=false")


class ComputeDevice(ABC):
    """Device memory and kernel launch interface used by the accelerator backend."""

    name: str = "device"

    @abstractmethod
    def allocate(self, length: int, dtype: np.dtype) -> Any:
        """Allocate a zeroed device array and return its handle."""

    @abstractmethod
    def write(self, handle: Any, host: np.ndarray) -> None:
        """Blocking copy host -> device."""

    @abstractmethod
    def read(self, handle: Any, host: np.ndarray) -> None:
        """Blocking copy device -> host, in place into ``host``."""

    @abstractmethod
    def launch(self, kernel_name: str, args: Sequence[Any], global_size: Tuple[int, ...]) -> None:
        """Run ``kernel_name`` over ``global_size`` and wait for completion."""


CacheKey = Tuple[str, Tuple[str, ...], int]


class KernelBinaryCache:
    """
    Compiled kernel programs keyed by (source digest, options, device id).

    Owned by whoever builds backends; share one instance to avoid
    recompiling the program for every device object on the same device.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(source: str, options: Sequence[str], device_id: int) -> CacheKey:
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
        return digest, tuple(options), int(device_id)

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
            return entry

    def put(self, key: CacheKey, program: Any) -> None:
        with self._lock:
            self._entries[key] = program

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _ceil_div(a: int, b: int) -> int:
    return (a + b - 1) // b


class CudaComputeDevice(ComputeDevice):
    """
    CUDA device driven through CuPy.

    Args:
        device_id: CUDA device ordinal
        binary_cache: Optional shared cache of compiled programs
        options: NVRTC compile options
        block_2d: Thread block shape for 2D kernels
        block_1d: Thread block size for 1D kernels

    Raises:
        BuildError: The kernel program failed to compile; the message
            carries the compiler log
    """

    def __init__(
        self,
        device_id: int = 0,
        binary_cache: Optional[KernelBinaryCache] = None,
        options: Sequence[str] = DEFAULT_COMPILE_OPTIONS,
        block_2d: Tuple[int, int] = (16, 16),
        block_1d: int = 256,
    ):
        import cupy as cp

        self._cp = cp
        self.device_id = int(device_id)
        self.options = tuple(options)
        self.block_2d = (int(block_2d[0]), int(block_2d[1]))
        self.block_1d = int(block_1d)
        self._device = cp.cuda.Device(self.device_id)
        props = cp.cuda.runtime.getDeviceProperties(self.device_id)
        self.name = f"cuda:{self.device_id} ({props['name'].decode('utf-8')})"

        with self._device:
            self._stream = cp.cuda.Stream(non_blocking=False)

        self._module = self._build(binary_cache)
        self._functions: Dict[str, Any] = {}
        self._functions_lock = threading.Lock()

    def _build(self, binary_cache: Optional[KernelBinaryCache]):
        key = KernelBinaryCache.make_key(CUDA_SOURCE, self.options, self.device_id)
        if binary_cache is not None:
            cached = binary_cache.get(key)
            if cached is not None:
                logger.debug(f"Using cached kernel program for {self.name}")
                return cached

        cp = self._cp
        logger.info(f"Compiling kernel program for {self.name} (options: {' '.join(self.options)})")
        with self._device:
            module = cp.RawModule(code=CUDA_SOURCE, options=self.options)
            try:
                module.compile()
            except cp.cuda.compiler.CompileException as e:
                log = e.get_message() if hasattr(e, "get_message") else str(e)
                logger.error(f"Kernel program build failed on {self.name}")
                raise BuildError(
                    f"Kernel program build failed on {self.name}:\n{log}", log=log
                ) from e

        if binary_cache is not None:
            binary_cache.put(key, module)
        return module

    def _function(self, kernel_name: str):
        with self._functions_lock:
            fn = self._functions.get(kernel_name)
            if fn is None:
                fn = self._module.get_function(kernel_name)
                self._functions[kernel_name] = fn
            return fn

    def allocate(self, length: int, dtype: np.dtype):
        with self._device:
            return self._cp.zeros(int(length), dtype=dtype)

    def write(self, handle, host: np.ndarray) -> None:
        with self._device:
            handle.set(np.ascontiguousarray(host), stream=self._stream)
            self._stream.synchronize()

    def read(self, handle, host: np.ndarray) -> None:
        with self._device:
            handle.get(stream=self._stream, out=host)
            self._stream.synchronize()

    def launch(self, kernel_name: str, args: Sequence[Any], global_size: Tuple[int, ...]) -> None:
        if any(extent <= 0 for extent in global_size):
            return
        fn = self._function(kernel_name)

        if len(global_size) == 2:
            bx, by = self.block_2d
            block = (bx, by, 1)
            grid = (_ceil_div(global_size[0], bx), _ceil_div(global_size[1], by), 1)
        else:
            block = (self.block_1d, 1, 1)
            grid = (_ceil_div(global_size[0], self.block_1d), 1, 1)

        kernel_args = tuple(args) + tuple(np.int32(extent) for extent in global_size)
        with self._device:
            fn(grid, block, kernel_args, stream=self._stream)
            self._stream.synchronize()

    def __repr__(self) -> str:
        return f"CudaComputeDevice({self.name!r})"
