"""
Parallel fan-out for CPU reference kernels.

Provides ParallelFanOut for splitting a kernel's row (or element) range
into contiguous partitions and running them on a bounded thread pool.
Kernels are Numba functions compiled with ``nogil=True`` and write
disjoint slices of shared host arrays, so threads are used rather than
processes.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from os import cpu_count
from typing import Any, Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


def split_range(total: int, parts: int) -> List[Tuple[int, int]]:
    """
    Split ``[0, total)`` into at most ``parts`` contiguous half-open ranges.

    Earlier ranges receive the remainder, so sizes differ by at most one.

    Example:
        >>> split_range(10, 3)
        [(0, 4), (4, 7), (7, 10)]
    """
    if total <= 0:
        return []
    parts = max(1, min(int(parts), total))
    base, extra = divmod(total, parts)
    ranges = []
    start = 0
    for i in range(parts):
        end = start + base + (1 if i < extra else 0)
        ranges.append((start, end))
        start = end
    return ranges


class ParallelFanOut:
    """
    Bounded thread pool that runs partitions and waits for all of them.

    Every submitted partition runs to completion; siblings are never
    cancelled. If any partition raises, the first exception in partition
    order is re-raised after all partitions finish and the remaining
    failures are logged.

    Example:
        fan_out = ParallelFanOut(n_workers=4)
        fan_out.for_range(height, lambda start, end: kernel(..., start, end))
    """

    def __init__(self, n_workers: Optional[int] = None):
        """
        Initialize the fan-out.

        Args:
            n_workers: Number of worker threads. If None, uses cpu_count - 1
                to leave one core for the calling thread. Minimum is 1.
        """
        if n_workers is None:
            n_workers = max(1, (cpu_count() or 1) - 1)
        else:
            n_workers = max(1, int(n_workers))
        self.n_workers = n_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

        logger.debug(f"Initialized ParallelFanOut with {self.n_workers} workers")

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.n_workers, thread_name_prefix="vk-fanout"
                )
            return self._executor

    def run(self, tasks: Sequence[Callable[[], Any]]) -> List[Any]:
        """
        Run every task and return their results in submission order.

        A single task, or a pool of one worker, runs on the calling thread.

        Raises:
            Exception: The first failure in task order, after all tasks finished
        """
        n_tasks = len(tasks)
        if n_tasks == 0:
            return []

        start_time = time.perf_counter()
        results: List[Any] = []
        errors: List[Tuple[int, BaseException]] = []

        if self.n_workers == 1 or n_tasks == 1:
            for idx, task in enumerate(tasks):
                try:
                    results.append(task())
                except Exception as e:
                    errors.append((idx, e))
                    results.append(None)
        else:
            futures = [self._pool().submit(task) for task in tasks]
            for idx, future in enumerate(futures):
                error = future.exception()
                if error is not None:
                    errors.append((idx, error))
                    results.append(None)
                else:
                    results.append(future.result())

        if errors:
            logger.error(f"{len(errors)} of {n_tasks} partitions failed")
            for idx, error in errors[1:]:
                logger.error(f"  Partition {idx}: {type(error).__name__}: {error}")
            raise errors[0][1]

        logger.debug(
            f"Ran {n_tasks} partitions on {self.n_workers} threads in "
            f"{(time.perf_counter() - start_time) * 1e3:.2f} ms"
        )
        return results

    def for_range(self, total: int, fn: Callable[[int, int], Any]) -> None:
        """
        Call ``fn(start, end)`` for contiguous partitions of ``[0, total)``.

        Args:
            total: Size of the range (rows for 2D kernels)
            fn: Callable processing one half-open partition
        """
        ranges = split_range(total, self.n_workers)
        self.run([lambda s=start, e=end: fn(s, e) for start, end in ranges])

    def close(self) -> None:
        """Shut the worker threads down; the pool is recreated on next use."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "ParallelFanOut":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
