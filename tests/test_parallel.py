"""
Unit tests for the CPU fan-out infrastructure.

Tests range splitting, ordering of results and error propagation of
ParallelFanOut.
"""

import threading

import pytest

from vision_kernels.acceleration import ParallelFanOut, split_range


class TestSplitRange:
    """Test contiguous range partitioning."""

    def test_even_split(self):
        assert split_range(8, 4) == [(0, 2), (2, 4), (4, 6), (6, 8)]

    def test_remainder_goes_first(self):
        assert split_range(10, 3) == [(0, 4), (4, 7), (7, 10)]

    def test_more_parts_than_items(self):
        assert split_range(2, 5) == [(0, 1), (1, 2)]

    def test_empty(self):
        assert split_range(0, 4) == []

    def test_covers_range(self):
        ranges = split_range(1001, 7)
        assert ranges[0][0] == 0
        assert ranges[-1][1] == 1001
        for (_, end), (start, _) in zip(ranges, ranges[1:]):
            assert end == start


class TestParallelFanOut:
    """Test suite for ParallelFanOut."""

    def test_initialization(self):
        assert ParallelFanOut().n_workers >= 1
        assert ParallelFanOut(n_workers=3).n_workers == 3
        assert ParallelFanOut(n_workers=0).n_workers == 1

    def test_results_in_order(self):
        with ParallelFanOut(n_workers=4) as fan_out:
            results = fan_out.run([lambda i=i: i * i for i in range(10)])
        assert results == [i * i for i in range(10)]

    def test_sequential_for_single_worker(self):
        fan_out = ParallelFanOut(n_workers=1)
        caller = threading.current_thread()
        threads = fan_out.run([lambda: threading.current_thread() for _ in range(3)])
        assert all(t is caller for t in threads)

    def test_for_range_visits_every_index(self):
        seen = []
        lock = threading.Lock()

        def work(start, end):
            with lock:
                seen.extend(range(start, end))

        with ParallelFanOut(n_workers=4) as fan_out:
            fan_out.for_range(103, work)
        assert sorted(seen) == list(range(103))

    def test_first_error_raised_after_all_complete(self):
        completed = []

        def task(i):
            if i in (1, 3):
                raise ValueError(f"partition {i}")
            completed.append(i)
            return i

        with ParallelFanOut(n_workers=4) as fan_out:
            with pytest.raises(ValueError, match="partition 1"):
                fan_out.run([lambda i=i: task(i) for i in range(5)])
        assert sorted(completed) == [0, 2, 4]

    def test_single_worker_runs_siblings_after_failure(self):
        completed = []

        def task(i):
            if i == 0:
                raise ValueError("partition 0")
            completed.append(i)
            return i

        fan_out = ParallelFanOut(n_workers=1)
        with pytest.raises(ValueError, match="partition 0"):
            fan_out.run([lambda i=i: task(i) for i in range(3)])
        assert completed == [1, 2]

    def test_single_worker_raises_first_failure_in_order(self):
        def fail(message):
            raise RuntimeError(message)

        fan_out = ParallelFanOut(n_workers=1)
        with pytest.raises(RuntimeError, match="first"):
            fan_out.run([lambda: 1, lambda: fail("first"), lambda: fail("second")])

    def test_pool_recreated_after_close(self):
        fan_out = ParallelFanOut(n_workers=2)
        assert fan_out.run([lambda: 1, lambda: 2]) == [1, 2]
        fan_out.close()
        assert fan_out.run([lambda: 3, lambda: 4]) == [3, 4]
        fan_out.close()
