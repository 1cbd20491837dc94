"""
Unit tests for the worker thread pool.
"""

import logging
import threading
import time

import pytest

from scratchhttp.core.thread_pool import ThreadPool, WorkerState


@pytest.fixture
def pool():
    pools = []

    def _make(**kwargs) -> ThreadPool:
        kwargs.setdefault("idle_timeout", 0.1)
        p = ThreadPool(**kwargs)
        p.start()
        pools.append(p)
        return p

    yield _make

    for p in pools:
        p.shutdown(wait=False)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_starts_min_workers(self, pool):
        p = pool(min_workers=3)
        assert p.worker_count == 3

    def test_runs_tasks(self, pool):
        p = pool(min_workers=2)
        done = threading.Event()

        p.submit(done.set)

        assert done.wait(timeout=2.0)

    def test_passes_arguments(self, pool):
        p = pool(min_workers=1)
        results = []
        done = threading.Event()

        def task(a, b, c=None):
            results.append((a, b, c))
            done.set()

        p.submit(task, args=(1, 2), kwargs={"c": 3})

        assert done.wait(timeout=2.0)
        assert results == [(1, 2, 3)]

    def test_unbounded_gives_every_task_a_worker(self, pool):
        """Test blocked tasks never starve later ones when unbounded."""
        p = pool(min_workers=1, max_workers=None)
        release = threading.Event()
        started = threading.Semaphore(0)

        def blocked():
            started.release()
            release.wait(timeout=5.0)

        for _ in range(6):
            p.submit(blocked)

        # All six must be running at once
        for _ in range(6):
            assert started.acquire(timeout=2.0)

        assert p.worker_count >= 6
        release.set()

    def test_bounded_pool_queues(self, pool):
        """Test a capped pool never exceeds max_workers."""
        p = pool(min_workers=1, max_workers=2)
        release = threading.Event()
        running = []
        lock = threading.Lock()

        def blocked():
            with lock:
                running.append(1)
            release.wait(timeout=5.0)

        for _ in range(5):
            p.submit(blocked)

        time.sleep(0.3)
        assert p.worker_count == 2
        with lock:
            assert len(running) == 2

        release.set()

    def test_failing_task_does_not_kill_worker(self, pool):
        p = pool(min_workers=1, max_workers=1)
        done = threading.Event()

        def broken():
            raise RuntimeError("boom")

        p.submit(broken)
        p.submit(done.set)

        assert done.wait(timeout=2.0)
        assert p.stats["tasks"]["failed"] == 1

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_submit_after_shutdown(self, pool):
        p = pool(min_workers=1)
        p.shutdown()

        with pytest.raises(RuntimeError):
            p.submit(lambda: None)

    def test_shutdown_waits_for_tasks(self, pool):
        p = pool(min_workers=1)
        finished = []

        def slow():
            time.sleep(0.2)
            finished.append(True)

        p.submit(slow)
        p.shutdown(wait=True, timeout=5.0)

        assert finished == [True]
        assert p.worker_count == 0

    def test_outstanding_tasks_drop_to_zero(self, pool):
        p = pool(min_workers=2)
        done = threading.Event()

        p.submit(done.set)
        assert done.wait(timeout=2.0)

        deadline = time.time() + 2.0
        while p.outstanding_tasks and time.time() < deadline:
            time.sleep(0.01)
        assert p.outstanding_tasks == 0

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=4, max_workers=2)

    def test_stats_counts_tasks(self, pool):
        p = pool(min_workers=2)
        done = threading.Event()

        p.submit(lambda: None)
        p.submit(done.set)
        assert done.wait(timeout=2.0)

        deadline = time.time() + 2.0
        while p.outstanding_tasks and time.time() < deadline:
            time.sleep(0.01)

        stats = p.stats
        assert stats["tasks"] == {"outstanding": 0, "completed": 2, "failed": 0}
        assert stats["workers"]["total"] == 2
        assert stats["workers"]["idle"] == 2
        assert all(w.state == WorkerState.IDLE for w in p._workers)

    def test_shutdown_logs_task_counts(self, pool, caplog):
        p = pool(min_workers=1)
        done = threading.Event()
        p.submit(done.set)
        assert done.wait(timeout=2.0)

        with caplog.at_level(logging.INFO, logger="scratchhttp.core.thread_pool"):
            p.shutdown(wait=True, timeout=5.0)

        assert "1 tasks completed, 0 failed" in caplog.text


class TestScaleDown:
    """Tests for retiring idle workers above min_workers."""

    def test_surplus_workers_retire_when_idle(self, pool):
        p = pool(min_workers=1, idle_timeout=0.1)
        release = threading.Event()
        started = threading.Semaphore(0)

        def blocked():
            started.release()
            release.wait(timeout=5.0)

        for _ in range(4):
            p.submit(blocked)
        for _ in range(4):
            assert started.acquire(timeout=2.0)
        assert p.worker_count == 4

        release.set()

        deadline = time.time() + 3.0
        while p.worker_count > 1 and time.time() < deadline:
            time.sleep(0.05)
        assert p.worker_count == 1

    def test_busy_workers_never_retire(self, pool):
        """Test retirement waits until the extra workers are free."""
        p = pool(min_workers=1, idle_timeout=0.05)
        release = threading.Event()
        started = threading.Semaphore(0)

        def blocked():
            started.release()
            release.wait(timeout=5.0)

        for _ in range(3):
            p.submit(blocked)
        for _ in range(3):
            assert started.acquire(timeout=2.0)

        time.sleep(0.5)
        assert p.worker_count == 3
        release.set()

    def test_pool_keeps_serving_after_scale_down(self, pool):
        p = pool(min_workers=1, idle_timeout=0.05)
        release = threading.Event()

        for _ in range(3):
            p.submit(release.wait, args=(5.0,))
        release.set()

        deadline = time.time() + 3.0
        while p.worker_count > 1 and time.time() < deadline:
            time.sleep(0.05)

        done = threading.Event()
        p.submit(done.set)
        assert done.wait(timeout=2.0)
