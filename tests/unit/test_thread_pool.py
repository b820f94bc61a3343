"""
Unit tests for the worker thread pool.
"""

import threading
import time

import pytest

from routekit.core.thread_pool import Task, ThreadPool


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_submitted_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()
        try:
            assert pool.submit(done.set)
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown()

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()
        try:
            pool.submit(lambda: 1 / 0)
            pool.submit(done.set)
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown()

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, max_queue=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(block)
            assert started.wait(timeout=5.0)
            assert pool.submit(lambda: None, block=False)
            assert pool.submit(lambda: None, block=False) is False
        finally:
            release.set()
            pool.shutdown()

    def test_submit_requires_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=4, max_workers=2)


class TestTask:
    def test_staleness(self):
        task = Task(func=print, timeout=1.0, submitted_at=10.0)
        assert not task.is_stale(10.5)
        assert task.is_stale(11.5)
        assert not Task(func=print).is_stale(1e12)

    def test_stale_task_runs_rejection_instead(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()
        rejected = threading.Event()
        ran = []

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(block)
            assert started.wait(timeout=5.0)
            pool.submit(lambda: ran.append(True), timeout=0.05, on_reject=rejected.set)
            time.sleep(0.2)
            release.set()
            assert rejected.wait(timeout=5.0)
        finally:
            release.set()
            pool.shutdown()

        assert ran == []
