"""
Integration tests for WorkerPool.

Tests the bounded pool including:
- Initialization and validation
- Submission and result retrieval
- Error capture
- Queueing beyond capacity
- Cooperative cancellation
- Shutdown behavior
- Statistics
"""
import threading
import time
import pytest

from core.threading import (
    AsyncTimeoutError,
    OperationCancelled,
    WorkerPool,
)


class TestWorkerPoolInit:
    """Worker pool initialization tests."""

    def test_init_creates_instance(self):
        """Test that WorkerPool can be instantiated."""
        pool = WorkerPool()
        assert pool.max_workers == 4
        assert not pool.is_shutdown
        pool.shutdown()

    def test_init_with_custom_workers(self):
        pool = WorkerPool(max_workers=2)
        assert pool.max_workers == 2
        assert pool.get_stats()['max_workers'] == 2
        pool.shutdown()

    def test_init_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            WorkerPool(max_workers=0)


class TestWorkerPoolSubmit:
    """Submission and retrieval tests."""

    def test_submit_returns_result(self, worker_pool):
        handle = worker_pool.submit(lambda: 42)
        assert handle.wait(timeout=5.0) == 42

    def test_submit_with_args_and_kwargs(self, worker_pool):
        def add(a, b, scale=1):
            return (a + b) * scale

        handle = worker_pool.submit(add, 2, 3, scale=10)
        assert handle.wait(timeout=5.0) == 50

    def test_submit_uses_given_task_id(self, worker_pool):
        handle = worker_pool.submit(lambda: None, task_id="probe-1")
        assert handle.task_id == "probe-1"
        handle.wait(timeout=5.0)

    def test_error_is_captured_and_reraised(self, worker_pool):
        def failing():
            raise ValueError("boom")

        handle = worker_pool.submit(failing)
        with pytest.raises(ValueError, match="boom"):
            handle.wait(timeout=5.0)
        assert worker_pool.get_stats()['failed'] == 1

    def test_worker_survives_failed_task(self):
        pool = WorkerPool(max_workers=1)
        try:
            bad = pool.submit(lambda: 1 / 0)
            with pytest.raises(ZeroDivisionError):
                bad.wait(timeout=5.0)
            good = pool.submit(lambda: "still alive")
            assert good.wait(timeout=5.0) == "still alive"
        finally:
            pool.shutdown()

    def test_completion_callback_receives_handle(self, worker_pool):
        seen = []
        done = threading.Event()

        def on_done(handle):
            seen.append(handle)
            done.set()

        handle = worker_pool.submit(lambda: "x", callback=on_done)
        assert done.wait(5.0)
        assert seen == [handle]
        assert handle.wait(timeout=5.0) == "x"

    def test_submissions_beyond_capacity_queue(self):
        pool = WorkerPool(max_workers=1)
        release = threading.Event()
        try:
            first = pool.submit(release.wait, 5.0)
            second = pool.submit(lambda: "queued")
            time.sleep(0.05)
            assert not second.is_complete()
            release.set()
            assert first.wait(timeout=5.0) is True
            assert second.wait(timeout=5.0) == "queued"
        finally:
            release.set()
            pool.shutdown()


class TestWorkerPoolTimeoutAndCancel:
    """Timeout and cancellation semantics."""

    def test_wait_timeout_does_not_cancel(self, worker_pool):
        """A short wait on long work raises timeout; the work stays in flight."""
        handle = worker_pool.submit(time.sleep, 1.0)
        with pytest.raises(AsyncTimeoutError):
            handle.wait(timeout=0.01)
        assert isinstance(AsyncTimeoutError("t", 0.01), TimeoutError)
        assert not handle.cancelled
        assert not handle.consumed
        assert handle.task_id in worker_pool.get_active_tasks()
        assert handle.wait(timeout=5.0) is None

    def test_cancel_queued_task(self):
        pool = WorkerPool(max_workers=1)
        release = threading.Event()
        try:
            blocker = pool.submit(release.wait, 5.0)
            queued = pool.submit(lambda: "never")
            assert queued.cancel() is True
            assert queued.is_complete()
            assert queued.task_id not in pool.get_active_tasks()
            with pytest.raises(OperationCancelled):
                queued.wait(timeout=1.0)
            release.set()
            blocker.wait(timeout=5.0)
            assert pool.get_stats()['cancelled'] == 1
        finally:
            release.set()
            pool.shutdown()

    def test_cancel_token_is_injected(self, worker_pool):
        started = threading.Event()

        def cooperative(cancel_token):
            started.set()
            while not cancel_token.cancelled:
                cancel_token.wait(0.01)
            return "stopped"

        handle = worker_pool.submit(cooperative)
        assert started.wait(5.0)
        assert handle.cancel() is True
        assert handle.cancel_token.cancelled
        assert handle.is_complete()
        assert worker_pool.active_count() == 0


class TestWorkerPoolShutdown:
    """Shutdown behavior tests."""

    def test_submit_after_shutdown_raises(self):
        pool = WorkerPool(max_workers=1)
        pool.shutdown()
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_double_shutdown_safe(self):
        pool = WorkerPool(max_workers=1)
        pool.shutdown()
        pool.shutdown()
        assert pool.is_shutdown

    def test_shutdown_cancels_active_handles(self):
        pool = WorkerPool(max_workers=1)
        release = threading.Event()
        blocker = pool.submit(release.wait, 5.0)
        queued = pool.submit(lambda: "never")
        release.set()
        pool.shutdown(wait=True)
        assert queued.cancelled
        assert blocker.cancelled
        assert pool.active_count() == 0

    def test_shutdown_reports_unretrieved_results(self, caplog):
        pool = WorkerPool(max_workers=1)
        forgotten = pool.submit(lambda: "never read", task_id="forgotten")
        read = pool.submit(lambda: "read", task_id="read")
        assert read.wait(timeout=5.0) == "read"
        deadline = time.monotonic() + 5.0
        while not forgotten.is_complete() and time.monotonic() < deadline:
            time.sleep(0.01)

        with caplog.at_level("WARNING"):
            pool.shutdown(wait=True)

        assert pool.get_stats()['unretrieved'] == 1
        assert any("forgotten" in r.getMessage() and "never retrieved" in r.getMessage()
                   for r in caplog.records)


class TestWorkerPoolStats:
    """Statistics tests."""

    def test_stats_dict_structure(self, worker_pool):
        stats = worker_pool.get_stats()
        for key in ('submitted', 'completed', 'failed', 'cancelled', 'active', 'max_workers'):
            assert key in stats

    def test_stats_count_completed(self, worker_pool):
        handles = [worker_pool.submit(lambda i=i: i * 2) for i in range(5)]
        assert sorted(h.wait(timeout=5.0) for h in handles) == [0, 2, 4, 6, 8]
        stats = worker_pool.get_stats()
        assert stats['submitted'] == 5
        assert stats['completed'] == 5
        assert stats['active'] == 0
