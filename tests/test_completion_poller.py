"""
Tests for CompletionPoller: timer-driven, exactly-once delivery.
"""
import threading
import time
import pytest

from PySide6.QtCore import QThread

from core.threading import CompletionPoller, OperationCancelled


@pytest.mark.qt
class TestCompletionPoller:

    def _collect(self):
        successes, errors = [], []
        return successes, errors, successes.append, errors.append

    def test_success_delivered_once(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()
        handle = worker_pool.submit(lambda: "done")
        poller = CompletionPoller(handle, on_success, on_error, ui_bridge, interval_ms=10)
        poller.start()

        qtbot.waitUntil(lambda: bool(poller.delivered), timeout=5000)
        qtbot.wait(100)
        assert successes == ["done"]
        assert errors == []
        assert not poller.is_active()
        assert handle.consumed

    def test_error_delivered_to_error_callback(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()

        def failing():
            raise ConnectionError("sql unreachable")

        poller = CompletionPoller(worker_pool.submit(failing), on_success, on_error,
                                  ui_bridge, interval_ms=10)
        poller.start()
        qtbot.waitUntil(lambda: len(errors) == 1, timeout=5000)
        assert successes == []
        assert isinstance(errors[0], ConnectionError)

    def test_callbacks_run_on_ui_thread(self, qt_app, qtbot, worker_pool, ui_bridge):
        main_thread = qt_app.thread()
        threads = []
        handle = worker_pool.submit(lambda: None)
        poller = CompletionPoller(handle, lambda _r: threads.append(QThread.currentThread() is main_thread),
                                  lambda _e: None, ui_bridge, interval_ms=10)
        poller.start()
        qtbot.waitUntil(lambda: bool(threads), timeout=5000)
        assert threads == [True]

    def test_polls_until_complete(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()
        handle = worker_pool.submit(time.sleep, 0.2)
        poller = CompletionPoller(handle, on_success, on_error, ui_bridge, interval_ms=20)
        poller.start()
        assert poller.is_active()
        qtbot.waitUntil(lambda: bool(poller.delivered), timeout=5000)
        assert poller.ticks > 1
        assert successes == [None]

    def test_cancel_delivers_operation_cancelled(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()
        release = threading.Event()
        handle = worker_pool.submit(release.wait, 5.0)
        poller = CompletionPoller(handle, on_success, on_error, ui_bridge, interval_ms=10)
        poller.start()

        assert poller.cancel() is True
        release.set()
        qtbot.wait(100)
        assert successes == []
        assert len(errors) == 1
        assert isinstance(errors[0], OperationCancelled)
        assert poller.cancel() is False

    def test_start_from_worker_thread(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()
        handle = worker_pool.submit(lambda: 7)
        poller = CompletionPoller(handle, on_success, on_error, ui_bridge, interval_ms=10)

        threading.Thread(target=poller.start, daemon=True).start()
        qtbot.waitUntil(lambda: successes == [7], timeout=5000)
        assert errors == []

    def test_timer_stopped_before_success_callback(self, qtbot, worker_pool, ui_bridge):
        active_at_entry = []
        holder = {}
        handle = worker_pool.submit(lambda: "done")
        poller = CompletionPoller(handle, lambda _r: active_at_entry.append(holder['poller'].is_active()),
                                  lambda _e: None, ui_bridge, interval_ms=10)
        holder['poller'] = poller
        poller.start()
        qtbot.waitUntil(lambda: bool(active_at_entry), timeout=5000)
        assert active_at_entry == [False]

    def test_timer_stopped_before_error_callback(self, qtbot, worker_pool, ui_bridge):
        active_at_entry = []
        holder = {}

        def failing():
            raise OSError("access denied")

        poller = CompletionPoller(worker_pool.submit(failing), lambda _r: None,
                                  lambda _e: active_at_entry.append(holder['poller'].is_active()),
                                  ui_bridge, interval_ms=10)
        holder['poller'] = poller
        poller.start()
        qtbot.waitUntil(lambda: bool(active_at_entry), timeout=5000)
        assert active_at_entry == [False]

    def test_base_exception_reaches_error_callback(self, qtbot, worker_pool, ui_bridge):
        successes, errors, on_success, on_error = self._collect()

        def interrupted():
            raise KeyboardInterrupt()

        poller = CompletionPoller(worker_pool.submit(interrupted), on_success, on_error,
                                  ui_bridge, interval_ms=10)
        poller.start()
        qtbot.waitUntil(lambda: bool(errors), timeout=5000)
        assert isinstance(errors[0], KeyboardInterrupt)
        assert successes == []
        assert not poller.is_active()
