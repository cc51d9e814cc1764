"""
Tests for OperationRunner: guard-acquire, submit, poll, deliver, guard-release.
"""
import sys
import threading
import pytest

from core.operations import OperationRunner
from core.threading import OperationCancelled


class Interrupted(BaseException):
    """Raised by actions to simulate an interrupt reaching the worker."""


@pytest.fixture
def runner(worker_pool, ui_bridge):
    return OperationRunner(worker_pool, ui_bridge, poll_interval_ms=10)


@pytest.mark.qt
class TestOperationRunner:

    def test_success_path_releases_guard(self, qtbot, runner):
        results = []
        assert runner.can_start()
        assert runner.run("Health Check", lambda: "ok", results.append, lambda e: None)
        assert not runner.can_start()
        assert runner.current_operation == "Health Check"
        qtbot.waitUntil(lambda: results == ["ok"], timeout=5000)
        assert runner.can_start()

    def test_throwing_action_releases_guard(self, qtbot, runner):
        errors = []

        def failing():
            raise RuntimeError("service start failed")

        runner.run("Repair", failing, lambda r: None, errors.append)
        qtbot.waitUntil(lambda: len(errors) == 1, timeout=5000)
        assert str(errors[0]) == "service start failed"
        assert runner.can_start()
        assert not runner.guard.is_held()

    def test_base_exception_from_action_is_delivered(self, qtbot, runner):
        errors, successes = [], []

        def interrupted():
            raise Interrupted("interrupted")

        runner.run("Repair", interrupted, successes.append, errors.append)
        qtbot.waitUntil(lambda: bool(errors), timeout=5000)
        qtbot.wait(50)
        assert len(errors) == 1
        assert isinstance(errors[0], Interrupted)
        assert successes == []
        assert runner.can_start()

    def test_system_exit_from_action_does_not_end_process(self, qtbot, runner):
        errors = []
        runner.run("Repair", lambda: sys.exit(3), None, errors.append)
        qtbot.waitUntil(lambda: bool(errors), timeout=5000)
        assert isinstance(errors[0], SystemExit)
        assert errors[0].code == 3
        assert runner.can_start()

    def test_throwing_callback_still_releases_guard(self, qtbot, runner):
        finished = []
        runner.operation_finished.connect(lambda name, ok: finished.append((name, ok)))

        def bad_callback(_result):
            raise ValueError("callback blew up")

        runner.run("Health Check", lambda: 1, bad_callback)
        qtbot.waitUntil(lambda: bool(finished), timeout=5000)
        assert finished == [("Health Check", True)]
        assert runner.can_start()

    def test_rejected_while_running(self, qtbot, runner):
        release = threading.Event()
        rejected = []
        successes = []
        runner.operation_rejected.connect(rejected.append)

        assert runner.run("Repair", lambda: release.wait(5.0), successes.append)
        assert runner.run("Health Check", lambda: "second", successes.append) is False
        assert rejected == ["Health Check"]

        release.set()
        qtbot.waitUntil(lambda: successes == [True], timeout=5000)
        qtbot.wait(50)
        assert successes == [True]

    def test_exactly_one_callback_per_operation(self, qtbot, runner):
        calls = []
        runner.run("Health Check", lambda: 5,
                   lambda r: calls.append(("ok", r)), lambda e: calls.append(("err", e)))
        qtbot.waitUntil(lambda: bool(calls), timeout=5000)
        qtbot.wait(100)
        assert calls == [("ok", 5)]

    def test_cancel_delivers_cancelled_and_releases(self, qtbot, runner):
        errors = []
        release = threading.Event()
        runner.run("Repair", lambda: release.wait(5.0), lambda r: None, errors.append)
        assert runner.cancel() is True
        release.set()
        assert len(errors) == 1
        assert isinstance(errors[0], OperationCancelled)
        assert runner.can_start()
        assert runner.cancel() is False

    def test_submit_failure_delivers_error(self, qtbot, worker_pool, ui_bridge):
        runner = OperationRunner(worker_pool, ui_bridge, poll_interval_ms=10)
        worker_pool.shutdown()
        errors = []
        assert runner.run("Health Check", lambda: None, lambda r: None, errors.append)
        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert runner.can_start()

    def test_signals_emitted(self, qtbot, runner):
        started, finished = [], []
        runner.operation_started.connect(started.append)
        runner.operation_finished.connect(lambda n, ok: finished.append((n, ok)))

        def failing():
            raise KeyError("x")

        runner.run("Repair", failing, None, lambda e: None)
        qtbot.waitUntil(lambda: bool(finished), timeout=5000)
        assert started == ["Repair"]
        assert finished == [("Repair", False)]
