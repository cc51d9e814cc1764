"""
Operation runner: the single entry point for administrative operations.

    run(name, action, on_success, on_error)

Lifecycle of one operation:
    Idle -> Guarded (guard acquired, work submitted)
         -> Polling (timer active, work in flight)
         -> Delivering (timer stopped, result marshaled to the UI)
         -> Idle (guard released)

The guard is released in the ``finally`` of the delivery step, so it is
released even when the delivered callback raises.
"""
from __future__ import annotations

import uuid
from functools import partial
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal

from core.logging.logger import get_logger
from core.logging.tags import TAG_FALLBACK, TAG_GUARD
from core.operations.guard import OperationGuard
from core.threading.completion_poller import DEFAULT_POLL_INTERVAL_MS, CompletionPoller
from core.threading.ui_dispatch import UiDispatchBridge, UiDispatchError
from core.threading.worker_pool import WorkerPool

logger = get_logger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class OperationRunner(QObject):
    """
    Guard-acquire -> submit -> poll -> deliver -> guard-release.

    Signals:
    - operation_started(str): guard acquired for the named operation
    - operation_finished(str, bool): delivery done, guard released
    - operation_rejected(str): another operation held the guard
    """

    operation_started = Signal(str)
    operation_finished = Signal(str, bool)
    operation_rejected = Signal(str)

    def __init__(
        self,
        pool: WorkerPool,
        bridge: UiDispatchBridge,
        guard: Optional[OperationGuard] = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._pool = pool
        self._bridge = bridge
        self._guard = guard if guard is not None else OperationGuard()
        self._poll_interval_ms = poll_interval_ms
        self._active_poller: Optional[CompletionPoller] = None

    @property
    def guard(self) -> OperationGuard:
        return self._guard

    @property
    def current_operation(self) -> Optional[str]:
        return self._guard.current_operation

    def can_start(self) -> bool:
        """True iff no operation holds the guard. Bind trigger enablement to this."""
        return not self._guard.is_held()

    def run(
        self,
        name: str,
        action: Callable[..., Any],
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> bool:
        """
        Run ``action`` on the worker pool under the single-flight guard.

        Exactly one of ``on_success(result)`` / ``on_error(exc)`` is invoked
        on the presentation thread.

        Returns:
            False when rejected because another operation is running (no
            callback fires), True once the operation was accepted.
        """
        if not self._guard.try_acquire(name):
            self.operation_rejected.emit(name)
            return False

        self.operation_started.emit(name)
        deliver_success = partial(self._finish, name, on_success, True)
        deliver_error = partial(self._finish, name, on_error, False)

        handle = None
        try:
            handle = self._pool.submit(action, task_id=f"{name}-{uuid.uuid4().hex[:6]}")
            poller = CompletionPoller(handle, deliver_success, deliver_error,
                                      self._bridge, self._poll_interval_ms)
            self._active_poller = poller
            poller.start()
        except Exception as exc:
            logger.error("%s Could not start '%s': %s", TAG_GUARD, name, exc)
            self._active_poller = None
            if handle is not None:
                handle.cancel()
            try:
                self._bridge.invoke(deliver_error, exc)
            except UiDispatchError:
                logger.warning("%s No presentation thread; delivering '%s' failure inline", TAG_FALLBACK, name)
                deliver_error(exc)
        return True

    def cancel(self) -> bool:
        """Cancel the in-flight operation; its error callback gets OperationCancelled."""
        poller = self._active_poller
        if poller is None:
            return False
        logger.info("%s Cancel requested for '%s'", TAG_GUARD, self._guard.current_operation)
        return bool(poller.cancel())

    def _finish(self, name: str, callback: Optional[Callable[[Any], None]],
                succeeded: bool, payload: Any) -> None:
        try:
            if callback is not None:
                callback(payload)
            elif not succeeded:
                logger.error("Operation '%s' failed with no error handler: %s", name, payload)
        finally:
            self._active_poller = None
            self._guard.release()
            self.operation_finished.emit(name, succeeded)
