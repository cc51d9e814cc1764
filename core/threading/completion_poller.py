"""
Completion poller.

Watches an AsyncHandle from a QTimer on the presentation thread and hands
the result (or captured error) to exactly one of two callbacks through the
UiDispatchBridge. The timer is stopped before the result is retrieved so a
queued tick can never start a second delivery.
"""
from typing import Any, Callable, Optional

from PySide6.QtCore import QTimer

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_POLL
from core.threading.async_handle import AsyncHandle
from core.threading.ui_dispatch import DispatchMode, UiDispatchBridge

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_MS = 100


class CompletionPoller:
    """Timer-driven completion detection for one AsyncHandle."""

    def __init__(
        self,
        handle: AsyncHandle,
        on_success: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
        bridge: UiDispatchBridge,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        self._handle = handle
        self._on_success = on_success
        self._on_error = on_error
        self._bridge = bridge
        self._interval_ms = max(1, int(interval_ms))
        self._timer: Optional[QTimer] = None
        self._delivered = False
        self._ticks = 0

    @property
    def handle(self) -> AsyncHandle:
        return self._handle

    @property
    def delivered(self) -> bool:
        return self._delivered

    @property
    def ticks(self) -> int:
        return self._ticks

    def is_active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def start(self) -> None:
        """Arm the poll timer on the presentation thread."""
        if not self._bridge.is_ui_thread():
            self._bridge.invoke(self.start, mode=DispatchMode.SYNCHRONOUS)
            return
        if self._delivered or self._timer is not None:
            return

        timer = QTimer()
        timer.setInterval(self._interval_ms)
        timer.timeout.connect(self._on_tick)
        self._timer = timer
        timer.start()
        logger.debug("%s Polling task %s every %dms", TAG_POLL, self._handle.task_id, self._interval_ms)

    def cancel(self) -> bool:
        """Stop polling, cancel the handle and deliver OperationCancelled once.

        Returns False if a delivery already happened.
        """
        if not self._bridge.is_ui_thread():
            return self._bridge.invoke(self.cancel, mode=DispatchMode.SYNCHRONOUS)
        if self._delivered:
            return False
        self._stop_timer()
        self._handle.cancel()
        self._deliver()
        return True

    def _on_tick(self) -> None:
        self._ticks += 1
        if self._delivered:
            self._stop_timer()
            return
        if not self._handle.is_complete():
            if is_verbose_logging():
                logger.debug("%s Task %s still running (tick %d)", TAG_POLL, self._handle.task_id, self._ticks)
            return
        # Stop first: a tick already queued behind this one must find the
        # timer inactive and the delivered flag set.
        self._stop_timer()
        self._deliver()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()

    def _deliver(self) -> None:
        self._delivered = True
        try:
            result = self._handle.result()
        except BaseException as exc:
            logger.debug("%s Task %s delivering error: %s", TAG_POLL, self._handle.task_id, exc)
            self._bridge.invoke(self._on_error, exc)
        else:
            logger.debug("%s Task %s delivering result after %.2fs",
                         TAG_POLL, self._handle.task_id, self._handle.elapsed)
            self._bridge.invoke(self._on_success, result)
