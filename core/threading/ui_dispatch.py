"""
UI dispatch bridge.

The only path by which worker threads touch presentation state. Actions run
on the Qt application thread, inline when the caller is already there, else
marshaled through a QObject invoker living on that thread.
"""
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

from PySide6.QtCore import QCoreApplication, QObject, QThread, QTimer, Qt, Signal, Slot

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_DISPATCH

logger = get_logger(__name__)


class DispatchMode(Enum):
    """How invoke() waits for the dispatched action."""
    SYNCHRONOUS = "synchronous"          # block until the action ran
    FIRE_AND_FORGET = "fire_and_forget"  # queue and return immediately


class UiDispatchError(RuntimeError):
    """No presentation thread is available to dispatch to."""


class _DispatchCall:
    """One marshaled call; carries the outcome back to a synchronous caller."""

    __slots__ = ("func", "args", "kwargs", "capture", "value", "error")

    def __init__(self, func: Callable, args: tuple, kwargs: dict, capture: bool):
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.capture = capture
        self.value: Any = None
        self.error: Optional[BaseException] = None

    def __call__(self) -> None:
        try:
            self.value = self.func(*self.args, **self.kwargs)
        except BaseException as e:
            if self.capture:
                self.error = e
            else:
                logger.exception("%s Dispatched callable raised: %s", TAG_DISPATCH, e)

    def outcome(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


# UI-thread invoker for reliable main thread dispatch
class _UiInvoker(QObject):
    invoke = Signal(object)
    invoke_blocking = Signal(object)

    def __init__(self):
        super().__init__()
        self.invoke.connect(self._on_invoke, Qt.ConnectionType.QueuedConnection)
        self.invoke_blocking.connect(self._on_invoke, Qt.ConnectionType.BlockingQueuedConnection)

    @Slot(object)
    def _on_invoke(self, call: _DispatchCall) -> None:
        call()


class UiDispatchBridge:
    """Runs callables on the Qt presentation thread."""

    def __init__(self):
        self._invoker: Optional[_UiInvoker] = None
        self._lock = threading.Lock()

    @staticmethod
    def is_ui_thread() -> bool:
        """True when the caller runs on the QCoreApplication thread."""
        app = QCoreApplication.instance()
        return app is not None and QThread.currentThread() is app.thread()

    def _ensure_invoker(self, app: QCoreApplication) -> _UiInvoker:
        with self._lock:
            if self._invoker is None:
                inv = _UiInvoker()
                inv.moveToThread(app.thread())
                self._invoker = inv
            return self._invoker

    def invoke(self, action: Callable, *args,
               mode: DispatchMode = DispatchMode.FIRE_AND_FORGET, **kwargs) -> Any:
        """
        Execute ``action`` on the presentation thread.

        Args:
            action: Callable to run
            *args, **kwargs: Arguments for action
            mode: SYNCHRONOUS blocks until the action ran and returns its
                value (re-raising its error). FIRE_AND_FORGET returns None
                immediately; errors raised by the action are logged.

        Raises:
            UiDispatchError: No QCoreApplication exists.
        """
        app = QCoreApplication.instance()
        if app is None:
            raise UiDispatchError("UI dispatch requires a QCoreApplication instance")

        synchronous = mode is DispatchMode.SYNCHRONOUS
        call = _DispatchCall(action, args, kwargs, capture=synchronous)

        if QThread.currentThread() is app.thread():
            # Already on the presentation thread: run inline so nested
            # dispatch from a dispatched callback cannot deadlock.
            call()
            return call.outcome() if synchronous else None

        inv = self._ensure_invoker(app)
        if is_verbose_logging():
            logger.debug("%s Marshaling %s (%s)", TAG_DISPATCH,
                         getattr(action, "__qualname__", action), mode.value)
        if synchronous:
            inv.invoke_blocking.emit(call)
            return call.outcome()
        inv.invoke.emit(call)
        return None

    def single_shot(self, delay_ms: int, func: Callable, *args, **kwargs) -> None:
        """Schedule a callable to run on the UI thread after a delay."""
        if not self.is_ui_thread():
            self.invoke(self.single_shot, delay_ms, func, *args, **kwargs)
            return

        def _invoke():
            try:
                func(*args, **kwargs)
            except Exception as e:
                logger.exception("%s single_shot callable raised: %s", TAG_DISPATCH, e)

        QTimer.singleShot(max(0, int(delay_ms)), _invoke)

    def schedule_recurring(self, interval_ms: int, func: Callable, *args,
                           description: Optional[str] = None, **kwargs) -> QTimer:
        """
        Schedule a recurring callable on the UI thread.

        Args:
            interval_ms: Interval in milliseconds
            func: Function to call
            description: Name used in timer-gap warnings
            *args, **kwargs: Arguments for func

        Returns:
            QTimer: Timer instance (keep reference to prevent GC)
        """
        if not self.is_ui_thread():
            return self.invoke(self.schedule_recurring, interval_ms, func, *args,
                               description=description, mode=DispatchMode.SYNCHRONOUS, **kwargs)

        timer_desc = description or getattr(func, "__qualname__", "recurring_timer")
        last_invoke = [0.0]

        def _invoke():
            now = time.monotonic()
            if last_invoke[0] > 0.0:
                gap_ms = (now - last_invoke[0]) * 1000.0
                # Modal dialogs block the event loop; only flag large gaps.
                if gap_ms > max(100.0, float(interval_ms) * 2.0):
                    logger.warning("%s Large gap for %s: %.2fms (interval=%dms)",
                                   TAG_DISPATCH, timer_desc, gap_ms, interval_ms)
            last_invoke[0] = now
            try:
                func(*args, **kwargs)
            except Exception as e:
                logger.exception("%s Recurring task %s raised: %s", TAG_DISPATCH, timer_desc, e)

        timer = QTimer()
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.timeout.connect(_invoke)
        timer.start(max(1, int(interval_ms)))
        return timer
