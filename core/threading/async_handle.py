"""
Async handle for one unit of work submitted to the WorkerPool.

A handle is consumed by its single reader: the value (or captured error) can
be retrieved exactly once through wait()/result(), or dropped explicitly
with discard(). Every terminal transition releases the handle's slot in the
pool's active set.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Optional

from core.logging.logger import get_logger
from core.logging.tags import TAG_ASYNC

logger = get_logger(__name__)


class AsyncTimeoutError(TimeoutError):
    """wait() exceeded its deadline. The work keeps running and the handle stays in flight."""

    def __init__(self, task_id: str, timeout: Optional[float]):
        super().__init__(f"Task {task_id} did not complete within {timeout}s")
        self.task_id = task_id
        self.timeout = timeout


class HandleConsumedError(RuntimeError):
    """The handle's result was already retrieved or discarded."""


class OperationCancelled(Exception):
    """The work was cancelled before a result was delivered."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class CancelToken:
    """Cooperative cancellation flag shared between a handle and its work."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; returns True early if cancelled."""
        return self._event.wait(max(0.0, timeout))


class AsyncHandle:
    """Owned reference to one in-flight unit of work."""

    def __init__(
        self,
        task_id: str,
        future: Future,
        token: CancelToken,
        release: Callable[["AsyncHandle"], None],
        callback: Optional[Callable[["AsyncHandle"], None]] = None,
    ):
        self.task_id = task_id
        self.started_at = time.monotonic()
        self.callback = callback
        self._future = future
        self._token = token
        self._release = release
        self._lock = threading.Lock()
        self._consumed = False
        self._cancelled = False
        self._released = False
        self._finished_at: Optional[float] = None

        future.add_done_callback(self._on_future_done)

    # State ---------------------------------------------------------------
    @property
    def cancel_token(self) -> CancelToken:
        return self._token

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def elapsed(self) -> float:
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self.started_at

    def is_complete(self) -> bool:
        """Non-blocking; True once the work finished or the handle was cancelled."""
        return self._cancelled or self._future.done()

    # Retrieval -----------------------------------------------------------
    def wait(self, timeout: Optional[float] = None) -> Any:
        """Block until the work completes and return its value.

        Raises:
            AsyncTimeoutError: ``timeout`` elapsed first. The handle is not
                consumed and the work is not cancelled.
            OperationCancelled: the handle was cancelled.
            HandleConsumedError: the result was already retrieved.
            Exception: whatever the work raised.
        """
        if self._consumed:
            raise HandleConsumedError(f"Result of task {self.task_id} was already retrieved")

        if self._cancelled:
            self._consume()
            raise OperationCancelled(f"Task {self.task_id} was cancelled")

        try:
            value = self._future.result(timeout=timeout)
        except FuturesTimeoutError:
            raise AsyncTimeoutError(self.task_id, timeout) from None
        except CancelledError:
            self._consume()
            raise OperationCancelled(f"Task {self.task_id} was cancelled") from None
        except BaseException:
            self._consume()
            raise
        self._consume()
        return value

    def result(self) -> Any:
        """Retrieve the result of a completed handle without blocking."""
        if not self.is_complete():
            raise RuntimeError(f"Task {self.task_id} has not completed")
        return self.wait(timeout=0)

    def discard(self) -> None:
        """Consume the handle without reading its result."""
        self._consume()

    def cancel(self) -> bool:
        """Request cooperative cancellation and release the pool slot.

        Returns False when the handle was already consumed or cancelled.
        Work that never checks its cancel token may still run to completion.
        """
        with self._lock:
            if self._consumed or self._cancelled:
                return False
            self._cancelled = True
            if self._finished_at is None:
                self._finished_at = time.monotonic()
        self._token.cancel()
        self._future.cancel()
        self._release_slot()
        logger.info("%s Cancelled task %s after %.2fs", TAG_ASYNC, self.task_id, self.elapsed)
        return True

    # Internal ------------------------------------------------------------
    def _consume(self) -> None:
        with self._lock:
            if self._consumed:
                raise HandleConsumedError(f"Result of task {self.task_id} was already retrieved")
            self._consumed = True
        self._release_slot()

    def _release_slot(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._release(self)

    def _on_future_done(self, _future: Future) -> None:
        if self._finished_at is None:
            self._finished_at = time.monotonic()
        if self.callback is None or self._cancelled:
            return
        try:
            self.callback(self)
        except Exception as e:
            logger.error("%s Completion callback for task %s failed: %s", TAG_ASYNC, self.task_id, e)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else ("done" if self._future.done() else "running")
        return f"AsyncHandle({self.task_id!r}, {state}, consumed={self._consumed})"
