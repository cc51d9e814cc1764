"""
Worker pool for administrative actions.

A bounded ThreadPoolExecutor that keeps blocking work (service starts, SQL,
PowerShell) off the Qt presentation thread. Submissions beyond capacity queue
rather than fail. Each submission returns an AsyncHandle that owns the unit
of work until its single reader consumes it.
"""
import inspect
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_ASYNC
from core.threading.async_handle import AsyncHandle, CancelToken

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


def _accepts_cancel_token(func: Callable) -> bool:
    """True if ``func`` declares a ``cancel_token`` parameter."""
    try:
        return "cancel_token" in inspect.signature(func).parameters
    except (TypeError, ValueError):
        return False


class WorkerPool:
    """
    Bounded pool of reusable worker threads.

    Features:
    - Fixed maximum concurrency; excess submissions queue
    - Cooperative cancellation via CancelToken
    - Active-handle tracking released on every terminal transition;
      finished results nobody retrieved are reported at shutdown
    - Submitted/completed/failed/cancelled/unretrieved statistics
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, name: str = "admin"):
        """
        Initialize the worker pool.

        Args:
            max_workers: Maximum number of concurrently running units of work
            name: Thread name prefix
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._max_workers = int(max_workers)
        self._name = name
        self._shutdown = False
        self._lock = threading.Lock()
        self._active: Dict[str, AsyncHandle] = {}
        self._stats = {'submitted': 0, 'completed': 0, 'failed': 0, 'cancelled': 0, 'unretrieved': 0}
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix=f"{name}_pool",
        )

        logger.info("WorkerPool initialized with %d workers", self._max_workers)

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit(self, func: Callable, *args, task_id: Optional[str] = None,
               callback: Optional[Callable[[AsyncHandle], None]] = None,
               **kwargs) -> AsyncHandle:
        """
        Submit a unit of work.

        Args:
            func: Function to execute on a worker thread
            *args: Positional arguments for func
            task_id: Optional unique identifier
            callback: Optional completion callback, invoked on the worker
                thread with the handle (not its result)
            **kwargs: Keyword arguments for func. If func declares a
                ``cancel_token`` parameter the handle's token is passed.

        Returns:
            AsyncHandle owning the submitted work
        """
        if self._shutdown:
            raise RuntimeError("Worker pool is shut down")

        task_id = task_id or f"task_{uuid.uuid4().hex[:8]}"
        token = CancelToken()
        if _accepts_cancel_token(func):
            kwargs.setdefault("cancel_token", token)

        def wrapped_func() -> Any:
            token.raise_if_cancelled()
            start_time = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except BaseException as e:
                self._bump('failed')
                logger.error("%s Task %s failed after %.2fs: %s",
                             TAG_ASYNC, task_id, time.monotonic() - start_time, e)
                raise
            self._bump('completed')
            if is_verbose_logging():
                logger.debug("%s Task %s completed in %.2fs",
                             TAG_ASYNC, task_id, time.monotonic() - start_time)
            return result

        future = self._executor.submit(wrapped_func)
        handle = AsyncHandle(task_id, future, token, release=self._release, callback=callback)

        with self._lock:
            self._active[task_id] = handle
            self._stats['submitted'] += 1

        logger.debug("%s Submitted task %s", TAG_ASYNC, task_id)
        return handle

    def _release(self, handle: AsyncHandle) -> None:
        with self._lock:
            self._active.pop(handle.task_id, None)
            if handle.cancelled:
                self._stats['cancelled'] += 1

    def _bump(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def active_count(self) -> int:
        """Number of handles not yet consumed, discarded or cancelled."""
        with self._lock:
            return len(self._active)

    def get_active_tasks(self) -> List[str]:
        """Get list of currently active task IDs."""
        with self._lock:
            return list(self._active.keys())

    def get_stats(self) -> Dict[str, Any]:
        """Get pool statistics."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._stats)
            stats['active'] = len(self._active)
        stats['max_workers'] = self._max_workers
        return stats

    def shutdown(self, wait: bool = True) -> None:
        """
        Cancel active handles and shut down the executor.

        Args:
            wait: Whether to wait for running work to finish
        """
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Shutting down worker pool...")

        with self._lock:
            handles = list(self._active.values())
        unretrieved = [h.task_id for h in handles if h.is_complete() and not h.cancelled]
        if unretrieved:
            with self._lock:
                self._stats['unretrieved'] += len(unretrieved)
            logger.warning("%s %d finished tasks were never retrieved: %s",
                           TAG_ASYNC, len(unretrieved), unretrieved)
        if handles:
            logger.info("Cancelling %d active tasks before shutdown: %s",
                        len(handles), [h.task_id for h in handles])
        for handle in handles:
            handle.cancel()

        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.info("Worker pool shut down complete")
