"""Worker pool, async handles and presentation-thread dispatch."""

from .async_handle import (
    AsyncHandle,
    AsyncTimeoutError,
    CancelToken,
    HandleConsumedError,
    OperationCancelled,
)
from .completion_poller import CompletionPoller
from .ui_dispatch import DispatchMode, UiDispatchBridge, UiDispatchError
from .worker_pool import WorkerPool

__all__ = [
    'AsyncHandle',
    'AsyncTimeoutError',
    'CancelToken',
    'CompletionPoller',
    'DispatchMode',
    'HandleConsumedError',
    'OperationCancelled',
    'UiDispatchBridge',
    'UiDispatchError',
    'WorkerPool',
]
