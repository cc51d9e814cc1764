"""
Error-suppression decorator for collaborators that must never raise.

Service control reports "could not query" and "could not start" as False
rather than as an exception; the failure is still logged with its
traceback so the log file shows why.
"""
from functools import wraps
from typing import Any, Callable, Optional, ParamSpec, TypeVar

from core.logging.logger import get_logger

P = ParamSpec('P')
T = TypeVar('T')

logger = get_logger(__name__)


def suppress_exceptions(
    logger_instance: Optional[Any] = None,
    message: str = "Operation failed",
    return_value: Any = None,
    log_level: str = "error",
) -> Callable[[Callable[P, T]], Callable[P, Optional[T]]]:
    """
    Return ``return_value`` instead of raising, logging the exception.

    Args:
        logger_instance: Logger to use (defaults to this module's logger)
        message: Prefix for the log line; the exception text is appended
        return_value: Value returned when the wrapped call raises
        log_level: Logger method name ('debug', 'info', 'warning', 'error')

    Example:
        @suppress_exceptions(logger, "Service status query failed", return_value=False)
        def is_running(self, name: str) -> bool:
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, Optional[T]]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                log = logger_instance or logger
                getattr(log, log_level, log.error)("%s (%s): %s", message, func.__name__, e, exc_info=True)
                return return_value
        return wrapper
    return decorator
