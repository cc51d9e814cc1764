"""Single-flight execution of administrative operations."""

from .guard import GuardRejectedError, OperationGuard
from .runner import OperationRunner

__all__ = ['GuardRejectedError', 'OperationGuard', 'OperationRunner']
