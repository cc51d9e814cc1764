"""
Single-flight operation guard.

Process-wide "an administrative operation is running" state, owned by
whichever call path acquired it. Release is idempotent and every acquiring
path releases it in a ``finally`` block.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from PySide6.QtCore import QObject, Signal

from core.logging.logger import get_logger
from core.logging.tags import TAG_GUARD

logger = get_logger(__name__)


class GuardRejectedError(RuntimeError):
    """An operation was requested while another one holds the guard."""

    def __init__(self, requested: str, running: Optional[str]):
        super().__init__(f"Cannot start '{requested}': '{running}' is already running")
        self.requested = requested
        self.running = running


class OperationGuard(QObject):
    """
    At most one holder at a time.

    Signals:
    - busy_changed(bool): emitted on every acquire/release so triggers bound
      to ``not is_held()`` re-evaluate their enablement.
    """

    busy_changed = Signal(bool)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._lock = threading.Lock()
        self._held = False
        self._operation: Optional[str] = None
        self._acquired_at: Optional[float] = None

    @property
    def current_operation(self) -> Optional[str]:
        """Name of the operation holding the guard, or None."""
        return self._operation

    def is_held(self) -> bool:
        return self._held

    def held_for(self) -> float:
        """Seconds the current holder has held the guard (0.0 when idle)."""
        acquired = self._acquired_at
        return 0.0 if acquired is None else time.monotonic() - acquired

    def try_acquire(self, name: str) -> bool:
        """Take the guard for ``name``; False if another operation holds it."""
        with self._lock:
            if self._held:
                running = self._operation
            else:
                self._held = True
                self._operation = name
                self._acquired_at = time.monotonic()
                running = None
        if running is not None:
            logger.warning("%s Rejected '%s' while '%s' is running", TAG_GUARD, name, running)
            return False
        logger.info("%s Acquired for '%s'", TAG_GUARD, name)
        self.busy_changed.emit(True)
        return True

    def release(self) -> bool:
        """Release the guard. Safe to call repeatedly; returns True if it was held."""
        with self._lock:
            if not self._held:
                return False
            name = self._operation
            held_for = self.held_for()
            self._held = False
            self._operation = None
            self._acquired_at = None
        logger.info("%s Released by '%s' after %.2fs", TAG_GUARD, name, held_for)
        self.busy_changed.emit(False)
        return True

    @contextmanager
    def hold(self, name: str) -> Iterator["OperationGuard"]:
        """Hold the guard for the duration of a ``with`` block.

        Raises:
            GuardRejectedError: Another operation holds the guard.
        """
        if not self.try_acquire(name):
            raise GuardRejectedError(name, self._operation)
        try:
            yield self
        finally:
            self.release()
