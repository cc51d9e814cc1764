"""
Dependency-ordered service recovery.

Best effort, not transactional: services are brought up in ascending rank,
a service that cannot be started is recorded as failed and the remaining
ones are still attempted. Nothing is rolled back.
"""
from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from core.logging.logger import get_logger
from core.logging.tags import TAG_RECOVERY
from health.models import RecoveryResult, ServiceDescriptor

if TYPE_CHECKING:
    from admin.interfaces import ServiceControl
    from core.threading.async_handle import CancelToken

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 5.0


class RecoveryOrchestrator:
    """Restarts stopped services in dependency order with bounded retries."""

    def __init__(self, service_control: "ServiceControl",
                 sleep: Callable[[float], None] = time.sleep):
        self._control = service_control
        self._sleep = sleep

    def recover(
        self,
        descriptors: Sequence[ServiceDescriptor],
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        backoff: float = 1.0,
        cancel_token: Optional["CancelToken"] = None,
    ) -> RecoveryResult:
        """
        Bring every stopped service back up.

        Args:
            descriptors: Services to check, in any order
            max_retries: Start attempts per stopped service (at least 1)
            retry_delay: Seconds between attempts on the same service
            backoff: Multiplier applied to the delay after each failed attempt
            cancel_token: Stops processing before the next service or attempt

        Returns:
            RecoveryResult with disjoint already_running/recovered/failed buckets
        """
        max_retries = max(1, int(max_retries))
        already_running: List[str] = []
        recovered: List[str] = []
        failed: List[str] = []
        attempted: List[str] = []
        cancelled = False

        ordered = sorted(descriptors, key=lambda d: d.rank)
        logger.info("%s Starting recovery of %d services: %s", TAG_RECOVERY, len(ordered),
                    [d.name for d in ordered])

        for descriptor in ordered:
            if self._is_cancelled(cancel_token):
                cancelled = True
                break

            if self._control.is_running(descriptor.name):
                already_running.append(descriptor.name)
                logger.info("%s %s already running", TAG_RECOVERY, descriptor.display_name)
                continue

            attempted.append(descriptor.name)
            outcome = self._start_with_retries(descriptor, max_retries, retry_delay,
                                               backoff, cancel_token)
            if outcome is None:
                cancelled = True
                break
            if outcome:
                recovered.append(descriptor.name)
            else:
                failed.append(descriptor.name)

        result = RecoveryResult(
            already_running=tuple(already_running),
            recovered=tuple(recovered),
            failed=tuple(failed),
            attempted=tuple(attempted),
            success=not failed and not cancelled,
            cancelled=cancelled,
        )
        log = logger.info if result.success else logger.warning
        log("%s Recovery finished: %s", TAG_RECOVERY, result.summary())
        return result

    def _start_with_retries(self, descriptor: ServiceDescriptor, max_retries: int,
                            retry_delay: float, backoff: float,
                            cancel_token: Optional["CancelToken"]) -> Optional[bool]:
        """True when started, False when retries ran out, None when cancelled."""
        delay = max(0.0, float(retry_delay))
        for attempt in range(1, max_retries + 1):
            if attempt > 1:
                if delay > 0:
                    self._wait(delay, cancel_token)
                delay *= backoff
                if self._is_cancelled(cancel_token):
                    logger.info("%s Cancelled while retrying %s", TAG_RECOVERY, descriptor.display_name)
                    return None

            logger.info("%s Starting %s (attempt %d/%d)", TAG_RECOVERY,
                        descriptor.display_name, attempt, max_retries)
            try:
                self._control.start(descriptor.name, descriptor.start_timeout)
            except Exception as exc:
                logger.warning("%s Start of %s raised: %s", TAG_RECOVERY, descriptor.name, exc)

            if self._control.is_running(descriptor.name):
                logger.info("%s %s recovered on attempt %d", TAG_RECOVERY,
                            descriptor.display_name, attempt)
                return True

        logger.error("%s %s failed to start after %d attempts", TAG_RECOVERY,
                     descriptor.display_name, max_retries)
        return False

    def _wait(self, delay: float, cancel_token: Optional["CancelToken"]) -> None:
        """Sleep between attempts; a cancel token cuts the wait short."""
        if cancel_token is None:
            self._sleep(delay)
        else:
            cancel_token.wait(delay)

    @staticmethod
    def _is_cancelled(cancel_token: Optional["CancelToken"]) -> bool:
        return cancel_token is not None and cancel_token.cancelled
