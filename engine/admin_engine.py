"""
Admin engine - the facade the GUI and the CLI drive.

Wires settings, the worker pool, the UI dispatch bridge, the single-flight
runner, the health probe set and the recovery orchestrator. Every
administrative operation goes through ``run()``; the named helpers
(``run_health_check``, ``run_recovery``, ``run_repair``) are thin wrappers
around it that also publish their results as signals.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from admin.interfaces import (
    CertificateProbe,
    DatabaseProbe,
    DiskProbe,
    FirewallProbe,
    PermissionProbe,
    ScheduledTaskProbe,
    ServiceControl,
)
from core.logging.logger import get_logger
from core.logging.tags import TAG_HEALTH, TAG_RECOVERY
from core.operations import OperationRunner
from core.settings import SettingsManager
from core.threading import CancelToken, UiDispatchBridge, WorkerPool
from health.aggregator import aggregate
from health.models import HealthCheckResult, RecoveryResult, RepairOutcome, ServiceDescriptor
from health.probes import ProbeSet
from health.recovery import RecoveryOrchestrator

logger = get_logger(__name__)

OP_HEALTH_CHECK = "Health Check"
OP_RECOVERY = "Auto-Recovery"
OP_REPAIR = "Repair"


@dataclass
class Collaborators:
    """Administrative collaborators; probes left as None are not run."""

    service_control: ServiceControl
    database: Optional[DatabaseProbe] = None
    firewall: Optional[FirewallProbe] = None
    permissions: Optional[PermissionProbe] = None
    disk: Optional[DiskProbe] = None
    certificate: Optional[CertificateProbe] = None
    scheduled_task: Optional[ScheduledTaskProbe] = None

    @classmethod
    def windows(cls, settings: SettingsManager) -> "Collaborators":
        """The PowerShell-backed implementations, configured from settings."""
        from admin import (
            AclPermissionProbe,
            CertificateStoreProbe,
            DiskSpaceProbe,
            NetFirewallProbe,
            PowerShellRunner,
            ScheduledTaskStatusProbe,
            SqlDatabaseProbe,
            WindowsServiceControl,
        )

        runner = PowerShellRunner()
        return cls(
            service_control=WindowsServiceControl(runner),
            database=SqlDatabaseProbe(settings.get('health.database_name', 'SUSDB'), runner),
            firewall=NetFirewallProbe(runner),
            permissions=AclPermissionProbe(settings.get_list('health.required_principals'), runner),
            disk=DiskSpaceProbe(
                settings.get_float('health.disk_warning_percent', 75.0),
                settings.get_float('health.disk_critical_percent', 90.0),
            ),
            certificate=CertificateStoreProbe(
                settings.get('health.certificate_thumbprint', '') or '',
                settings.get_int('health.certificate_warning_days', 30),
                runner,
            ),
            scheduled_task=ScheduledTaskStatusProbe(runner),
        )


class AdminEngine(QObject):
    """
    Central controller for administrative operations.

    Signals:
    - health_checked(object): HealthCheckResult delivered on the UI thread
    - recovery_finished(object): RecoveryResult delivered on the UI thread
    - operation_failed(str, str): operation name, error message
    """

    health_checked = Signal(object)
    recovery_finished = Signal(object)
    operation_failed = Signal(str, str)

    def __init__(
        self,
        settings: Optional[SettingsManager] = None,
        collaborators: Optional[Collaborators] = None,
        pool: Optional[WorkerPool] = None,
        bridge: Optional[UiDispatchBridge] = None,
        sleep: Callable[[float], None] = time.sleep,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.settings = settings or SettingsManager()
        self.collaborators = collaborators or Collaborators.windows(self.settings)
        self.pool = pool or WorkerPool(max(1, self.settings.get_int('workers.max_workers', 4)))
        self.bridge = bridge or UiDispatchBridge()
        self.runner = OperationRunner(
            self.pool,
            self.bridge,
            poll_interval_ms=self.settings.get_int('poller.interval_ms', 100),
            parent=self,
        )
        self.orchestrator = RecoveryOrchestrator(self.collaborators.service_control, sleep=sleep)
        self._auto_refresh_timer: Optional[QTimer] = None
        self._last_health: Optional[HealthCheckResult] = None

        logger.info("AdminEngine created (%d services, %d workers)",
                    len(self.service_descriptors()), self.pool.max_workers)

    # Configuration -------------------------------------------------------
    @property
    def guard(self):
        return self.runner.guard

    @property
    def last_health(self) -> Optional[HealthCheckResult]:
        return self._last_health

    def service_descriptors(self) -> List[ServiceDescriptor]:
        descriptors = {}
        for entry in self.settings.get_mapping_list('services.descriptors'):
            try:
                descriptor = ServiceDescriptor.from_mapping(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring malformed service descriptor %r: %s", entry, e)
                continue
            if descriptor.name in descriptors:
                logger.warning("Ignoring duplicate service descriptor for %s", descriptor.name)
                continue
            descriptors[descriptor.name] = descriptor
        return sorted(descriptors.values(), key=lambda d: d.rank)

    def build_probe_set(self) -> ProbeSet:
        c = self.collaborators
        return ProbeSet.from_collaborators(
            self.service_descriptors(),
            c.service_control,
            database=c.database,
            sql_instance=self.settings.get('health.sql_instance', '.\\SQLEXPRESS'),
            database_name=self.settings.get('health.database_name', 'SUSDB'),
            firewall=c.firewall,
            firewall_rules=self.settings.get_list('health.firewall_rules'),
            permissions=c.permissions,
            content_path=self.settings.get('health.content_path', 'C:\\WSUS'),
            disk=c.disk,
            certificate=c.certificate,
            scheduled_task=c.scheduled_task,
            task_name=self.settings.get('health.scheduled_task', '') or '',
        )

    # Blocking operations (run on a worker) -------------------------------
    def check_health(self, cancel_token: Optional[CancelToken] = None) -> HealthCheckResult:
        probe_set = self.build_probe_set()
        logger.info("%s Running %d probes", TAG_HEALTH, len(probe_set))
        return aggregate(probe_set.run_all(cancel_token))

    def recover(self, cancel_token: Optional[CancelToken] = None) -> RecoveryResult:
        return self.orchestrator.recover(
            self.service_descriptors(),
            max_retries=self.settings.get_int('recovery.max_retries', 3),
            retry_delay=self.settings.get_float('recovery.retry_delay_s', 5.0),
            backoff=self.settings.get_float('recovery.backoff', 1.0),
            cancel_token=cancel_token,
        )

    def repair(self, cancel_token: Optional[CancelToken] = None) -> RepairOutcome:
        """Recover services; on success re-check health."""
        recovery = self.recover(cancel_token=cancel_token)
        if not recovery.success:
            return RepairOutcome(recovery)
        logger.info("%s Re-checking health after recovery", TAG_RECOVERY)
        return RepairOutcome(recovery, self.check_health(cancel_token=cancel_token))

    # Single entry point --------------------------------------------------
    def can_start(self) -> bool:
        return self.runner.can_start()

    def run(self, name: str, action: Callable[..., Any],
            on_success: Optional[Callable[[Any], None]] = None,
            on_error: Optional[Callable[[BaseException], None]] = None) -> bool:
        return self.runner.run(name, action, on_success, partial(self._on_error, name, on_error))

    def run_health_check(self, on_success: Optional[Callable[[HealthCheckResult], None]] = None,
                         on_error: Optional[Callable[[BaseException], None]] = None) -> bool:
        return self.run(OP_HEALTH_CHECK, self.check_health,
                        partial(self._on_health, on_success), on_error)

    def run_recovery(self, on_success: Optional[Callable[[RecoveryResult], None]] = None,
                     on_error: Optional[Callable[[BaseException], None]] = None) -> bool:
        return self.run(OP_RECOVERY, self.recover,
                        partial(self._on_recovery, on_success), on_error)

    def run_repair(self, on_success: Optional[Callable[[RepairOutcome], None]] = None,
                   on_error: Optional[Callable[[BaseException], None]] = None) -> bool:
        return self.run(OP_REPAIR, self.repair,
                        partial(self._on_repair, on_success), on_error)

    def cancel(self) -> bool:
        return self.runner.cancel()

    # Delivery (UI thread) ------------------------------------------------
    def _on_health(self, callback, result: HealthCheckResult) -> None:
        self._last_health = result
        self.health_checked.emit(result)
        if callback is not None:
            callback(result)

    def _on_recovery(self, callback, result: RecoveryResult) -> None:
        self.recovery_finished.emit(result)
        if callback is not None:
            callback(result)

    def _on_repair(self, callback, outcome: RepairOutcome) -> None:
        self.recovery_finished.emit(outcome.recovery)
        if outcome.health is not None:
            self._last_health = outcome.health
            self.health_checked.emit(outcome.health)
        if callback is not None:
            callback(outcome)

    def _on_error(self, name: str, callback, exc: BaseException) -> None:
        logger.error("%s failed: %s", name, exc)
        self.operation_failed.emit(name, str(exc))
        if callback is not None:
            callback(exc)

    # Auto refresh --------------------------------------------------------
    def start_auto_refresh(self, interval_ms: Optional[int] = None) -> None:
        """Re-run the health check periodically; ticks are skipped while an operation runs."""
        self.stop_auto_refresh()
        interval = interval_ms if interval_ms is not None else self.settings.get_int('ui.auto_refresh_ms', 30000)
        if interval <= 0:
            return
        self._auto_refresh_timer = self.bridge.schedule_recurring(
            interval, self._auto_refresh_tick, description="health_auto_refresh")
        logger.info("%s Auto refresh every %dms", TAG_HEALTH, interval)

    def stop_auto_refresh(self) -> None:
        if self._auto_refresh_timer is not None:
            self._auto_refresh_timer.stop()
            self._auto_refresh_timer = None

    def is_auto_refreshing(self) -> bool:
        return self._auto_refresh_timer is not None and self._auto_refresh_timer.isActive()

    def _auto_refresh_tick(self) -> None:
        if not self.can_start():
            logger.debug("%s Auto refresh skipped: '%s' is running",
                         TAG_HEALTH, self.runner.current_operation)
            return
        self.run_health_check()

    def shutdown(self, wait: bool = True) -> None:
        logger.info("AdminEngine shutting down")
        self.stop_auto_refresh()
        self.runner.cancel()
        self.pool.shutdown(wait=wait)
