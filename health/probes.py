"""
Health probes.

Each probe is an independent zero-argument callable returning a ProbeResult.
Probes only read state; a probe that raises is recorded as a probe failure
(a Warning on a DEGRADED result) and never turns into an Issue.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Sequence, Tuple

from core.logging.logger import get_logger
from core.logging.tags import TAG_PROBE
from health.models import HealthStatus, ProbeResult, ServiceDescriptor

if TYPE_CHECKING:
    from admin.interfaces import (
        CertificateProbe,
        CheckStatus,
        DatabaseProbe,
        DiskProbe,
        FirewallProbe,
        PermissionProbe,
        ScheduledTaskProbe,
        ServiceControl,
    )
    from core.threading.async_handle import CancelToken

logger = get_logger(__name__)

Probe = Callable[[], ProbeResult]


def probe_service(control: "ServiceControl", descriptor: ServiceDescriptor) -> ProbeResult:
    name = f"service.{descriptor.name}"
    if control.is_running(descriptor.name):
        return ProbeResult.healthy(name, details=f"{descriptor.display_name} is running")
    message = f"{descriptor.display_name} is not running"
    if descriptor.critical:
        return ProbeResult.issue(name, message)
    return ProbeResult.warning(name, message)


def probe_database(db: "DatabaseProbe", instance: str, database_name: str = "SUSDB") -> ProbeResult:
    status = db.test_connection(instance)
    if not status.connected:
        message = "Database connection failed"
        if status.message:
            message = f"{message}: {status.message}"
        return ProbeResult.issue("database", message)
    if not status.database_exists:
        return ProbeResult.issue("database", f"Database {database_name} not found on {instance}")
    return ProbeResult.healthy("database", details=status.message or f"Connected to {database_name}")


def probe_firewall(firewall: "FirewallProbe", rules: Sequence[str]) -> ProbeResult:
    status = firewall.all_rules_present(list(rules))
    if status.all_present:
        return ProbeResult.healthy("firewall")
    return ProbeResult.warning("firewall", f"Missing firewall rules: {', '.join(status.missing)}")


def probe_permissions(permissions: "PermissionProbe", path: str) -> ProbeResult:
    status = permissions.all_permissions_present(path)
    if status.all_correct:
        return ProbeResult.healthy("permissions")
    return ProbeResult.warning("permissions",
                               f"Missing permissions on {path}: {', '.join(status.missing)}")


def probe_check_status(name: str, status: "CheckStatus") -> ProbeResult:
    """Map a collaborator CheckStatus onto a ProbeResult."""
    if status.status is HealthStatus.UNHEALTHY:
        return ProbeResult.issue(name, status.message or f"{name} is unhealthy")
    if status.status is HealthStatus.DEGRADED:
        return ProbeResult.warning(name, status.message or f"{name} is degraded")
    return ProbeResult.healthy(name, details=status.message)


def run_probe(name: str, probe: Probe) -> ProbeResult:
    """Run one probe, converting an exception into a probe failure."""
    try:
        result = probe()
    except Exception as exc:
        logger.warning("%s %s check failed: %s", TAG_PROBE, name, exc)
        return ProbeResult(name, HealthStatus.DEGRADED,
                           warnings=(f"{name} check failed: {exc}",),
                           details=type(exc).__name__)
    logger.debug("%s %s -> %s", TAG_PROBE, name, result.status.value)
    return result


class ProbeSet:
    """Ordered collection of named probes."""

    def __init__(self, probes: Optional[Iterable[Tuple[str, Probe]]] = None):
        self._probes: List[Tuple[str, Probe]] = list(probes or [])

    def add(self, name: str, probe: Probe) -> None:
        if any(existing == name for existing, _ in self._probes):
            raise ValueError(f"Duplicate probe name: {name}")
        self._probes.append((name, probe))

    def names(self) -> List[str]:
        return [name for name, _ in self._probes]

    def __len__(self) -> int:
        return len(self._probes)

    def run_all(self, cancel_token: Optional["CancelToken"] = None) -> List[ProbeResult]:
        """Run every probe in order.

        Raises:
            OperationCancelled: ``cancel_token`` was set between probes.
        """
        results = []
        for name, probe in self._probes:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            results.append(run_probe(name, probe))
        return results

    @classmethod
    def from_collaborators(
        cls,
        services: Sequence[ServiceDescriptor],
        service_control: "ServiceControl",
        database: Optional["DatabaseProbe"] = None,
        sql_instance: str = ".\\SQLEXPRESS",
        database_name: str = "SUSDB",
        firewall: Optional["FirewallProbe"] = None,
        firewall_rules: Sequence[str] = (),
        permissions: Optional["PermissionProbe"] = None,
        content_path: str = "C:\\WSUS",
        disk: Optional["DiskProbe"] = None,
        certificate: Optional["CertificateProbe"] = None,
        scheduled_task: Optional["ScheduledTaskProbe"] = None,
        task_name: str = "",
    ) -> "ProbeSet":
        """Build the standard probe set; collaborators left as None are skipped."""
        probe_set = cls()
        for descriptor in sorted(services, key=lambda d: d.rank):
            probe_set.add(f"service.{descriptor.name}",
                          lambda d=descriptor: probe_service(service_control, d))
        if database is not None:
            probe_set.add("database", lambda: probe_database(database, sql_instance, database_name))
        if firewall is not None and firewall_rules:
            probe_set.add("firewall", lambda: probe_firewall(firewall, firewall_rules))
        if permissions is not None:
            probe_set.add("permissions", lambda: probe_permissions(permissions, content_path))
        if disk is not None:
            probe_set.add("disk", lambda: probe_check_status("disk", disk.check(content_path)))
        if certificate is not None:
            probe_set.add("certificate", lambda: probe_check_status("certificate", certificate.check()))
        if scheduled_task is not None and task_name:
            probe_set.add("scheduled_task",
                          lambda: probe_check_status("scheduled_task", scheduled_task.check(task_name)))
        return probe_set
