"""
Disk, certificate and scheduled-task checks.

The ``evaluate_*`` helpers hold the thresholds and wording and need no
Windows host; the probe classes only gather the raw figures.
"""
from __future__ import annotations

import shutil
from datetime import datetime, timezone
from typing import Optional

from admin.interfaces import CheckStatus
from admin.powershell import PowerShellRunner, quote
from core.logging.logger import get_logger
from core.logging.tags import TAG_PS
from health.models import HealthStatus

logger = get_logger(__name__)

DISK_WARNING_PERCENT = 75.0
DISK_CRITICAL_PERCENT = 90.0
CERTIFICATE_WARNING_DAYS = 30

_GB = 1024 ** 3


def evaluate_disk_usage(total_bytes: int, free_bytes: int,
                        warning_percent: float = DISK_WARNING_PERCENT,
                        critical_percent: float = DISK_CRITICAL_PERCENT,
                        path: str = "") -> CheckStatus:
    if total_bytes <= 0:
        return CheckStatus(HealthStatus.DEGRADED, f"Disk size unavailable for {path or 'volume'}")
    used_percent = (total_bytes - free_bytes) * 100.0 / total_bytes
    free_gb = free_bytes / _GB
    where = f" on {path}" if path else ""
    if used_percent >= critical_percent:
        return CheckStatus(HealthStatus.UNHEALTHY,
                           f"Disk space critically low{where}: {free_gb:.1f} GB free ({used_percent:.0f}% used)")
    if used_percent >= warning_percent:
        return CheckStatus(HealthStatus.DEGRADED,
                           f"Disk space low{where}: {free_gb:.1f} GB free ({used_percent:.0f}% used)")
    return CheckStatus(HealthStatus.HEALTHY, f"{free_gb:.1f} GB free ({used_percent:.0f}% used)")


def evaluate_certificate_expiry(not_after: Optional[datetime],
                                now: Optional[datetime] = None,
                                warning_days: int = CERTIFICATE_WARNING_DAYS) -> CheckStatus:
    if not_after is None:
        return CheckStatus(HealthStatus.DEGRADED, "SSL certificate not found")
    if not_after.tzinfo is None:
        not_after = not_after.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    remaining = not_after - now
    if remaining.total_seconds() <= 0:
        return CheckStatus(HealthStatus.UNHEALTHY,
                           f"SSL certificate expired on {not_after:%Y-%m-%d}")
    if remaining.days < warning_days:
        return CheckStatus(HealthStatus.DEGRADED,
                           f"SSL certificate expires in {remaining.days} days")
    return CheckStatus(HealthStatus.HEALTHY, f"SSL certificate valid until {not_after:%Y-%m-%d}")


def evaluate_scheduled_task(task_name: str, exists: bool, missed_runs: int = 0,
                            state: Optional[str] = None) -> CheckStatus:
    if not exists:
        return CheckStatus(HealthStatus.DEGRADED, f"Scheduled task '{task_name}' is not configured")
    if state is not None and state.lower() == "disabled":
        return CheckStatus(HealthStatus.DEGRADED, f"Scheduled task '{task_name}' is disabled")
    if missed_runs > 0:
        return CheckStatus(HealthStatus.DEGRADED,
                           f"Scheduled task '{task_name}' missed {missed_runs} run{'s' if missed_runs != 1 else ''}")
    return CheckStatus(HealthStatus.HEALTHY, f"Scheduled task '{task_name}' is configured")


class DiskSpaceProbe:
    def __init__(self, warning_percent: float = DISK_WARNING_PERCENT,
                 critical_percent: float = DISK_CRITICAL_PERCENT):
        self._warning = warning_percent
        self._critical = critical_percent

    def check(self, path: str) -> CheckStatus:
        usage = shutil.disk_usage(path)
        logger.debug("Disk usage for %s: %d of %d bytes free", path, usage.free, usage.total)
        return evaluate_disk_usage(usage.total, usage.free, self._warning, self._critical, path)


class CertificateStoreProbe:
    """Looks up the WSUS SSL certificate in Cert:\\LocalMachine\\My by thumbprint."""

    def __init__(self, thumbprint: str = "", warning_days: int = CERTIFICATE_WARNING_DAYS,
                 runner: Optional[PowerShellRunner] = None):
        self._thumbprint = (thumbprint or "").replace(" ", "").upper()
        self._warning_days = warning_days
        self._runner = runner or PowerShellRunner()

    def check(self) -> CheckStatus:
        if not self._thumbprint:
            return CheckStatus(HealthStatus.HEALTHY, "SSL not configured")
        script = (
            f"$cert = Get-Item -LiteralPath ('Cert:\\LocalMachine\\My\\' + {quote(self._thumbprint)}) "
            "-ErrorAction SilentlyContinue; "
            "if ($cert) { $cert.NotAfter.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ss') }"
        )
        data = self._runner.run_json(script)
        not_after = datetime.fromisoformat(str(data)).replace(tzinfo=timezone.utc) if data else None
        return evaluate_certificate_expiry(not_after, warning_days=self._warning_days)


class ScheduledTaskStatusProbe:
    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self._runner = runner or PowerShellRunner()

    def check(self, task_name: str) -> CheckStatus:
        script = (
            f"$task = Get-ScheduledTask -TaskName {quote(task_name)} -ErrorAction SilentlyContinue; "
            "if ($task) { $info = $task | Get-ScheduledTaskInfo; "
            "[pscustomobject]@{ State = $task.State.ToString(); "
            "MissedRuns = [int]$info.NumberOfMissedRuns } }"
        )
        data = self._runner.run_json(script)
        if not isinstance(data, dict):
            logger.debug("%s Scheduled task %s not found", TAG_PS, task_name)
            return evaluate_scheduled_task(task_name, exists=False)
        return evaluate_scheduled_task(task_name, exists=True,
                                       missed_runs=int(data.get("MissedRuns") or 0),
                                       state=data.get("State"))
