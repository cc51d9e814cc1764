"""
Windows service control through Get-Service / Start-Service.

Both operations report failure as False; an unknown service is simply
"not running" and "could not be started".
"""
from __future__ import annotations

from typing import Optional

from admin.powershell import PowerShellRunner, quote
from core.logging.logger import get_logger
from core.logging.tags import TAG_PS
from core.utils.decorators import suppress_exceptions

logger = get_logger(__name__)


class WindowsServiceControl:
    """ServiceControl backed by the Windows service controller."""

    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self._runner = runner or PowerShellRunner()

    @suppress_exceptions(logger, "Service status query failed", return_value=False, log_level="warning")
    def is_running(self, name: str) -> bool:
        status = self._runner.run_json(
            f"(Get-Service -Name {quote(name)} -ErrorAction Stop).Status.ToString()"
        )
        return str(status) == "Running"

    @suppress_exceptions(logger, "Service start failed", return_value=False, log_level="warning")
    def start(self, name: str, timeout: float) -> bool:
        seconds = max(1, int(round(timeout)))
        script = (
            f"$svc = Get-Service -Name {quote(name)} -ErrorAction Stop; "
            "if ($svc.Status -ne 'Running') { "
            "Start-Service -InputObject $svc -ErrorAction Stop; "
            f"$svc.WaitForStatus('Running', [TimeSpan]::FromSeconds({seconds})) "
            "}; "
            "$svc.Refresh(); $svc.Status.ToString()"
        )
        status = self._runner.run_json(script, timeout=seconds + 30)
        started = str(status) == "Running"
        logger.info("%s Start %s -> %s", TAG_PS, name, status)
        return started
