"""Firewall rule presence probe (Get-NetFirewallRule by display name)."""
from __future__ import annotations

from typing import Optional, Sequence

from admin.interfaces import FirewallStatus
from admin.powershell import PowerShellRunner, quote_list
from core.logging.logger import get_logger
from core.logging.tags import TAG_PS

logger = get_logger(__name__)


class NetFirewallProbe:
    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self._runner = runner or PowerShellRunner()

    def all_rules_present(self, rules: Sequence[str]) -> FirewallStatus:
        """Raises PowerShellError when the rule list cannot be read."""
        wanted = list(rules)
        if not wanted:
            return FirewallStatus(all_present=True)
        script = (
            f"{quote_list(wanted)} | Where-Object {{ "
            "-not (Get-NetFirewallRule -DisplayName $_ -ErrorAction SilentlyContinue) }"
        )
        data = self._runner.run_json(script)
        if data is None:
            missing = []
        elif isinstance(data, list):
            missing = [str(item) for item in data]
        else:
            missing = [str(data)]
        if missing:
            logger.debug("%s Missing firewall rules: %s", TAG_PS, missing)
        return FirewallStatus(all_present=not missing, missing=missing)
