"""Content-directory ACL probe (Get-Acl identity references)."""
from __future__ import annotations

from typing import Iterable, Optional

from admin.interfaces import PermissionStatus
from admin.powershell import PowerShellRunner, quote
from core.logging.logger import get_logger
from core.logging.tags import TAG_PS

logger = get_logger(__name__)

DEFAULT_PRINCIPALS = (
    "NT AUTHORITY\\NETWORK SERVICE",
    "BUILTIN\\IIS_IUSRS",
    "NT AUTHORITY\\SYSTEM",
)


class AclPermissionProbe:
    def __init__(self, principals: Iterable[str] = DEFAULT_PRINCIPALS,
                 runner: Optional[PowerShellRunner] = None):
        self._principals = list(principals)
        self._runner = runner or PowerShellRunner()

    def all_permissions_present(self, path: str) -> PermissionStatus:
        """Raises PowerShellError when the ACL cannot be read."""
        script = (
            f"(Get-Acl -LiteralPath {quote(path)} -ErrorAction Stop).Access | "
            "ForEach-Object { $_.IdentityReference.Value } | Sort-Object -Unique"
        )
        data = self._runner.run_json(script)
        if data is None:
            granted = set()
        elif isinstance(data, list):
            granted = {str(item).lower() for item in data}
        else:
            granted = {str(data).lower()}
        missing = [p for p in self._principals if p.lower() not in granted]
        if missing:
            logger.debug("%s %s is missing ACL entries for %s", TAG_PS, path, missing)
        return PermissionStatus(all_correct=not missing, missing=missing)
