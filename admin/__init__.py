"""Administrative collaborators: interfaces and their Windows implementations."""
from admin.interfaces import (
    CheckStatus,
    DatabaseStatus,
    FirewallStatus,
    PermissionStatus,
)
from admin.powershell import PowerShellError, PowerShellRunner
from admin.services import WindowsServiceControl
from admin.database import SqlDatabaseProbe
from admin.firewall import NetFirewallProbe
from admin.permissions import AclPermissionProbe
from admin.system_checks import CertificateStoreProbe, DiskSpaceProbe, ScheduledTaskStatusProbe

__all__ = [
    'CheckStatus',
    'DatabaseStatus',
    'FirewallStatus',
    'PermissionStatus',
    'PowerShellError',
    'PowerShellRunner',
    'WindowsServiceControl',
    'SqlDatabaseProbe',
    'NetFirewallProbe',
    'AclPermissionProbe',
    'CertificateStoreProbe',
    'DiskSpaceProbe',
    'ScheduledTaskStatusProbe',
]
