"""
SQL Server reachability probe.

Opens an integrated-security connection to ``master`` on the configured
instance and checks that the WSUS database exists (``DB_ID``). The size
query mirrors the dashboard's database size figure.
"""
from __future__ import annotations

from typing import Optional

from admin.interfaces import DatabaseStatus
from admin.powershell import PowerShellError, PowerShellRunner, quote
from core.logging.logger import get_logger
from core.logging.tags import TAG_PS

logger = get_logger(__name__)

CONNECT_TIMEOUT_S = 15


class SqlDatabaseProbe:
    """DatabaseProbe using System.Data.SqlClient from PowerShell."""

    def __init__(self, database_name: str = "SUSDB", runner: Optional[PowerShellRunner] = None):
        self._database_name = database_name
        self._runner = runner or PowerShellRunner()

    def _script(self, instance: str) -> str:
        conn_str = (f"Data Source={instance};Initial Catalog=master;Integrated Security=True;"
                    f"Connect Timeout={CONNECT_TIMEOUT_S};Application Name=WSUS Admin Console")
        db = self._database_name.replace("'", "''")
        return (
            f"$conn = New-Object System.Data.SqlClient.SqlConnection({quote(conn_str)}); "
            "try { $conn.Open(); "
            "$cmd = $conn.CreateCommand(); "
            f"$cmd.CommandText = \"SELECT CAST(SUM(size)*8.0/1024/1024 AS DECIMAL(10,2)) "
            f"FROM sys.master_files WHERE database_id = DB_ID('{db}')\"; "
            "$size = $cmd.ExecuteScalar(); "
            "[pscustomobject]@{ Connected = $true; "
            "Exists = -not ($size -is [DBNull]); "
            "SizeGB = if ($size -is [DBNull]) { $null } else { [double]$size } } "
            "} finally { $conn.Dispose() }"
        )

    def test_connection(self, instance: str) -> DatabaseStatus:
        try:
            data = self._runner.run_json(self._script(instance), timeout=CONNECT_TIMEOUT_S + 30)
        except PowerShellError as exc:
            logger.warning("%s Database connection to %s failed: %s", TAG_PS, instance, exc)
            return DatabaseStatus(connected=False, message=str(exc))

        if not isinstance(data, dict) or not data.get("Connected"):
            return DatabaseStatus(connected=False, message="No response from SQL Server")
        if not data.get("Exists"):
            return DatabaseStatus(connected=True, database_exists=False,
                                  message=f"{self._database_name} not found")
        size = data.get("SizeGB")
        message = f"Connected to {self._database_name}"
        if size is not None:
            message = f"{message} ({float(size):.2f} GB)"
        return DatabaseStatus(connected=True, database_exists=True, message=message)
