"""
PowerShell runner used by the Windows collaborators.

Scripts run in a fresh ``powershell.exe -NoProfile`` process with no window.
Structured output is requested as compressed JSON so callers never parse
formatted tables.
"""
from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_PS

logger = get_logger(__name__)

_NO_WINDOW_FLAG = getattr(subprocess, "CREATE_NO_WINDOW", 0)
DEFAULT_TIMEOUT_S = 60.0


class PowerShellError(RuntimeError):
    """A script could not be run, timed out, or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class PowerShellResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def quote(value: str) -> str:
    """Quote ``value`` as a PowerShell single-quoted literal."""
    return "'" + str(value).replace("'", "''") + "'"


def quote_list(values: Sequence[str]) -> str:
    return "@(" + ", ".join(quote(v) for v in values) + ")"


class PowerShellRunner:
    """Runs scripts through powershell.exe."""

    def __init__(self, executable: str = "powershell.exe", timeout: float = DEFAULT_TIMEOUT_S):
        self._executable = executable
        self._timeout = timeout

    def run(self, script: str, timeout: Optional[float] = None, check: bool = True) -> PowerShellResult:
        """
        Run a script.

        Raises:
            PowerShellError: powershell could not be launched, timed out, or
                (with ``check``) exited non-zero.
        """
        command = [
            self._executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            script,
        ]
        if is_verbose_logging():
            logger.debug("%s Running: %s", TAG_PS, script)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout if timeout is not None else self._timeout,
                creationflags=_NO_WINDOW_FLAG if _NO_WINDOW_FLAG else 0,
            )
        except FileNotFoundError as exc:
            raise PowerShellError(f"{self._executable} not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise PowerShellError(f"PowerShell timed out after {exc.timeout}s") from exc

        result = PowerShellResult(completed.returncode, completed.stdout or "", completed.stderr or "")
        if check and not result.ok:
            message = (result.stderr or result.stdout).strip() or "no output"
            logger.debug("%s Script failed (rc=%s): %s", TAG_PS, result.returncode, message)
            raise PowerShellError(f"PowerShell exited with {result.returncode}: {message}",
                                  returncode=result.returncode, stderr=result.stderr)
        return result

    def run_json(self, script: str, timeout: Optional[float] = None) -> Any:
        """Run a script and parse its pipeline output as JSON (None for no output)."""
        wrapped = f"& {{ {script} }} | ConvertTo-Json -Compress -Depth 4"
        result = self.run(wrapped, timeout=timeout)
        text = result.stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PowerShellError(f"Unparseable PowerShell output: {text[:200]}") from exc
