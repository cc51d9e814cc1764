"""
Narrow interfaces to the administrative actions the engine drives.

The engine only depends on these protocols; the Windows implementations
live beside them in this package and tests substitute fakes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from health.models import HealthStatus


@dataclass(frozen=True)
class DatabaseStatus:
    connected: bool
    database_exists: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class FirewallStatus:
    all_present: bool
    missing: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PermissionStatus:
    all_correct: bool
    missing: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CheckStatus:
    """Status plus optional message; shared shape of disk/certificate/task checks."""
    status: HealthStatus
    message: Optional[str] = None


class ServiceControl(Protocol):
    def is_running(self, name: str) -> bool: ...

    def start(self, name: str, timeout: float) -> bool:
        """Start a service and wait up to ``timeout`` seconds. Never raises for unknown services."""
        ...


class DatabaseProbe(Protocol):
    def test_connection(self, instance: str) -> DatabaseStatus: ...


class FirewallProbe(Protocol):
    def all_rules_present(self, rules: Sequence[str]) -> FirewallStatus: ...


class PermissionProbe(Protocol):
    def all_permissions_present(self, path: str) -> PermissionStatus: ...


class DiskProbe(Protocol):
    def check(self, path: str) -> CheckStatus: ...


class CertificateProbe(Protocol):
    def check(self) -> CheckStatus: ...


class ScheduledTaskProbe(Protocol):
    def check(self, task_name: str) -> CheckStatus: ...
