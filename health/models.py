"""
Health and recovery value types.

All results are immutable once built: the worker thread that produced them
hands them to the presentation thread without further synchronisation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class HealthStatus(str, Enum):
    """Ordered health state: HEALTHY < DEGRADED < UNHEALTHY."""

    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @staticmethod
    def worst(a: "HealthStatus", b: "HealthStatus") -> "HealthStatus":
        return a if a.severity >= b.severity else b


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one independent probe."""

    name: str
    status: HealthStatus
    issues: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    details: Optional[str] = None

    @classmethod
    def healthy(cls, name: str, details: Optional[str] = None) -> "ProbeResult":
        return cls(name, HealthStatus.HEALTHY, details=details)

    @classmethod
    def issue(cls, name: str, *messages: str, details: Optional[str] = None) -> "ProbeResult":
        return cls(name, HealthStatus.UNHEALTHY, issues=tuple(messages), details=details)

    @classmethod
    def warning(cls, name: str, *messages: str, details: Optional[str] = None) -> "ProbeResult":
        return cls(name, HealthStatus.DEGRADED, warnings=tuple(messages), details=details)


@dataclass(frozen=True)
class HealthCheckResult:
    """Aggregated report over a full probe run."""

    overall: HealthStatus
    probes: Mapping[str, ProbeResult]
    issues: Tuple[str, ...]
    warnings: Tuple[str, ...]
    timestamp: datetime

    @property
    def is_healthy(self) -> bool:
        return self.overall is HealthStatus.HEALTHY

    @property
    def is_degraded(self) -> bool:
        return self.overall is HealthStatus.DEGRADED

    @property
    def is_unhealthy(self) -> bool:
        return self.overall is HealthStatus.UNHEALTHY

    def summary(self) -> str:
        if self.is_healthy:
            return "All systems operational"
        parts = []
        if self.issues:
            parts.append(f"{len(self.issues)} issue{'s' if len(self.issues) != 1 else ''}")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warning{'s' if len(self.warnings) != 1 else ''}")
        return f"{self.overall.value}: {', '.join(parts)}"


@dataclass(frozen=True)
class ServiceDescriptor:
    """A service taking part in health checks and ordered recovery."""

    name: str
    display_name: str
    critical: bool = True
    rank: int = 0
    start_timeout: float = 10.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ServiceDescriptor":
        """Build from a settings entry; missing display names fall back to the service name."""
        name = str(data["name"])
        critical = data.get("critical", True)
        if isinstance(critical, str):
            critical = critical.strip().lower() in ("true", "1", "yes", "on")
        return cls(
            name=name,
            display_name=str(data.get("display_name") or name),
            critical=bool(critical),
            rank=int(float(data.get("rank", 0))),
            start_timeout=float(data.get("start_timeout", 10.0)),
        )


@dataclass(frozen=True)
class RecoveryResult:
    """Per-service outcome of one recovery run. Buckets are disjoint."""

    already_running: Tuple[str, ...] = ()
    recovered: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()
    attempted: Tuple[str, ...] = ()
    success: bool = True
    cancelled: bool = False

    def summary(self) -> str:
        if self.cancelled:
            return "Recovery cancelled"
        if not self.attempted:
            return "All services already running"
        if self.success:
            return f"Recovered: {', '.join(self.recovered)}"
        return f"Failed to start: {', '.join(self.failed)}"


def freeze_probes(results: Dict[str, ProbeResult]) -> Mapping[str, ProbeResult]:
    return MappingProxyType(dict(results))


@dataclass(frozen=True)
class RepairOutcome:
    """Recovery result followed by the health re-check that ran after it."""

    recovery: RecoveryResult
    health: Optional[HealthCheckResult] = field(default=None)

    @property
    def success(self) -> bool:
        return self.recovery.success
