"""
Health aggregation.

Precedence over independent probe results:
    any Issue              -> UNHEALTHY (absorbing)
    no Issue, any Warning  -> DEGRADED
    neither                -> HEALTHY

The overall status is always the one implied by the returned Issue/Warning
lists, so a probe that reports a bad status with no message contributes a
generic one.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from core.logging.logger import get_logger
from core.logging.tags import TAG_HEALTH
from health.models import HealthCheckResult, HealthStatus, ProbeResult, freeze_probes

logger = get_logger(__name__)


def aggregate(results: Iterable[ProbeResult], timestamp: Optional[datetime] = None) -> HealthCheckResult:
    overall = HealthStatus.HEALTHY
    issues: List[str] = []
    warnings: List[str] = []
    probes: Dict[str, ProbeResult] = {}

    for result in results:
        probes[result.name] = result

        probe_issues = list(result.issues)
        probe_warnings = list(result.warnings)
        if result.status is HealthStatus.UNHEALTHY and not probe_issues:
            probe_issues.append(f"{result.name} is unhealthy")
        elif result.status is HealthStatus.DEGRADED and not probe_issues and not probe_warnings:
            probe_warnings.append(f"{result.name} is degraded")

        if probe_issues:
            issues.extend(probe_issues)
            overall = HealthStatus.UNHEALTHY
        if probe_warnings:
            warnings.extend(probe_warnings)
            if overall is HealthStatus.HEALTHY:
                overall = HealthStatus.DEGRADED

    report = HealthCheckResult(
        overall=overall,
        probes=freeze_probes(probes),
        issues=tuple(issues),
        warnings=tuple(warnings),
        timestamp=timestamp or datetime.now(),
    )
    logger.info("%s Overall %s (%d issues, %d warnings, %d probes)",
                TAG_HEALTH, overall.value, len(issues), len(warnings), len(probes))
    return report
