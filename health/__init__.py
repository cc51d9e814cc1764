"""Health probes, aggregation and service recovery."""
from health.models import (
    HealthCheckResult,
    HealthStatus,
    ProbeResult,
    RecoveryResult,
    RepairOutcome,
    ServiceDescriptor,
)
from health.aggregator import aggregate
from health.probes import ProbeSet, run_probe
from health.recovery import RecoveryOrchestrator

__all__ = [
    'HealthCheckResult',
    'HealthStatus',
    'ProbeResult',
    'RecoveryResult',
    'RepairOutcome',
    'ServiceDescriptor',
    'aggregate',
    'ProbeSet',
    'run_probe',
    'RecoveryOrchestrator',
]
