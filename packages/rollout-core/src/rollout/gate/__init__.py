"""Health gates: metric gate, rollback monitor, scheduler."""

from rollout.gate.metric_gate import (
    MetricGate,
    MetricHealth,
    RollbackDecision,
    SuccessMetricStatus,
    TriggeredCriterion,
)
from rollout.gate.monitor import RollbackEvent, RollbackMonitor, RollbackOutcome

__all__ = [
    "MetricGate",
    "MetricHealth",
    "RollbackDecision",
    "RollbackEvent",
    "RollbackMonitor",
    "RollbackOutcome",
    "SuccessMetricStatus",
    "TriggeredCriterion",
]
