"""Metric gate: rollback decision from live metric values.

For each rollback criterion on the phase:
  metric missing -> not evaluated (fail-open, never triggers)
  crossed + auto_rollback -> triggered
  crossed, manual -> advisory only

Pure function over supplied data; callers decide whether to roll back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from rollout.models import RollbackCriterion, RolloutPhase, Severity, SuccessMetric


@dataclass
class TriggeredCriterion:
    criterion_id: str
    metric: str
    value: float
    operator: str
    threshold: float
    severity: Severity
    auto_rollback: bool


@dataclass
class RollbackDecision:
    should_rollback: bool
    triggered: list[TriggeredCriterion] = field(default_factory=list)
    advisory: list[TriggeredCriterion] = field(default_factory=list)
    not_evaluated: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)

    @property
    def max_severity(self) -> Severity | None:
        order = list(Severity)
        if not self.triggered:
            return None
        return max((t.severity for t in self.triggered), key=order.index)


class MetricHealth(Enum):
    EXCEEDED = "exceeded"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    CRITICAL = "critical"
    NOT_MEASURED = "not_measured"


@dataclass
class SuccessMetricStatus:
    metric_id: str
    target: float
    current: float | None
    health: MetricHealth


class MetricGate:
    """Compares live metrics against a phase's health gates."""

    def evaluate(self, phase: RolloutPhase, live_metrics: Mapping[str, float]) -> RollbackDecision:
        decision = RollbackDecision(should_rollback=False)
        for criterion in phase.rollback_criteria:
            value = live_metrics.get(criterion.metric)
            if value is None:
                decision.not_evaluated.append(criterion.id)
                decision.reasons.append(f"{criterion.id}: metric {criterion.metric} missing, not evaluated")
                continue

            if not criterion.operator.compare(value, criterion.threshold):
                continue

            hit = self._hit(criterion, value)
            if criterion.auto_rollback:
                decision.triggered.append(hit)
                decision.reasons.append(
                    f"{criterion.id}: {criterion.metric} {value:g} {criterion.operator.value} "
                    f"{criterion.threshold:g} ({criterion.severity.value}), auto-rollback"
                )
            else:
                decision.advisory.append(hit)
                decision.reasons.append(
                    f"{criterion.id}: {criterion.metric} {value:g} {criterion.operator.value} "
                    f"{criterion.threshold:g}, manual review"
                )

        decision.should_rollback = bool(decision.triggered)
        return decision

    def evaluate_success(
        self, phase: RolloutPhase, live_metrics: Mapping[str, float]
    ) -> list[SuccessMetricStatus]:
        return [self._grade(metric, live_metrics.get(metric.id)) for metric in phase.success_metrics]

    @staticmethod
    def _hit(criterion: RollbackCriterion, value: float) -> TriggeredCriterion:
        return TriggeredCriterion(
            criterion_id=criterion.id,
            metric=criterion.metric,
            value=value,
            operator=criterion.operator.value,
            threshold=criterion.threshold,
            severity=criterion.severity,
            auto_rollback=criterion.auto_rollback,
        )

    @staticmethod
    def _grade(metric: SuccessMetric, value: float | None) -> SuccessMetricStatus:
        threshold = metric.threshold
        if value is None:
            health = MetricHealth.NOT_MEASURED
        elif value >= threshold.optimum:
            health = MetricHealth.EXCEEDED
        elif value >= threshold.minimum:
            health = MetricHealth.ON_TRACK
        elif threshold.critical is None or value >= threshold.critical:
            health = MetricHealth.AT_RISK
        else:
            health = MetricHealth.CRITICAL
        return SuccessMetricStatus(metric_id=metric.id, target=metric.target, current=value, health=health)
