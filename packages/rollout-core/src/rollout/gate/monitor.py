"""Rollback monitor: feeds live metrics through the gate and steps back.

The rollback uses the phase index observed before evaluation as a
compare-and-set guard, so two monitors judging the same phase cannot
roll back twice.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rollout.gate.metric_gate import MetricGate, RollbackDecision
from rollout.phases.state_machine import PhaseStateMachine, TransitionResult

logger = logging.getLogger(__name__)


@dataclass
class RollbackOutcome:
    environment: str
    phase_id: str | None
    decision: RollbackDecision | None = None
    rolled_back: bool = False
    transition: TransitionResult | None = None
    reason: str = ""


@dataclass
class RollbackEvent:
    environment: str
    phase_id: str
    triggered: list[str]
    rolled_back: bool
    from_index: int | None
    to_index: int | None
    reason: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RollbackMonitor:
    def __init__(
        self,
        state_machine: PhaseStateMachine,
        gate: MetricGate | None = None,
        history_size: int = 1000,
    ) -> None:
        self._machine = state_machine
        self._gate = gate or MetricGate()
        self._events: deque[RollbackEvent] = deque(maxlen=history_size)

    @property
    def events(self) -> list[RollbackEvent]:
        return list(self._events)

    def evaluate_rollback(self, environment: str, metric_values: Mapping[str, float]) -> RollbackOutcome:
        observed_index = self._machine.phase_index(environment)
        phase = self._machine.get_current_phase(environment)
        if phase is None:
            return RollbackOutcome(environment=environment, phase_id=None, reason="No current phase")

        settings = self._machine.config.global_settings
        if not settings.enable_monitoring or not phase.monitoring_enabled:
            return RollbackOutcome(environment=environment, phase_id=phase.id, reason="Monitoring disabled")

        decision = self._gate.evaluate(phase, metric_values)
        outcome = RollbackOutcome(environment=environment, phase_id=phase.id, decision=decision)
        if not decision.should_rollback:
            outcome.reason = "Rollback criteria not met"
            return outcome

        triggered = [t.criterion_id for t in decision.triggered]
        if not settings.auto_rollback_enabled:
            outcome.reason = "Auto-rollback disabled"
            logger.warning(
                "Rollback criteria %s tripped in %s but auto-rollback is disabled", triggered, environment
            )
            self._record(outcome, triggered)
            return outcome

        if self._machine.has_override(environment):
            outcome.reason = "Override phase, pointer rollback has no effect"
            logger.warning(
                "Rollback criteria %s tripped in %s on override phase %s; pointer left in place",
                triggered, environment, phase.id,
            )
            self._record(outcome, triggered)
            return outcome

        transition = self._machine.rollback_phase(environment, expected_index=observed_index)
        outcome.transition = transition
        outcome.rolled_back = transition.success
        outcome.reason = "Rolled back" if transition.success else transition.reason
        if transition.success:
            logger.warning(
                "Auto-rollback in %s from phase %s (index %s -> %s): %s",
                environment, phase.id, transition.from_index, transition.to_index, triggered,
            )
        else:
            logger.warning("Auto-rollback in %s not applied: %s", environment, transition.reason)
        self._record(outcome, triggered)
        return outcome

    def _record(self, outcome: RollbackOutcome, triggered: list[str]) -> None:
        transition = outcome.transition
        self._events.append(
            RollbackEvent(
                environment=outcome.environment,
                phase_id=outcome.phase_id or "",
                triggered=triggered,
                rolled_back=outcome.rolled_back,
                from_index=transition.from_index if transition else None,
                to_index=transition.to_index if transition else None,
                reason=outcome.reason,
            )
        )
