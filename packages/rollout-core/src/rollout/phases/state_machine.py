"""Phase state machine: per-environment phase pointer plus phase status.

Pointer moves:
  advance: index -> index + 1 (fails on the last phase)
  rollback: index -> index - 1 (fails on the first phase)

Status moves (independent of the pointer):
  pending -> active -> completed -> active (after a rollback lands on it)
  active -> rolled_back -> active

Writers serialise on a per-environment lock. Readers never lock; they read
the index attribute, which is replaced in a single assignment.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from rollout.errors import TransitionError
from rollout.models import EnvironmentState, PhaseStatus, RolloutConfig, RolloutPhase

logger = logging.getLogger(__name__)


VALID_STATUS_TRANSITIONS: dict[PhaseStatus, set[PhaseStatus]] = {
    PhaseStatus.PENDING: {PhaseStatus.ACTIVE},
    PhaseStatus.ACTIVE: {PhaseStatus.COMPLETED, PhaseStatus.ROLLED_BACK},
    PhaseStatus.COMPLETED: {PhaseStatus.ACTIVE, PhaseStatus.ROLLED_BACK},
    PhaseStatus.ROLLED_BACK: {PhaseStatus.ACTIVE},
}


@dataclass
class TransitionResult:
    success: bool
    reason: str = ""
    from_index: int | None = None
    to_index: int | None = None

    def raise_for_error(self) -> None:
        if not self.success:
            raise TransitionError(self.reason)


@dataclass
class RolloutStatus:
    environment: str
    current_index: int
    total_phases: int
    progress: int  # 0-100
    current_phase_id: str | None
    rollout_percentage: float
    is_complete: bool
    next_phase_id: str | None = None
    previous_phase_id: str | None = None


class PhaseStateMachine:
    def __init__(self, config: RolloutConfig) -> None:
        self._config = config
        self._locks: dict[str, threading.Lock] = {name: threading.Lock() for name in config.environments}
        self._locks_guard = threading.Lock()
        self._phases_lock = threading.Lock()

    @property
    def config(self) -> RolloutConfig:
        return self._config

    def _lock_for(self, environment: str) -> threading.Lock:
        lock = self._locks.get(environment)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(environment, threading.Lock())
        return lock

    def _require_env(self, environment: str) -> EnvironmentState:
        state = self._config.environments.get(environment)
        if state is None:
            raise TransitionError(f"Unknown environment: {environment}")
        return state

    # ── Pointer ─────────────────────────────────────────────────────────────

    def advance_phase(self, environment: str, expected_index: int | None = None) -> TransitionResult:
        return self._move(environment, +1, expected_index)

    def rollback_phase(self, environment: str, expected_index: int | None = None) -> TransitionResult:
        return self._move(environment, -1, expected_index)

    def _move(self, environment: str, step: int, expected_index: int | None) -> TransitionResult:
        with self._lock_for(environment):
            current: int | None = None
            try:
                state = self._require_env(environment)
                current = state.current_phase_index
                if expected_index is not None and current != expected_index:
                    raise TransitionError(
                        f"Phase index moved: expected {expected_index}, found {current}"
                    )
                target = current + step
                if target >= len(self._config.phases):
                    raise TransitionError("Already at the last phase")
                if target < 0:
                    raise TransitionError("Already at the first phase")
            except TransitionError as e:
                logger.info("Phase transition refused for %s: %s", environment, e)
                return TransitionResult(success=False, reason=str(e), from_index=current, to_index=current)

            state.current_phase_index = target
            self._config.touch()

        verb = "advanced" if step > 0 else "rolled back"
        logger.info("Environment %s %s from phase %d to %d", environment, verb, current, target)
        return TransitionResult(success=True, from_index=current, to_index=target)

    # ── Status ──────────────────────────────────────────────────────────────

    def update_phase_status(
        self, phase_id: str, status: PhaseStatus | str, environment: str
    ) -> TransitionResult:
        with self._lock_for(environment):
            try:
                new_status = self._coerce_status(status)
                state = self._require_env(environment)
                override = state.override_settings
                if override is not None and override.id == phase_id:
                    self._set_status(override, new_status)
                else:
                    phase = self._find_phase(phase_id)
                    if phase is None:
                        raise TransitionError(f"No phase {phase_id!r} in environment {environment}")
                    with self._phases_lock:
                        self._set_status(phase, new_status)
            except TransitionError as e:
                logger.info("Status update refused for %s/%s: %s", environment, phase_id, e)
                return TransitionResult(success=False, reason=str(e))
            self._config.touch()

        logger.info("Phase %s in %s set to %s", phase_id, environment, new_status.value)
        return TransitionResult(success=True)

    @staticmethod
    def _coerce_status(status: PhaseStatus | str) -> PhaseStatus:
        try:
            return PhaseStatus(status)
        except ValueError:
            raise TransitionError(f"Unknown phase status: {status}") from None

    @staticmethod
    def _set_status(phase: RolloutPhase, new_status: PhaseStatus) -> None:
        if phase.status == new_status:
            return
        if new_status not in VALID_STATUS_TRANSITIONS[phase.status]:
            raise TransitionError(f"Invalid status transition: {phase.status.value} -> {new_status.value}")
        phase.status = new_status

    def _find_phase(self, phase_id: str) -> RolloutPhase | None:
        for phase in self._config.phases:
            if phase.id == phase_id:
                return phase
        return None

    # ── Reads (lock-free) ───────────────────────────────────────────────────

    def phase_index(self, environment: str) -> int | None:
        state = self._config.environments.get(environment)
        return state.current_phase_index if state is not None else None

    def has_override(self, environment: str) -> bool:
        state = self._config.environments.get(environment)
        return state is not None and state.override_settings is not None

    def get_current_phase(self, environment: str) -> RolloutPhase | None:
        state = self._config.environments.get(environment)
        if state is None or not state.enabled:
            return None
        if state.override_settings is not None:
            return state.override_settings
        index = state.current_phase_index
        phases = self._config.phases
        if 0 <= index < len(phases):
            return phases[index]
        return None

    def status(self, environment: str) -> RolloutStatus | None:
        state = self._config.environments.get(environment)
        if state is None:
            return None
        phases = self._config.phases
        index = state.current_phase_index
        total = len(phases)
        current = self.get_current_phase(environment)

        def _phase_id(i: int) -> str | None:
            return phases[i].id if 0 <= i < total else None

        return RolloutStatus(
            environment=environment,
            current_index=index,
            total_phases=total,
            progress=round((index + 1) / total * 100) if total else 0,
            current_phase_id=current.id if current else None,
            rollout_percentage=current.percentage if current else 0.0,
            is_complete=total > 0 and index >= total - 1,
            next_phase_id=_phase_id(index + 1),
            previous_phase_id=_phase_id(index - 1),
        )
