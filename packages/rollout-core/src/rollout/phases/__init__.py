"""Rollout phases: per-environment state machine."""

from rollout.phases.state_machine import (
    VALID_STATUS_TRANSITIONS,
    PhaseStateMachine,
    RolloutStatus,
    TransitionResult,
)

__all__ = [
    "PhaseStateMachine",
    "RolloutStatus",
    "TransitionResult",
    "VALID_STATUS_TRANSITIONS",
]
