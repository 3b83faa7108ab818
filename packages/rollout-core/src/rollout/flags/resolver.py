"""Feature flag resolver: public entry point for "is this flag on for this user".

Resolution order (first decisive step wins):
  1. explicit override (per user, then global)
  2. emergency disable
  3. unknown flag
  4. dependencies of the flag's feature group, resolved recursively
  5. current phase for the environment, which must be active
  6. flag's feature group unlocked by the phase
  7. target criteria of the phase

Decisions are computed fresh on every call and never cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from rollout.flags.overrides import OverrideStore
from rollout.flags.registry import FlagRegistry
from rollout.models import PhaseStatus, UserAttributes
from rollout.phases.state_machine import PhaseStateMachine
from rollout.targeting.criteria import TargetCriteriaEvaluator

logger = logging.getLogger(__name__)


@dataclass
class FeatureFlagDecision:
    flag: str
    enabled: bool
    reasons: list[str] = field(default_factory=list)
    phase_id: str | None = None

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "reasons": list(self.reasons)}


class FeatureFlagResolver:
    def __init__(
        self,
        state_machine: PhaseStateMachine,
        registry: FlagRegistry,
        evaluator: TargetCriteriaEvaluator,
        overrides: OverrideStore | None = None,
    ) -> None:
        self._machine = state_machine
        self._registry = registry
        self._evaluator = evaluator
        self._overrides = overrides or OverrideStore()

    @property
    def overrides(self) -> OverrideStore:
        return self._overrides

    def resolve(
        self,
        flag: str,
        user_id: str,
        environment: str,
        attrs: UserAttributes | None = None,
    ) -> FeatureFlagDecision:
        decision = self._resolve(flag, user_id, environment, attrs or UserAttributes(), frozenset())
        logger.debug("Flag %s for %s in %s -> %s %s", flag, user_id, environment, decision.enabled, decision.reasons)
        return decision

    def resolve_many(
        self,
        flags: Iterable[str],
        user_id: str,
        environment: str,
        attrs: UserAttributes | None = None,
    ) -> dict[str, FeatureFlagDecision]:
        return {flag: self.resolve(flag, user_id, environment, attrs) for flag in flags}

    def enabled_flags(
        self,
        user_id: str,
        environment: str,
        attrs: UserAttributes | None = None,
    ) -> list[str]:
        decisions = self.resolve_many(self._registry.flags, user_id, environment, attrs)
        return [flag for flag, decision in decisions.items() if decision.enabled]

    def is_group_enabled(
        self,
        group_name: str,
        user_id: str,
        environment: str,
        attrs: UserAttributes | None = None,
    ) -> bool:
        """True when every flag of the group resolves on for this user."""
        group = self._registry.group(group_name)
        if group is None or not group.flags:
            return False
        return all(self.resolve(flag, user_id, environment, attrs).enabled for flag in group.flags)

    def _resolve(
        self,
        flag: str,
        user_id: str,
        environment: str,
        attrs: UserAttributes,
        chain: frozenset[str],
    ) -> FeatureFlagDecision:
        reasons: list[str] = []

        def deny(reason: str, phase_id: str | None = None) -> FeatureFlagDecision:
            reasons.append(reason)
            return FeatureFlagDecision(flag=flag, enabled=False, reasons=reasons, phase_id=phase_id)

        override = self._overrides.get(flag, user_id)
        if override is not None:
            state = "force-enabled" if override.enabled else "force-disabled"
            scope = "user" if override.user_id else "global"
            reasons.append(f"explicit override: {state} ({scope})")
            return FeatureFlagDecision(flag=flag, enabled=override.enabled, reasons=reasons)

        config = self._machine.config
        if config.global_settings.emergency_disable:
            return deny("emergency disable active")

        group = self._registry.group_for(flag)
        if group is None:
            return deny(f"unknown flag: {flag}")

        for dep in self._registry.dependencies_for(flag):
            if dep in chain:
                return deny(f"dependency not met: {dep} (cycle)")
            dep_decision = self._resolve(dep, user_id, environment, attrs, chain | {flag})
            if not dep_decision.enabled:
                return deny(f"dependency not met: {dep}")

        phase = self._machine.get_current_phase(environment)
        if phase is None:
            return deny(f"no current phase: environment {environment} disabled or unknown")
        if phase.status != PhaseStatus.ACTIVE:
            return deny(f"phase {phase.id} is {PhaseStatus(phase.status).value}, not active", phase.id)
        if group.name not in phase.feature_groups:
            return deny(f"not in active phase feature set: {group.name}", phase.id)

        result = self._evaluator.is_included(
            phase.target_criteria,
            user_id,
            attrs,
            percentage_enabled=config.global_settings.enable_percentage_rollout,
        )
        reasons.extend(result.reasons)
        return FeatureFlagDecision(flag=flag, enabled=result.included, reasons=reasons, phase_id=phase.id)
