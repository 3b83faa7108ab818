"""RolloutEngine: one object that wires the rollout components together.

The engine owns a component set (config, state machine, registry,
evaluator, resolver, monitor) built from a single validated
configuration. reload() builds a fresh set and swaps it in with one
attribute assignment, so a concurrent resolve() sees either the old set or
the new one, never a mix. The override store outlives reloads.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rollout.config.loader import export_config, load_config
from rollout.errors import ConfigurationError
from rollout.flags.overrides import Override, OverrideStore
from rollout.flags.registry import FlagRegistry
from rollout.flags.resolver import FeatureFlagDecision, FeatureFlagResolver
from rollout.gate.metric_gate import MetricGate, SuccessMetricStatus
from rollout.gate.monitor import RollbackEvent, RollbackMonitor, RollbackOutcome
from rollout.gate.scheduler import MetricsProvider, MonitoringScheduler
from rollout.models import PhaseStatus, RolloutConfig, RolloutPhase, UserAttributes
from rollout.phases.state_machine import PhaseStateMachine, RolloutStatus, TransitionResult
from rollout.settings import RolloutSettings
from rollout.targeting.criteria import TargetCriteriaEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Components:
    config: RolloutConfig
    machine: PhaseStateMachine
    registry: FlagRegistry
    resolver: FeatureFlagResolver
    monitor: RollbackMonitor


class RolloutEngine:
    def __init__(
        self,
        config: RolloutConfig,
        overrides: OverrideStore | None = None,
        default_environment: str = "production",
    ) -> None:
        self.overrides = overrides or OverrideStore()
        self.default_environment = default_environment
        self._gate = MetricGate()
        self._components = self._build(config)

    @classmethod
    def from_document(
        cls, source: Path | str | Mapping[str, Any], overrides: OverrideStore | None = None
    ) -> RolloutEngine:
        return cls(load_config(source), overrides=overrides)

    @classmethod
    def from_settings(cls, settings: RolloutSettings | None = None) -> RolloutEngine:
        settings = settings or RolloutSettings()
        overrides = OverrideStore(settings.parsed_overrides)
        return cls(
            load_config(settings.config_path),
            overrides=overrides,
            default_environment=settings.default_environment,
        )

    def _build(self, config: RolloutConfig) -> _Components:
        machine = PhaseStateMachine(config)
        registry = FlagRegistry(config.feature_groups)
        evaluator = TargetCriteriaEvaluator(config.segments)
        resolver = FeatureFlagResolver(machine, registry, evaluator, self.overrides)
        monitor = RollbackMonitor(machine, self._gate)
        return _Components(config, machine, registry, resolver, monitor)

    @property
    def config(self) -> RolloutConfig:
        return self._components.config

    @property
    def registry(self) -> FlagRegistry:
        return self._components.registry

    @property
    def monitor(self) -> RollbackMonitor:
        return self._components.monitor

    def _env(self, environment: str | None) -> str:
        return environment or self.default_environment

    # ── Flag resolution ─────────────────────────────────────────────────────

    def resolve(
        self,
        flag: str,
        user_id: str,
        environment: str | None = None,
        attrs: UserAttributes | None = None,
    ) -> FeatureFlagDecision:
        return self._components.resolver.resolve(flag, user_id, self._env(environment), attrs)

    def is_enabled(
        self,
        flag: str,
        user_id: str,
        environment: str | None = None,
        attrs: UserAttributes | None = None,
    ) -> bool:
        return self.resolve(flag, user_id, environment, attrs).enabled

    def enabled_flags(
        self, user_id: str, environment: str | None = None, attrs: UserAttributes | None = None
    ) -> list[str]:
        return self._components.resolver.enabled_flags(user_id, self._env(environment), attrs)

    # ── Administration ──────────────────────────────────────────────────────

    def advance_phase(self, environment: str | None = None) -> TransitionResult:
        return self._components.machine.advance_phase(self._env(environment))

    def rollback_phase(self, environment: str | None = None) -> TransitionResult:
        return self._components.machine.rollback_phase(self._env(environment))

    def update_phase_status(
        self, phase_id: str, status: PhaseStatus | str, environment: str | None = None
    ) -> TransitionResult:
        return self._components.machine.update_phase_status(phase_id, status, self._env(environment))

    def get_current_phase(self, environment: str | None = None) -> RolloutPhase | None:
        return self._components.machine.get_current_phase(self._env(environment))

    def status(self, environment: str | None = None) -> RolloutStatus | None:
        return self._components.machine.status(self._env(environment))

    def emergency_disable(self, disabled: bool = True) -> None:
        components = self._components
        components.config.global_settings.emergency_disable = disabled
        components.config.touch()
        logger.warning("Emergency disable %s for %s", "engaged" if disabled else "released", components.config.id)

    def force_enable(self, flag: str, user_id: str | None = None) -> None:
        self.overrides.force_enable(flag, user_id)
        logger.info("Override: %s force-enabled%s", flag, f" for {user_id}" if user_id else "")

    def force_disable(self, flag: str, user_id: str | None = None) -> None:
        self.overrides.force_disable(flag, user_id)
        logger.info("Override: %s force-disabled%s", flag, f" for {user_id}" if user_id else "")

    def clear_override(self, flag: str, user_id: str | None = None) -> None:
        self.overrides.clear(flag, user_id)

    def is_group_enabled(
        self,
        group_name: str,
        user_id: str,
        environment: str | None = None,
        attrs: UserAttributes | None = None,
    ) -> bool:
        return self._components.resolver.is_group_enabled(group_name, user_id, self._env(environment), attrs)

    def enable_group(self, group_name: str, user_id: str | None = None) -> None:
        """Force-enable a group's flags together with the flags it depends on."""
        registry = self._components.registry
        group = registry.group(group_name)
        if group is None:
            raise KeyError(f"Unknown feature group: {group_name}")
        flags = [*group.dependencies, *registry.flags_for_groups([group_name])]
        self.overrides.set_many(Override(flag=flag, enabled=True, user_id=user_id) for flag in flags)
        logger.info("Override: group %s force-enabled (%d flags)", group_name, len(flags))

    def disable_group(self, group_name: str, user_id: str | None = None) -> None:
        """Force-disable a group's own flags; dependencies are left alone."""
        registry = self._components.registry
        if registry.group(group_name) is None:
            raise KeyError(f"Unknown feature group: {group_name}")
        flags = registry.flags_for_groups([group_name])
        self.overrides.set_many(Override(flag=flag, enabled=False, user_id=user_id) for flag in flags)
        logger.info("Override: group %s force-disabled", group_name)

    # ── Metrics ─────────────────────────────────────────────────────────────

    def evaluate_rollback(
        self, environment: str | None, metrics: Mapping[str, float]
    ) -> RollbackOutcome:
        return self._components.monitor.evaluate_rollback(self._env(environment), metrics)

    def evaluate_success(
        self, metrics: Mapping[str, float], environment: str | None = None
    ) -> list[SuccessMetricStatus]:
        phase = self.get_current_phase(environment)
        if phase is None:
            return []
        return self._gate.evaluate_success(phase, metrics)

    def rollback_history(self) -> list[RollbackEvent]:
        return self._components.monitor.events

    def create_scheduler(
        self, metrics_provider: MetricsProvider, interval_seconds: float = 300.0
    ) -> MonitoringScheduler:
        return MonitoringScheduler(self.evaluate_rollback, metrics_provider, interval_seconds)

    # ── Configuration ───────────────────────────────────────────────────────

    def export(self) -> str:
        return export_config(self._components.config)

    def reload(self, source: Path | str | Mapping[str, Any]) -> RolloutConfig:
        """Replace the active configuration; on ConfigurationError the old one stays."""
        previous = self._components.config
        try:
            config = load_config(source)
        except ConfigurationError as e:
            logger.warning("Reload rejected, keeping %s v%s: %s", previous.id, previous.version, e)
            raise
        self._components = self._build(config)
        logger.info("Reloaded rollout configuration %s v%s -> %s v%s", previous.id, previous.version, config.id, config.version)
        return config
