"""Semantic validation of a parsed RolloutConfig.

Structural problems are caught earlier by the JSON Schema and pydantic; this
pass covers what those cannot express: percentage bounds, index bounds,
duplicate ids, feature group references and dependency cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rollout.flags.registry import FlagRegistry
from rollout.models import RolloutConfig, RolloutPhase, TargetCriteria


@dataclass
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _in_bounds(value: float) -> bool:
    return 0 <= value <= 100


def _check_criteria(label: str, criteria: TargetCriteria, errors: list[str]) -> None:
    if not _in_bounds(criteria.percentage):
        errors.append(f"{label}: target percentage must be between 0 and 100, got {criteria.percentage}")
    for cohort in criteria.cohorts:
        if not _in_bounds(cohort.percentage):
            errors.append(
                f"{label}: cohort {cohort.id} percentage must be between 0 and 100, got {cohort.percentage}"
            )


def _check_phase(label: str, phase: RolloutPhase, errors: list[str]) -> None:
    if not _in_bounds(phase.percentage):
        errors.append(f"{label}: percentage must be between 0 and 100, got {phase.percentage}")
    _check_criteria(label, phase.target_criteria, errors)


def validate_config(config: RolloutConfig) -> ValidationReport:
    errors: list[str] = []
    warnings: list[str] = []

    if not config.phases:
        errors.append("Configuration must define at least one phase")

    seen: set[str] = set()
    for phase in config.phases:
        if phase.id in seen:
            errors.append(f"Duplicate phase id: {phase.id}")
        seen.add(phase.id)
        _check_phase(f"Phase {phase.id}", phase, errors)

    for prev, curr in zip(config.phases, config.phases[1:]):
        if curr.percentage < prev.percentage:
            warnings.append(
                f"Phase {curr.id} percentage ({curr.percentage}) is lower than "
                f"previous phase {prev.id} ({prev.percentage})"
            )

    for phase in config.phases:
        if phase.target_criteria.percentage != phase.percentage:
            warnings.append(
                f"Phase {phase.id} target percentage ({phase.target_criteria.percentage}) "
                f"differs from phase percentage ({phase.percentage})"
            )
        for ref in phase.target_criteria.segment_refs:
            if config.segment(ref) is None:
                warnings.append(f"Phase {phase.id} references unknown segment: {ref}")

    for name, env in config.environments.items():
        if not 0 <= env.current_phase_index < len(config.phases):
            errors.append(
                f"Environment {name}: current phase index {env.current_phase_index} "
                f"out of bounds for {len(config.phases)} phases"
            )
        if env.override_settings is not None:
            _check_phase(f"Environment {name} override", env.override_settings, errors)

    if config.feature_groups:
        registry = FlagRegistry(config.feature_groups)
        errors.extend(registry.check(config.phases))
    elif any(phase.feature_groups for phase in config.phases):
        warnings.append("Phases reference feature groups but no featureGroups are declared; every flag will resolve as unknown")

    return ValidationReport(is_valid=not errors, errors=errors, warnings=warnings)
