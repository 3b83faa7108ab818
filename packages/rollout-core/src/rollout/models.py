"""Pydantic v2 models for the rollout configuration document.

Documents use camelCase keys; attributes are snake_case. Both spellings are
accepted on input, exports use camelCase.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _camel(key: str) -> str:
    if "_" not in key:
        return key
    head, *rest = [part for part in key.split("_") if part]
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True)


# ── Enumerations ────────────────────────────────────────────────────────────


class PhaseStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    ROLLED_BACK = "rolled_back"


class ComparisonOperator(str, Enum):
    GT = ">"
    LT = "<"
    EQ = "="
    GTE = ">="
    LTE = "<="

    def compare(self, value: float, threshold: float) -> bool:
        if self is ComparisonOperator.GT:
            return value > threshold
        if self is ComparisonOperator.LT:
            return value < threshold
        if self is ComparisonOperator.GTE:
            return value >= threshold
        if self is ComparisonOperator.LTE:
            return value <= threshold
        return value == threshold


class ActivityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    POWER = "power"


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    PRO = "pro"


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    DESKTOP = "desktop"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RolloutSpeed(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class BehaviorType(str, Enum):
    EXERCISE_COMPLETION_RATE = "exercise_completion_rate"
    WORKOUT_FREQUENCY = "workout_frequency"
    FEATURE_ADOPTION = "feature_adoption"
    ENGAGEMENT_SCORE = "engagement_score"


# ── Segments ────────────────────────────────────────────────────────────────


class DateRange(_Model):
    from_: datetime | None = Field(default=None, alias="from")
    to: datetime | None = None


class NumericRange(_Model):
    min: float | None = None
    max: float | None = None

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class SegmentCriteria(_Model):
    registration_date: DateRange | None = None
    last_active: DateRange | None = None
    activity_level: ActivityLevel | None = None
    subscription_tier: SubscriptionTier | None = None
    total_workouts: NumericRange | None = None
    engagement_score: NumericRange | None = None
    is_new_user: bool | None = None
    is_beta_tester: bool | None = None
    is_power_user: bool | None = None


class UserSegment(_Model):
    id: str
    name: str
    description: str = ""
    criteria: SegmentCriteria = Field(default_factory=SegmentCriteria)


# ── Targeting ───────────────────────────────────────────────────────────────


class CohortTarget(_Model):
    id: str
    name: str
    percentage: float
    description: str = ""


class UserBehavior(_Model):
    type: BehaviorType
    operator: ComparisonOperator
    value: float
    time_window: str | None = None


class TargetCriteria(_Model):
    percentage: float = 0.0
    user_ids: list[str] = Field(default_factory=list)
    excluded_user_ids: list[str] = Field(default_factory=list)
    user_segments: list[UserSegment] = Field(default_factory=list)
    segment_refs: list[str] = Field(default_factory=list)
    cohorts: list[CohortTarget] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    platforms: list[Platform] = Field(default_factory=list)
    user_behaviors: list[UserBehavior] = Field(default_factory=list)


# ── Health gates ────────────────────────────────────────────────────────────


class MetricThreshold(_Model):
    minimum: float
    optimum: float
    critical: float | None = None


class SuccessMetric(_Model):
    id: str
    name: str
    description: str = ""
    target: float
    unit: str = "percentage"
    threshold: MetricThreshold
    measurement_window: str = "24h"


class RollbackCriterion(_Model):
    id: str
    name: str
    description: str = ""
    metric: str
    operator: ComparisonOperator
    threshold: float
    time_window: str = "1h"
    auto_rollback: bool = False
    severity: Severity = Severity.MEDIUM


# ── Phases and environments ─────────────────────────────────────────────────


class RolloutPhase(_Model):
    id: str
    name: str
    description: str = ""
    percentage: float = 0.0
    feature_groups: list[str] = Field(default_factory=list)
    target_criteria: TargetCriteria = Field(default_factory=TargetCriteria)
    success_metrics: list[SuccessMetric] = Field(default_factory=list)
    rollback_criteria: list[RollbackCriterion] = Field(default_factory=list)
    monitoring_enabled: bool = True
    status: PhaseStatus = PhaseStatus.PENDING
    metadata: dict[str, Any] = Field(default_factory=dict)


class EnvironmentState(_Model):
    name: str
    current_phase_index: int = 0
    enabled: bool = True
    override_settings: RolloutPhase | None = None


class FeatureGroup(_Model):
    name: str
    description: str = ""
    flags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    rollout_phase: int | None = None


class GlobalSettings(_Model):
    enable_percentage_rollout: bool = True
    enable_monitoring: bool = True
    auto_rollback_enabled: bool = True
    rollout_speed: RolloutSpeed = RolloutSpeed.MODERATE
    emergency_disable: bool = False


def _merge_override(
    env_name: str, phases: list[Any], index: Any, override: dict[str, Any]
) -> dict[str, Any]:
    """Overlay a partial phase on the phase the environment points at."""
    base: Any = None
    if phases:
        if isinstance(index, int) and 0 <= index < len(phases):
            base = phases[index]
        else:
            base = phases[0]
    if isinstance(base, BaseModel):
        base_data = base.model_dump(by_alias=True)
    elif isinstance(base, dict):
        base_data = {_camel(k): v for k, v in base.items()}
    else:
        base_data = {"id": f"{env_name}_override", "name": f"{env_name} override"}
    return {**base_data, **{_camel(k): v for k, v in override.items()}}


class RolloutConfig(_Model):
    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    phases: list[RolloutPhase] = Field(default_factory=list)
    environments: dict[str, EnvironmentState] = Field(default_factory=dict)
    segments: list[UserSegment] = Field(default_factory=list)
    feature_groups: list[FeatureGroup] = Field(default_factory=list)
    global_settings: GlobalSettings = Field(default_factory=GlobalSettings)
    created_by: str = "system"
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="before")
    @classmethod
    def _materialise_environments(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        environments = data.get("environments")
        if not isinstance(environments, dict):
            return data
        phases = data.get("phases") or []
        resolved: dict[str, Any] = {}
        for env_name, env in environments.items():
            if isinstance(env, dict):
                env = {_camel(k): v for k, v in env.items()}
                env.setdefault("name", env_name)
                if "currentPhase" in env and "currentPhaseIndex" not in env:
                    env["currentPhaseIndex"] = env.pop("currentPhase")
                override = env.get("overrideSettings")
                if isinstance(override, dict):
                    env["overrideSettings"] = _merge_override(
                        env_name, phases, env.get("currentPhaseIndex", 0), override
                    )
            resolved[env_name] = env
        return {**data, "environments": resolved}

    def segment(self, segment_id: str) -> UserSegment | None:
        for seg in self.segments:
            if seg.id == segment_id:
                return seg
        return None

    def touch(self) -> None:
        self.updated_at = _utc_now()


# ── Per-call inputs ─────────────────────────────────────────────────────────


@dataclass
class UserAttributes:
    """Attributes supplied by the user-profile collaborator for one call."""

    registration_date: datetime | None = None
    last_active: datetime | None = None
    activity_level: str | None = None
    subscription_tier: str | None = None
    total_workouts: int | None = None
    engagement_score: float | None = None
    is_new_user: bool | None = None
    is_beta_tester: bool | None = None
    is_power_user: bool | None = None
    platform: str | None = None
    region: str | None = None
    cohorts: list[str] = field(default_factory=list)
    behaviors: dict[str, float] = field(default_factory=dict)
