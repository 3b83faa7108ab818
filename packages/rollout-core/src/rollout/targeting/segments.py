"""Segment matching over externally supplied user attributes.

Every populated criterion must hold (AND). Absent criteria impose nothing.
A criterion whose attribute is missing fails.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from rollout.models import DateRange, NumericRange, UserAttributes, UserSegment


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _value(raw: object) -> object:
    return raw.value if isinstance(raw, Enum) else raw


def _in_dates(window: DateRange, value: datetime | None) -> bool:
    if value is None:
        return False
    moment = _as_utc(value)
    if window.from_ is not None and moment < _as_utc(window.from_):
        return False
    if window.to is not None and moment > _as_utc(window.to):
        return False
    return True


def _in_range(window: NumericRange, value: float | None) -> bool:
    if value is None:
        return False
    return window.contains(value)


class SegmentMatcher:
    """Evaluates UserSegment predicates. Stateless."""

    def failed_criteria(self, segment: UserSegment, attrs: UserAttributes) -> list[str]:
        c = segment.criteria
        failed: list[str] = []

        if c.registration_date is not None and not _in_dates(c.registration_date, attrs.registration_date):
            failed.append("registration_date")
        if c.last_active is not None and not _in_dates(c.last_active, attrs.last_active):
            failed.append("last_active")
        if c.activity_level is not None and _value(attrs.activity_level) != c.activity_level.value:
            failed.append("activity_level")
        if c.subscription_tier is not None and _value(attrs.subscription_tier) != c.subscription_tier.value:
            failed.append("subscription_tier")
        if c.total_workouts is not None and not _in_range(c.total_workouts, attrs.total_workouts):
            failed.append("total_workouts")
        if c.engagement_score is not None and not _in_range(c.engagement_score, attrs.engagement_score):
            failed.append("engagement_score")

        for name in ("is_new_user", "is_beta_tester", "is_power_user"):
            expected = getattr(c, name)
            if expected is not None and getattr(attrs, name) is not expected:
                failed.append(name)

        return failed

    def matches(self, segment: UserSegment, attrs: UserAttributes) -> bool:
        return not self.failed_criteria(segment, attrs)
