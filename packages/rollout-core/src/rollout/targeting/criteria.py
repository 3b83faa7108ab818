"""Target criteria evaluation.

First matching rule wins:
  excluded list -> explicit allow list -> eligibility filters
  -> segment match -> cohort draw -> percentage bucket -> nothing

Explicit decisions always dominate probabilistic rollout. Every step
appends a reason so a decision can be audited after the fact.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from rollout.models import TargetCriteria, UserAttributes, UserSegment
from rollout.targeting.bucketing import bucket, salted_bucket
from rollout.targeting.segments import SegmentMatcher


@dataclass
class InclusionResult:
    included: bool
    reasons: list[str] = field(default_factory=list)
    bucket: int | None = None


class TargetCriteriaEvaluator:
    def __init__(
        self,
        segments: Mapping[str, UserSegment] | Iterable[UserSegment] | None = None,
        matcher: SegmentMatcher | None = None,
    ) -> None:
        if segments is None:
            self._segments: dict[str, UserSegment] = {}
        elif isinstance(segments, Mapping):
            self._segments = dict(segments)
        else:
            self._segments = {s.id: s for s in segments}
        self._matcher = matcher or SegmentMatcher()

    def is_included(
        self,
        criteria: TargetCriteria,
        user_id: str,
        attrs: UserAttributes | None = None,
        percentage_enabled: bool = True,
    ) -> InclusionResult:
        attrs = attrs or UserAttributes()
        reasons: list[str] = []

        if user_id in criteria.excluded_user_ids:
            reasons.append("explicitly excluded")
            return InclusionResult(included=False, reasons=reasons)

        if criteria.user_ids:
            listed = user_id in criteria.user_ids
            verdict = "user listed" if listed else "user not listed"
            reasons.append(f"explicit allow/deny list: {verdict}")
            return InclusionResult(included=listed, reasons=reasons)

        ineligible = self._ineligible(criteria, attrs)
        if ineligible:
            reasons.append(f"not eligible: {ineligible}")
            return InclusionResult(included=False, reasons=reasons)

        for segment in self._segments_for(criteria, reasons):
            if self._matcher.matches(segment, attrs):
                reasons.append(f"segment match: {segment.id}")
                return InclusionResult(included=True, reasons=reasons)

        for cohort in criteria.cohorts:
            if cohort.id not in attrs.cohorts:
                continue
            draw = salted_bucket(user_id, cohort.id)
            if draw < cohort.percentage:
                reasons.append(f"cohort match: {cohort.id} (bucket {draw} < {cohort.percentage:g})")
                return InclusionResult(included=True, reasons=reasons)
            reasons.append(f"cohort {cohort.id}: bucket {draw} >= {cohort.percentage:g}")

        if criteria.percentage > 0:
            if not percentage_enabled:
                reasons.append("percentage rollout disabled")
            else:
                value = bucket(user_id)
                included = value < criteria.percentage
                op = "<" if included else ">="
                reasons.append(f"percentage rollout: bucket {value} {op} {criteria.percentage:g}")
                return InclusionResult(included=included, reasons=reasons, bucket=value)

        reasons.append("no criteria satisfied")
        return InclusionResult(included=False, reasons=reasons)

    def _segments_for(self, criteria: TargetCriteria, reasons: list[str]) -> list[UserSegment]:
        segments = list(criteria.user_segments)
        for ref in criteria.segment_refs:
            segment = self._segments.get(ref)
            if segment is None:
                reasons.append(f"unknown segment {ref!r} skipped")
                continue
            segments.append(segment)
        return segments

    @staticmethod
    def _ineligible(criteria: TargetCriteria, attrs: UserAttributes) -> str | None:
        if criteria.platforms:
            allowed = {p.value for p in criteria.platforms}
            platform = getattr(attrs.platform, "value", attrs.platform)
            if platform not in allowed:
                return f"platform {platform or 'unknown'}"
        if criteria.regions and attrs.region not in criteria.regions:
            return f"region {attrs.region or 'unknown'}"
        for behavior in criteria.user_behaviors:
            observed = attrs.behaviors.get(behavior.type.value)
            if observed is None or not behavior.operator.compare(observed, behavior.value):
                return f"behavior {behavior.type.value}"
        return None
