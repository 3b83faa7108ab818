"""Targeting: bucketing, segments, criteria."""

from rollout.targeting.bucketing import bucket, hash_identifier, in_rollout, salted_bucket
from rollout.targeting.criteria import InclusionResult, TargetCriteriaEvaluator
from rollout.targeting.segments import SegmentMatcher

__all__ = [
    "InclusionResult",
    "SegmentMatcher",
    "TargetCriteriaEvaluator",
    "bucket",
    "hash_identifier",
    "in_rollout",
    "salted_bucket",
]
