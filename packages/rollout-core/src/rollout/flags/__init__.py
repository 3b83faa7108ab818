"""Feature flags: registry, overrides, resolver."""

from rollout.flags.overrides import Override, OverrideStore
from rollout.flags.registry import FlagRegistry
from rollout.flags.resolver import FeatureFlagDecision, FeatureFlagResolver

__all__ = [
    "FeatureFlagDecision",
    "FeatureFlagResolver",
    "FlagRegistry",
    "Override",
    "OverrideStore",
]
