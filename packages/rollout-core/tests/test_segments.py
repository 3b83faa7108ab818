"""Tests for segment matching."""

from datetime import datetime, timedelta, timezone

from rollout.models import ActivityLevel, UserAttributes, UserSegment
from rollout.targeting.segments import SegmentMatcher


def _segment(**criteria):
    return UserSegment.model_validate({"id": "seg", "name": "Segment", "criteria": criteria})


class TestSegmentMatcher:
    def setup_method(self):
        self.matcher = SegmentMatcher()

    def test_empty_criteria_matches_everyone(self):
        assert self.matcher.matches(_segment(), UserAttributes())

    def test_all_criteria_must_hold(self):
        seg = _segment(activityLevel="high", subscriptionTier="premium")
        both = UserAttributes(activity_level="high", subscription_tier="premium")
        one = UserAttributes(activity_level="high", subscription_tier="free")
        assert self.matcher.matches(seg, both)
        assert not self.matcher.matches(seg, one)
        assert self.matcher.failed_criteria(seg, one) == ["subscription_tier"]

    def test_enum_attribute_values_accepted(self):
        seg = _segment(activityLevel="power")
        assert self.matcher.matches(seg, UserAttributes(activity_level=ActivityLevel.POWER))

    def test_missing_attribute_fails(self):
        seg = _segment(totalWorkouts={"min": 50})
        assert self.matcher.failed_criteria(seg, UserAttributes()) == ["total_workouts"]

    def test_numeric_range_inclusive(self):
        seg = _segment(totalWorkouts={"min": 50, "max": 100})
        assert self.matcher.matches(seg, UserAttributes(total_workouts=50))
        assert self.matcher.matches(seg, UserAttributes(total_workouts=100))
        assert not self.matcher.matches(seg, UserAttributes(total_workouts=101))

    def test_engagement_score_range(self):
        seg = _segment(engagementScore={"min": 0.7})
        assert self.matcher.matches(seg, UserAttributes(engagement_score=0.9))
        assert not self.matcher.matches(seg, UserAttributes(engagement_score=0.2))

    def test_registration_window(self):
        now = datetime.now(timezone.utc)
        seg = UserSegment(
            id="new_users",
            name="New Users",
            criteria={"registration_date": {"from": now - timedelta(days=30)}},
        )
        assert self.matcher.matches(seg, UserAttributes(registration_date=now - timedelta(days=3)))
        assert not self.matcher.matches(seg, UserAttributes(registration_date=now - timedelta(days=90)))

    def test_naive_datetimes_treated_as_utc(self):
        seg = _segment(lastActive={"to": "2026-01-31T00:00:00Z"})
        assert self.matcher.matches(seg, UserAttributes(last_active=datetime(2026, 1, 15)))
        assert not self.matcher.matches(seg, UserAttributes(last_active=datetime(2026, 2, 15)))

    def test_boolean_flags(self):
        seg = _segment(isBetaTester=True, isNewUser=False)
        assert self.matcher.matches(seg, UserAttributes(is_beta_tester=True, is_new_user=False))
        assert self.matcher.failed_criteria(seg, UserAttributes(is_beta_tester=True)) == ["is_new_user"]
