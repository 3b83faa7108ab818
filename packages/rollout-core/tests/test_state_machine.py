"""Tests for the phase state machine."""

import pytest

from rollout.errors import TransitionError
from rollout.models import PhaseStatus
from rollout.phases.state_machine import PhaseStateMachine, VALID_STATUS_TRANSITIONS


class TestPointerMoves:
    def test_two_advances_reach_last_phase_third_fails(self, machine):
        first = machine.advance_phase("production")
        second = machine.advance_phase("production")
        third = machine.advance_phase("production")
        assert first.success and second.success
        assert (second.from_index, second.to_index) == (1, 2)
        assert machine.get_current_phase("production").percentage == 100
        assert not third.success
        assert third.reason == "Already at the last phase"
        assert machine.phase_index("production") == 2

    def test_rollback_at_first_phase_fails(self, machine):
        result = machine.rollback_phase("production")
        assert not result.success
        assert result.reason == "Already at the first phase"
        assert machine.phase_index("production") == 0

    def test_rollback_moves_back(self, machine):
        result = machine.rollback_phase("staging")
        assert result.success
        assert machine.phase_index("staging") == 0

    def test_unknown_environment(self, machine):
        result = machine.advance_phase("qa")
        assert not result.success
        assert result.reason == "Unknown environment: qa"

    def test_expected_index_guard(self, machine):
        result = machine.rollback_phase("staging", expected_index=0)
        assert not result.success
        assert "expected 0" in result.reason
        assert machine.phase_index("staging") == 1

    def test_environments_are_independent(self, machine):
        machine.advance_phase("production")
        assert machine.phase_index("production") == 1
        assert machine.phase_index("staging") == 1

    def test_move_touches_updated_at(self, machine, config):
        before = config.updated_at
        machine.advance_phase("production")
        assert config.updated_at >= before

    def test_advance_does_not_change_status(self, machine):
        machine.advance_phase("production")
        assert machine.get_current_phase("production").status == PhaseStatus.PENDING

    def test_raise_for_error(self, machine):
        with pytest.raises(TransitionError, match="first phase"):
            machine.rollback_phase("production").raise_for_error()


class TestStatusTransitions:
    def test_transition_table(self):
        assert PhaseStatus.ACTIVE in VALID_STATUS_TRANSITIONS[PhaseStatus.COMPLETED]
        assert PhaseStatus.PENDING not in VALID_STATUS_TRANSITIONS[PhaseStatus.COMPLETED]
        assert PhaseStatus.ACTIVE in VALID_STATUS_TRANSITIONS[PhaseStatus.ROLLED_BACK]

    def test_pending_to_active(self, machine, config):
        result = machine.update_phase_status("phase_2_beta", "active", "staging")
        assert result.success
        assert config.phases[1].status == PhaseStatus.ACTIVE

    def test_completed_can_reactivate(self, machine):
        assert machine.update_phase_status("phase_1_internal", PhaseStatus.COMPLETED, "production").success
        assert machine.update_phase_status("phase_1_internal", PhaseStatus.ACTIVE, "production").success

    def test_completed_cannot_return_to_pending(self, machine):
        machine.update_phase_status("phase_1_internal", PhaseStatus.COMPLETED, "production")
        result = machine.update_phase_status("phase_1_internal", PhaseStatus.PENDING, "production")
        assert not result.success
        assert result.reason == "Invalid status transition: completed -> pending"

    def test_same_status_is_idempotent(self, machine):
        machine.update_phase_status("phase_1_internal", "completed", "production")
        assert machine.update_phase_status("phase_1_internal", "completed", "production").success

    def test_pending_cannot_complete(self, machine):
        result = machine.update_phase_status("phase_3_full", "completed", "production")
        assert not result.success

    def test_rolled_back_can_reactivate(self, machine):
        assert machine.update_phase_status("phase_1_internal", "rolled_back", "production").success
        assert machine.update_phase_status("phase_1_internal", "active", "production").success

    def test_unknown_phase(self, machine):
        result = machine.update_phase_status("phase_9", "active", "production")
        assert not result.success
        assert result.reason == "No phase 'phase_9' in environment production"

    def test_unknown_status(self, machine):
        result = machine.update_phase_status("phase_1_internal", "paused", "production")
        assert not result.success
        assert "Unknown phase status" in result.reason

    def test_override_phase_updated_not_shared_phase(self, machine, config):
        override = config.environments["development"].override_settings
        assert override.id == "phase_1_internal"
        assert machine.update_phase_status("phase_1_internal", "completed", "development").success
        assert override.status == PhaseStatus.COMPLETED
        assert config.phases[0].status == PhaseStatus.ACTIVE


class TestCurrentPhase:
    def test_indexed_phase(self, machine):
        assert machine.get_current_phase("staging").id == "phase_2_beta"

    def test_disabled_environment_has_no_phase(self, machine):
        assert machine.get_current_phase("sandbox") is None

    def test_unknown_environment_has_no_phase(self, machine):
        assert machine.get_current_phase("qa") is None

    def test_override_replaces_phase(self, machine):
        phase = machine.get_current_phase("development")
        assert phase.percentage == 100
        assert phase.target_criteria.percentage == 100
        assert phase.feature_groups == ["Core Library"]

    def test_status_summary(self, machine):
        status = machine.status("staging")
        assert status.current_index == 1
        assert status.total_phases == 3
        assert status.progress == 67
        assert status.current_phase_id == "phase_2_beta"
        assert status.next_phase_id == "phase_3_full"
        assert status.previous_phase_id == "phase_1_internal"
        assert status.is_complete is False

    def test_status_complete(self, machine):
        machine.advance_phase("staging")
        status = machine.status("staging")
        assert status.is_complete is True
        assert status.progress == 100
        assert status.next_phase_id is None

    def test_status_unknown_environment(self, machine):
        assert machine.status("qa") is None


class TestConstruction:
    def test_environment_added_after_construction_gets_lock(self, config):
        machine = PhaseStateMachine(config)
        config.environments["qa"] = config.environments["production"].model_copy(update={"name": "qa"})
        assert machine.advance_phase("qa").success
