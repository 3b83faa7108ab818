import copy

import pytest

from rollout.models import RolloutConfig
from rollout.phases.state_machine import PhaseStateMachine


BASE_DOCUMENT = {
    "id": "exercise_library_v2",
    "name": "Exercise Library Rollout",
    "version": "2.0.0",
    "segments": [
        {"id": "beta_testers", "name": "Beta Testers", "criteria": {"isBetaTester": True}},
        {"id": "power_users", "name": "Power Users", "criteria": {"activityLevel": "high", "totalWorkouts": {"min": 50}}},
    ],
    "featureGroups": [
        {"name": "Core Library", "flags": ["ENHANCED_EXERCISE_LIBRARY", "ADVANCED_EXERCISE_FILTERING"]},
        {
            "name": "Analytics & Tracking",
            "flags": ["EXERCISE_PROGRESS_TRACKING"],
            "dependencies": ["ENHANCED_EXERCISE_LIBRARY"],
        },
        {
            "name": "AI & Coaching",
            "flags": ["AI_EXERCISE_COACHING"],
            "dependencies": ["EXERCISE_PROGRESS_TRACKING"],
        },
    ],
    "phases": [
        {
            "id": "phase_1_internal",
            "name": "Internal",
            "percentage": 10,
            "status": "active",
            "featureGroups": ["Core Library"],
            "targetCriteria": {"percentage": 10, "segmentRefs": ["beta_testers"]},
            "successMetrics": [
                {
                    "id": "adoption_rate",
                    "name": "Adoption",
                    "target": 70,
                    "threshold": {"minimum": 50, "optimum": 80, "critical": 20},
                }
            ],
            "rollbackCriteria": [
                {
                    "id": "critical_errors",
                    "name": "Critical errors",
                    "metric": "critical_error_rate",
                    "operator": ">",
                    "threshold": 5,
                    "autoRollback": True,
                    "severity": "critical",
                },
                {
                    "id": "low_adoption",
                    "name": "Low adoption",
                    "metric": "adoption_rate",
                    "operator": "<",
                    "threshold": 20,
                    "autoRollback": False,
                },
            ],
        },
        {
            "id": "phase_2_beta",
            "name": "Beta",
            "percentage": 50,
            "featureGroups": ["Core Library", "Analytics & Tracking"],
            "targetCriteria": {"percentage": 50},
            "rollbackCriteria": [
                {
                    "id": "critical_errors",
                    "name": "Critical errors",
                    "metric": "critical_error_rate",
                    "operator": ">",
                    "threshold": 5,
                    "autoRollback": True,
                },
            ],
        },
        {
            "id": "phase_3_full",
            "name": "Full",
            "percentage": 100,
            "featureGroups": ["Core Library", "Analytics & Tracking", "AI & Coaching"],
            "targetCriteria": {"percentage": 100},
        },
    ],
    "environments": {
        "production": {"currentPhaseIndex": 0, "enabled": True},
        "staging": {"currentPhaseIndex": 1, "enabled": True},
        "development": {
            "currentPhase": 0,
            "overrideSettings": {"percentage": 100, "targetCriteria": {"percentage": 100}},
        },
        "sandbox": {"currentPhaseIndex": 0, "enabled": False},
    },
}


@pytest.fixture
def document():
    return copy.deepcopy(BASE_DOCUMENT)


@pytest.fixture
def config(document):
    return RolloutConfig.model_validate(document)


@pytest.fixture
def machine(config):
    return PhaseStateMachine(config)
