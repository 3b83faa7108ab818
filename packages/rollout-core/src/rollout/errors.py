"""Error taxonomy for the rollout engine."""

from __future__ import annotations


class RolloutError(Exception):
    pass


class ConfigurationError(RolloutError):
    """A configuration document was rejected; the active one stays in place."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid rollout configuration")


class TransitionError(RolloutError):
    """A phase transition was refused. Nothing was mutated."""
