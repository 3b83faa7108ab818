"""Engine settings via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class RolloutSettings(BaseSettings):
    """All settings loaded from ROLLOUT_* env vars or .env file."""

    # Configuration document (YAML or JSON)
    config_path: str = "configs/exercise-library-rollout.yaml"
    default_environment: str = "production"

    # Manual overrides, comma-separated: "flag_a=true,flag_b=false"
    flag_overrides: str = ""

    # Rollback checks
    monitor_interval_seconds: float = 300.0

    model_config = {
        "env_prefix": "ROLLOUT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def parsed_overrides(self) -> dict[str, bool]:
        overrides: dict[str, bool] = {}
        for item in self.flag_overrides.split(","):
            item = item.strip()
            if not item:
                continue
            flag, sep, raw = item.partition("=")
            value = raw.strip().lower()
            if not sep or not flag.strip() or value not in _TRUE | _FALSE:
                raise ValueError(f"Invalid flag override: {item!r}")
            overrides[flag.strip()] = value in _TRUE
        return overrides
