"""Load, validate and export rollout configuration documents.

A document passes three checks in order: JSON Schema (structure), pydantic
(types and enums), then validate_config (semantics). Any failure raises
ConfigurationError with every message collected at that stage.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from rollout.config.validator import validate_config
from rollout.errors import ConfigurationError
from rollout.models import RolloutConfig

logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"
CONFIG_SCHEMA = "rollout-config.schema.json"


def _load_schema(schema_name: str) -> dict:
    schema_path = SCHEMAS_DIR / schema_name
    with open(schema_path) as f:
        return json.load(f)


def load_document(path: Path | str) -> dict:
    """Read a YAML or JSON document from disk."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError([f"Configuration file not found: {path}"])
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError([f"{path}: invalid JSON: {e}"]) from e
        else:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError([f"{path}: invalid YAML: {e}"]) from e
    if not isinstance(data, dict):
        raise ConfigurationError([f"{path}: top level must be a mapping"])
    return data


def _schema_errors(document: Mapping[str, Any]) -> list[str]:
    validator = jsonschema.Draft7Validator(_load_schema(CONFIG_SCHEMA))
    errors = sorted(validator.iter_errors(document), key=lambda e: e.json_path)
    return [f"{e.json_path}: {e.message}" for e in errors]


def _pydantic_errors(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}")
    return messages


def parse_config(document: Mapping[str, Any]) -> RolloutConfig:
    """Structural and type checks only; no semantic validation."""
    errors = _schema_errors(document)
    if errors:
        raise ConfigurationError(errors)
    try:
        return RolloutConfig.model_validate(dict(document))
    except ValidationError as e:
        raise ConfigurationError(_pydantic_errors(e)) from e


def load_config(source: Path | str | Mapping[str, Any]) -> RolloutConfig:
    if isinstance(source, Mapping):
        document = dict(source)
        origin = "<mapping>"
    else:
        document = load_document(source)
        origin = str(source)

    config = parse_config(document)
    report = validate_config(config)
    if not report.is_valid:
        logger.warning("Rejected configuration %s: %s", origin, "; ".join(report.errors))
        raise ConfigurationError(report.errors)
    for warning in report.warnings:
        logger.warning("Configuration %s: %s", config.id, warning)

    logger.info(
        "Loaded rollout configuration %s v%s (%d phases, %d environments) from %s",
        config.id,
        config.version,
        len(config.phases),
        len(config.environments),
        origin,
    )
    return config


def export_config(config: RolloutConfig) -> str:
    """Serialise to camelCase JSON, including current pointers and statuses."""
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2)
