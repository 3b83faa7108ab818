from rollout.config.loader import export_config, load_config, load_document, parse_config
from rollout.config.validator import ValidationReport, validate_config

__all__ = [
    "ValidationReport",
    "export_config",
    "load_config",
    "load_document",
    "parse_config",
    "validate_config",
]
