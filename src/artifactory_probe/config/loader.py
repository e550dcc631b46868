"""
Exporter Configuration Loader

This module loads the exporter configuration from a YAML file and validates it
into an ``ExporterConfig``. Every structural problem found by validation is
reported at once through a single ``ConfigurationError``.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from artifactory_probe.core.exceptions import ConfigurationError

from .models import ExporterConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "artifactory-tests.yml"


def load_config(config_file: Union[str, Path] = DEFAULT_CONFIG_FILE) -> ExporterConfig:
    """
    Load and validate the exporter configuration file.

    Args:
        config_file: Path to the YAML configuration file.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated.
    """
    path = Path(config_file)

    try:
        with open(path, "r", encoding="utf-8") as file:
            raw = yaml.safe_load(file)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing config file {path}: {e}")

    config = parse_config(raw)
    logger.debug(f"Loaded configuration from {path}")
    return config


def parse_config(raw: Any) -> ExporterConfig:
    """
    Validate an already-parsed configuration mapping.

    Args:
        raw: Mapping produced by the YAML parser.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If the mapping is not a valid configuration.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("Invalid configuration format: expected a mapping at the top level")

    try:
        return ExporterConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError("Invalid configuration", violations=_format_errors(e.errors()))


def _format_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Render pydantic error entries as ``location: message`` strings."""
    violations = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        violations.append(f"{location}: {message}" if location else message)
    return violations
