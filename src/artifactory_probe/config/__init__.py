"""Configuration loading and validation for the probe exporter."""

from .durations import parse_duration
from .loader import DEFAULT_CONFIG_FILE, load_config, parse_config
from .models import (
    DEFAULT_HANDLER_TIMEOUT,
    DEFAULT_INTERVAL,
    DEFAULT_TEST_FILES_PATH,
    ArtifactoryParams,
    ExporterConfig,
    TestFileSpec,
)

__all__ = [
    "ArtifactoryParams",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_HANDLER_TIMEOUT",
    "DEFAULT_INTERVAL",
    "DEFAULT_TEST_FILES_PATH",
    "ExporterConfig",
    "TestFileSpec",
    "load_config",
    "parse_config",
    "parse_duration",
]
