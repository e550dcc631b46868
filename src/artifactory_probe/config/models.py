"""Validated configuration models for the probe exporter."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from .durations import parse_duration

__all__ = [
    "ArtifactoryParams",
    "DEFAULT_HANDLER_TIMEOUT",
    "DEFAULT_INTERVAL",
    "DEFAULT_TEST_FILES_PATH",
    "ExporterConfig",
    "TestFileSpec",
]

DEFAULT_INTERVAL = 60.0
DEFAULT_HANDLER_TIMEOUT = 5.0
DEFAULT_TEST_FILES_PATH = "/opt/prometheus/prometheus-artifactory-tests-exporter/test-files"

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}
_METRIC_NAMESPACE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


class ArtifactoryParams(BaseModel):
    """Location of the repository the probes push to and pull from."""

    url: str = Field(..., description="Base URL of the Artifactory instance.")
    repo_path: str = Field(..., description="Repository path the test files are stored under.")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("url", "repo_path")
    @classmethod
    def _require_value(cls, value: str, info: ValidationInfo) -> str:
        if not value or not value.strip():
            raise ValueError(f"Artifactory '{info.field_name}' must be defined")
        return value.strip()

    def file_url(self, file_name: str) -> str:
        """Return the full URL of ``file_name`` inside the repository."""
        return f"{self.url.rstrip('/')}/{self.repo_path.strip('/')}/{file_name}"


class TestFileSpec(BaseModel):
    """Parameters of one synthetic test file, keyed by its name."""

    __test__ = False  # not a pytest test class

    name: str = Field(..., min_length=1)
    size: int = Field(..., gt=0, description="File size in MiB.")
    histogram_bucket_push: Tuple[float, ...] = Field(..., description="Push latency buckets in seconds.")
    histogram_bucket_pull: Tuple[float, ...] = Field(..., description="Pull latency buckets in seconds.")
    timeout_push: Optional[float] = Field(default=None, description="Explicit push timeout in seconds.")
    timeout_pull: Optional[float] = Field(default=None, description="Explicit pull timeout in seconds.")
    verify_checksum: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("histogram_bucket_push", "histogram_bucket_pull")
    @classmethod
    def _check_buckets(cls, value: Tuple[float, ...], info: ValidationInfo) -> Tuple[float, ...]:
        if not value:
            raise ValueError(f"File '{info.field_name}' must be defined")
        if any(later <= earlier for earlier, later in zip(value, value[1:])):
            raise ValueError(f"File '{info.field_name}' must be strictly increasing")
        return value

    @field_validator("timeout_push", "timeout_pull", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        seconds = parse_duration(value)
        # A zero duration means "not set", as in the YAML defaults.
        return seconds if seconds != 0 else None


class ExporterConfig(BaseModel):
    """Top-level exporter configuration loaded from YAML."""

    listen_address: Optional[str] = None
    metrics_path: Optional[str] = None
    interval: float = Field(default=DEFAULT_INTERVAL, description="Seconds between probe cycles.")
    timeout: float = Field(default=DEFAULT_HANDLER_TIMEOUT, description="Scrape handler timeout in seconds.")
    test_files_path: str = DEFAULT_TEST_FILES_PATH
    log_level: str = "info"
    namespace: str = "artifactory"
    artifactory: ArtifactoryParams
    test_files: Dict[str, TestFileSpec]

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _inject_file_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        files = data.get("test_files")
        if isinstance(files, dict):
            data = dict(data)
            data["test_files"] = {
                name: {**params, "name": name} if isinstance(params, dict) else params
                for name, params in files.items()
            }
        return data

    @field_validator("test_files")
    @classmethod
    def _require_test_files(cls, value: Dict[str, TestFileSpec]) -> Dict[str, TestFileSpec]:
        if not value:
            raise ValueError("Parameters should be defined for at least one test file")
        return value

    @field_validator("interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> float:
        seconds = parse_duration(value) if value is not None else 0.0
        if seconds == 0:
            return DEFAULT_INTERVAL
        if seconds < DEFAULT_INTERVAL:
            raise ValueError("Tests interval should be more or equal 60 seconds")
        return seconds

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_handler_timeout(cls, value: Any) -> float:
        seconds = parse_duration(value) if value is not None else 0.0
        if seconds == 0:
            return DEFAULT_HANDLER_TIMEOUT
        if seconds < 0 or seconds > DEFAULT_HANDLER_TIMEOUT:
            raise ValueError("Handler timeout should be less or equal 5 seconds")
        return seconds

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        if not _METRIC_NAMESPACE.match(value):
            raise ValueError(f"namespace '{value}' is not a valid metric name prefix")
        return value

    @property
    def test_files_dir(self) -> Path:
        return Path(self.test_files_path)

    def file_specs(self) -> Tuple[TestFileSpec, ...]:
        """Return the configured test files in declaration order."""
        return tuple(self.test_files.values())
