"""Tests for loading and validating the exporter configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from artifactory_probe.config import DEFAULT_TEST_FILES_PATH, load_config, parse_config, parse_duration
from artifactory_probe.core.exceptions import ConfigurationError

VALID = {
    "artifactory": {"url": "https://artifactory.example.com/artifactory/", "repo_path": "/generic-local/probes/"},
    "test_files": {
        "test1mb": {
            "size": 1,
            "histogram_bucket_push": [0.5, 1],
            "histogram_bucket_pull": [0.5, 1],
            "timeout_push": "10s",
        }
    },
}


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "artifactory-tests.yml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    ("value", "expected"),
    [("90s", 90.0), ("1m30s", 90.0), ("250ms", 0.25), ("1h", 3600.0), ("1.5s", 1.5), (45, 45.0), ("12", 12.0), ("0", 0.0)],
)
def test_parse_duration(value, expected) -> None:
    assert parse_duration(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "ten seconds", "10 s", "s", True])
def test_parse_duration_rejects_garbage(value) -> None:
    with pytest.raises(ValueError):
        parse_duration(value)


def test_load_config_applies_defaults(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, VALID))

    assert config.interval == 60.0
    assert config.timeout == 5.0
    assert config.test_files_path == DEFAULT_TEST_FILES_PATH
    assert config.namespace == "artifactory"
    assert config.listen_address is None

    spec = config.test_files["test1mb"]
    assert spec.name == "test1mb"
    assert spec.timeout_push == 10.0
    assert spec.timeout_pull is None
    assert spec.verify_checksum is False
    assert config.artifactory.file_url("test1mb") == (
        "https://artifactory.example.com/artifactory/generic-local/probes/test1mb"
    )


def test_zero_durations_fall_back_to_defaults() -> None:
    config = parse_config({**VALID, "interval": "0s", "timeout": 0})

    assert config.interval == 60.0
    assert config.timeout == 5.0


def test_interval_below_sixty_seconds_rejected() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({**VALID, "interval": "30s"})

    assert any("more or equal 60 seconds" in violation for violation in excinfo.value.violations)


@pytest.mark.parametrize("timeout", ["6s", -1])
def test_handler_timeout_out_of_range_rejected(timeout) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({**VALID, "timeout": timeout})

    assert any("less or equal 5 seconds" in violation for violation in excinfo.value.violations)


def test_all_structural_violations_reported_together() -> None:
    raw = {
        "interval": "10s",
        "artifactory": {"url": ""},
        "test_files": {"broken": {"histogram_bucket_push": [2, 1]}},
        "unknown_key": True,
    }

    with pytest.raises(ConfigurationError) as excinfo:
        parse_config(raw)

    joined = "\n".join(excinfo.value.violations)
    assert "interval" in joined
    assert "artifactory.url" in joined
    assert "artifactory.repo_path" in joined
    assert "test_files.broken.size" in joined
    assert "test_files.broken.histogram_bucket_push" in joined
    assert "test_files.broken.histogram_bucket_pull" in joined
    assert "unknown_key" in joined


def test_missing_test_files_rejected() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({"artifactory": VALID["artifactory"], "test_files": {}})

    assert any("at least one test file" in violation for violation in excinfo.value.violations)


def test_invalid_namespace_and_log_level_rejected() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({**VALID, "namespace": "bad-name", "log_level": "loud"})

    joined = "\n".join(excinfo.value.violations)
    assert "namespace" in joined
    assert "log_level" in joined


def test_missing_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "absent.yml")


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="expected a mapping"):
        load_config(path)


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("test_files: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Error parsing"):
        load_config(path)


def test_configuration_is_immutable() -> None:
    config = parse_config(VALID)

    with pytest.raises(Exception):
        config.interval = 120  # type: ignore[misc]
