"""Startup wiring of the exporter service against a fake Artifactory."""

from __future__ import annotations

import time
from pathlib import Path
from urllib.request import urlopen

import pytest
from prometheus_client.parser import text_string_to_metric_families

from artifactory_probe.core.exceptions import ConfigurationError
from artifactory_probe.service import ExporterService


def _wait_for_first_cycle(service: ExporterService, file_name: str, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if service.store is not None and service.store.snapshot().get(file_name).cycle >= 1:
            return
        time.sleep(0.05)
    raise AssertionError(f"no probe result for {file_name} within {timeout}s")


def test_budget_violation_rejected_before_files_are_written(make_config) -> None:
    config = make_config(
        files={"big": {"size": 1, "histogram_bucket_push": [1], "histogram_bucket_pull": [1], "timeout_push": "45s"}},
    )
    service = ExporterService(config, listen_address="127.0.0.1:0")

    with pytest.raises(ConfigurationError) as excinfo:
        service.prepare()

    assert any("test_files.big.timeout_push" in violation for violation in excinfo.value.violations)
    assert not config.test_files_dir.exists()
    assert service.exporter is None


def test_unwritable_test_files_path_is_configuration_error(tmp_path: Path, make_config) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied", encoding="utf-8")
    config = make_config(test_files_path=str(blocker / "test-files"))
    service = ExporterService(config, listen_address="127.0.0.1:0")

    with pytest.raises(ConfigurationError, match="Cannot prepare test files"):
        service.prepare()


def test_invalid_listen_address_is_configuration_error(make_config) -> None:
    service = ExporterService(make_config(), listen_address="no-port-here")

    with pytest.raises(ConfigurationError, match="Invalid listen address"):
        service.prepare()

    assert service.loop is None


def test_config_file_addresses_take_precedence(make_config) -> None:
    config = make_config(listen_address="127.0.0.1:0", metrics_path="probe-metrics")
    service = ExporterService(config, listen_address=":9999", metrics_path="/other")

    service.prepare()
    try:
        assert service.listen_address == "127.0.0.1:0"
        assert service.metrics_path == "probe-metrics"
        assert service.exporter is not None
        assert service.exporter.endpoint == "/probe-metrics"
        assert service.exporter.host == "127.0.0.1"
    finally:
        service.stop()


def test_command_line_addresses_used_when_config_is_silent(make_config) -> None:
    service = ExporterService(make_config(), listen_address="127.0.0.1:0", metrics_path="/other")

    assert service.listen_address == "127.0.0.1:0"
    assert service.metrics_path == "/other"


def test_started_service_exports_committed_outcome(fake_artifactory, make_config) -> None:
    config = make_config(url=fake_artifactory.url)
    service = ExporterService(config, listen_address="127.0.0.1:0")

    try:
        service.start()
        _wait_for_first_cycle(service, "test1mb")

        assert service.exporter is not None
        with urlopen(f"http://127.0.0.1:{service.exporter.port}/metrics") as response:  # nosec: B310 - local test harness
            payload = response.read().decode("utf-8")
    finally:
        service.stop()

    samples = {
        sample.name: sample.value
        for family in text_string_to_metric_families(payload)
        for sample in family.samples
        if sample.labels.get("file_name") == "test1mb" and "le" not in sample.labels
    }
    assert samples["artifactory_test_push_1mb_success"] == 1.0
    assert samples["artifactory_test_pull_1mb_success"] == 1.0
    assert samples["artifactory_test_push_1mb_duration_seconds"] > 0
    assert fake_artifactory.methods_for("test1mb")[:2] == ["PUT", "GET"]
    assert (config.test_files_dir / "test1mb-downloaded").exists()
