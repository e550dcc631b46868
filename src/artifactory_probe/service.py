"""
Exporter Service

Assembles the probe engine and the scrape endpoint from a validated
configuration. Startup runs every fatal check (timeout budgets, test files,
original checksums) before the probe loop or the HTTP server is started.
"""

import logging
from typing import Mapping, Optional, Tuple

from artifactory_probe.config.models import ExporterConfig
from artifactory_probe.core.exceptions import ConfigurationError
from artifactory_probe.monitoring.metrics.exporters import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_METRICS_PATH,
    MetricsSnapshotBuilder,
    PrometheusExporter,
    parse_listen_address,
)
from artifactory_probe.probing import (
    IntervalScheduler,
    ProbeLoop,
    ResultsStore,
    RoundTripProber,
    TimeoutBudget,
    build_checksum_index,
    ensure_test_files,
    resolve_timeout_budgets,
)

logger = logging.getLogger(__name__)


class ExporterService:
    """
    Long-running exporter process: probe loop plus metrics endpoint.

    The configuration file's ``listen_address`` and ``metrics_path`` take
    precedence over the values passed in here, which act as command line
    defaults.
    """

    def __init__(
        self,
        config: ExporterConfig,
        listen_address: str = DEFAULT_LISTEN_ADDRESS,
        metrics_path: str = DEFAULT_METRICS_PATH,
    ):
        self.config = config
        self.listen_address = config.listen_address or listen_address
        self.metrics_path = config.metrics_path or metrics_path
        self.budgets: Mapping[str, TimeoutBudget] = {}
        self.checksums: Mapping[str, str] = {}
        self.store: Optional[ResultsStore] = None
        self.loop: Optional[ProbeLoop] = None
        self.exporter: Optional[PrometheusExporter] = None
        self._prober: Optional[RoundTripProber] = None

    def prepare(self) -> None:
        """
        Run the startup checks and build the engine without starting it.

        Raises:
            ConfigurationError: If budgets, test files or checksums are invalid.
        """
        config = self.config
        files = config.file_specs()

        self.budgets = resolve_timeout_budgets(config)

        try:
            written = ensure_test_files(files, config.test_files_dir)
            self.checksums = build_checksum_index(files, config.test_files_dir)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot prepare test files in {config.test_files_dir}: {e}")
        logger.info(f"Test files ready in {config.test_files_dir} ({written} created)")

        try:
            host, port = parse_listen_address(self.listen_address)
        except ValueError as e:
            raise ConfigurationError(str(e))

        self.store = ResultsStore(spec.name for spec in files)
        self._prober = RoundTripProber(config.artifactory, config.test_files_dir)
        self.loop = ProbeLoop(
            prober=self._prober,
            store=self.store,
            files=files,
            budgets=self.budgets,
            checksums=self.checksums,
            scheduler=IntervalScheduler(config.interval),
        )
        builder = MetricsSnapshotBuilder(
            self.store,
            files,
            namespace=config.namespace,
            timeout=config.timeout,
        )
        self.exporter = PrometheusExporter(builder, endpoint=self.metrics_path, port=port, host=host)

    def start(self) -> None:
        """Start the probe loop and the HTTP server."""
        loop, exporter = self._components()
        exporter.initialize()
        loop.start()
        logger.info(f"Probing {self.config.artifactory.url} every {self.config.interval:g} seconds")

    def run(self) -> None:
        """Start everything and block until interrupted."""
        self.start()
        _, exporter = self._components()
        try:
            exporter.serve_forever()
        finally:
            self.stop()

    def _components(self) -> Tuple[ProbeLoop, PrometheusExporter]:
        if self.loop is None or self.exporter is None:
            self.prepare()
        if self.loop is None or self.exporter is None:
            raise ConfigurationError("Exporter service could not be prepared")
        return self.loop, self.exporter

    def stop(self) -> None:
        """Stop serving; the probe loop exits at its next wait."""
        if self.exporter is not None:
            self.exporter.close()
        if self.loop is not None:
            self.loop.stop(timeout=1.0)
        if self._prober is not None:
            self._prober.close()
