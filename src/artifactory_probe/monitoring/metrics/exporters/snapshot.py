"""Per-request metrics exposition built from a results snapshot."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, Iterator, Optional, Sequence

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily, HistogramMetricFamily, Metric
from prometheus_client.utils import floatToGoString

from artifactory_probe.config.models import TestFileSpec
from artifactory_probe.core.exceptions import SnapshotTimeoutError
from artifactory_probe.probing.outcome import Direction
from artifactory_probe.probing.results import ResultsSnapshot, ResultsStore

__all__ = ["MetricsSnapshotBuilder", "ProbeResultsCollector", "metric_base_name"]

logger = logging.getLogger(__name__)

FILE_LABEL = "file_name"


def metric_base_name(namespace: str, direction: Direction, size_mb: int) -> str:
    """Return the common prefix, e.g. ``artifactory_test_push_1mb``."""
    return f"{namespace}_test_{direction.value}_{size_mb}mb"


class ProbeResultsCollector:
    """Custom collector exposing one snapshot of probe results.

    Files of the same size share metric families and are told apart by the
    ``file_name`` label. Each histogram carries that file's own buckets and a
    single observation of the current duration.
    """

    def __init__(self, files: Sequence[TestFileSpec], snapshot: ResultsSnapshot, namespace: str) -> None:
        self.files = tuple(files)
        self.snapshot = snapshot
        self.namespace = namespace

    def collect(self) -> Iterator[Metric]:
        families: Dict[str, Metric] = {}

        for spec in self.files:
            outcome = self.snapshot.get(spec.name)
            for direction in Direction:
                leg = outcome.leg(direction)
                base = metric_base_name(self.namespace, direction, spec.size)
                buckets = spec.histogram_bucket_push if direction is Direction.PUSH else spec.histogram_bucket_pull

                _family(
                    families,
                    GaugeMetricFamily,
                    f"{base}_duration_seconds",
                    f"How long the Artifactory {direction.value}-test took to complete in seconds",
                ).add_metric([spec.name], leg.duration)
                _family(
                    families,
                    HistogramMetricFamily,
                    f"{base}_duration_seconds_histogram",
                    f"Histogram for the Artifactory {direction.value}-test",
                ).add_metric([spec.name], _single_observation(buckets, leg.duration), leg.duration)
                _family(
                    families,
                    GaugeMetricFamily,
                    f"{base}_success",
                    f"Displays whether or not the Artifactory {direction.value}-test was a success",
                ).add_metric([spec.name], leg.success_value)

        return iter(families.values())


def _family(families: Dict[str, Metric], family_class, name: str, documentation: str):
    """Return the family called ``name``, creating it on first use."""
    if name not in families:
        families[name] = family_class(name, documentation, labels=[FILE_LABEL])
    return families[name]


def _single_observation(bounds: Sequence[float], value: float):
    """Cumulative bucket counts for a histogram holding exactly ``value``."""
    buckets = [(floatToGoString(bound), 1.0 if value <= bound else 0.0) for bound in bounds]
    buckets.append(("+Inf", 1.0))
    return buckets


class MetricsSnapshotBuilder:
    """Render a fresh exposition from the results store on every scrape.

    A new registry is created per call so no metric state survives between
    scrapes. ``render_with_timeout`` bounds the work by the handler timeout.
    """

    def __init__(
        self,
        store: ResultsStore,
        files: Sequence[TestFileSpec],
        namespace: str = "artifactory",
        timeout: float = 5.0,
        max_workers: int = 4,
    ) -> None:
        self.store = store
        self.files = tuple(files)
        self.namespace = namespace
        self.timeout = timeout
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="metrics-snapshot",
        )

    def build_registry(self) -> CollectorRegistry:
        registry = CollectorRegistry(auto_describe=False)
        registry.register(ProbeResultsCollector(self.files, self.store.snapshot(), self.namespace))
        return registry

    def render(self) -> bytes:
        return generate_latest(self.build_registry())

    def render_with_timeout(self) -> bytes:
        """Render, raising ``SnapshotTimeoutError`` past ``timeout`` seconds."""
        if self._executor is None:
            raise RuntimeError("MetricsSnapshotBuilder has been closed")

        future = self._executor.submit(self.render)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            raise SnapshotTimeoutError(self.timeout) from None

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
