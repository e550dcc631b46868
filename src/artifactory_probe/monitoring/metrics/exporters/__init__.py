"""Metrics exporter package exposing the probe results scrape endpoint."""

from .errors import ExportError, ExporterError
from .snapshot import MetricsSnapshotBuilder, ProbeResultsCollector, metric_base_name
from .prometheus import DEFAULT_LISTEN_ADDRESS, DEFAULT_METRICS_PATH, PrometheusExporter, parse_listen_address

__all__ = [
    "DEFAULT_LISTEN_ADDRESS",
    "DEFAULT_METRICS_PATH",
    "ExportError",
    "ExporterError",
    "MetricsSnapshotBuilder",
    "PrometheusExporter",
    "ProbeResultsCollector",
    "metric_base_name",
    "parse_listen_address",
]
