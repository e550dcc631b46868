"""Prometheus scrape endpoint serving probe results."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from wsgiref.simple_server import make_server

from prometheus_client import CONTENT_TYPE_LATEST

from artifactory_probe.core.exceptions import SnapshotTimeoutError

from .errors import ExportError, ExporterError
from .snapshot import MetricsSnapshotBuilder
from .threaded_wsgi_server import QuietWSGIRequestHandler, ThreadedWSGIServer

__all__ = ["DEFAULT_LISTEN_ADDRESS", "DEFAULT_METRICS_PATH", "PrometheusExporter", "parse_listen_address"]

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = ":9702"
DEFAULT_METRICS_PATH = "/metrics"

_LANDING_PAGE = """<html>
<head><title>Artifactory Test Exporter</title></head>
<body>
<h1>Artifactory Test Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>"""


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (host optional, as in ``:9702``) into its parts."""
    host, separator, port = address.strip().rpartition(":")
    if not separator or not port.isdigit():
        raise ValueError(f"Invalid listen address: {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


class PrometheusExporter:
    """Serve freshly built probe metrics through a threaded WSGI server."""

    def __init__(
        self,
        builder: MetricsSnapshotBuilder,
        endpoint: str = DEFAULT_METRICS_PATH,
        port: int = 9702,
        host: str = "0.0.0.0",
        name: str = "artifactory-probe",
    ) -> None:
        """Create the exporter; the server starts in ``initialize``."""
        self.builder = builder
        self.name = name
        self.endpoint = self._normalise_endpoint(endpoint)
        self.host = host
        self.port = port
        self._server: Optional[ThreadedWSGIServer] = None
        self._server_thread: Optional[threading.Thread] = None

        logger.info("Created Prometheus exporter on %s:%s at %s", host, port, self.endpoint)

    def initialize(self) -> None:
        """Start the HTTP server in a background thread."""
        try:
            self._server = make_server(
                self.host,
                self.port,
                self.application,
                server_class=ThreadedWSGIServer,
                handler_class=QuietWSGIRequestHandler,
            )
        except OSError as exc:
            logger.error("Failed to start Prometheus exporter: %s", exc)
            raise ExporterError(
                f"Failed to listen on {self.host}:{self.port}: {exc}",
                address=f"{self.host}:{self.port}",
            ) from exc

        self.port = self._server.server_port
        self._server_thread = threading.Thread(
            target=self._server.serve_forever,
            name=f"{self.name}-prometheus-server",
            daemon=True,
        )
        self._server_thread.start()
        logger.info("Listening on %s:%s, metrics at %s", self.host, self.port, self.endpoint)

    def serve_forever(self) -> None:
        """Block until the server thread exits."""
        if self._server_thread is None:
            self.initialize()
        thread = self._server_thread
        if thread is None:
            raise ExporterError("Prometheus exporter was closed before serving")
        thread.join()

    def application(self, environ: Dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        """WSGI entry point: metrics, landing page or 404."""
        path = environ.get("PATH_INFO", "") or "/"

        if path == self.endpoint:
            return self._serve_metrics(start_response)
        if path == "/":
            body = _LANDING_PAGE.format(path=self.endpoint).encode("utf-8")
            return self._respond(start_response, "200 OK", "text/html; charset=utf-8", body)

        return self._respond(start_response, "404 Not Found", "text/plain; charset=utf-8", b"Not Found")

    def _serve_metrics(self, start_response: Callable[..., Any]) -> Iterable[bytes]:
        try:
            body = self.builder.render_with_timeout()
        except SnapshotTimeoutError as exc:
            logger.warning("Scrape failed: %s", exc.message)
            return self._respond(
                start_response,
                "503 Service Unavailable",
                "text/plain; charset=utf-8",
                exc.message.encode("utf-8"),
            )
        except Exception as exc:
            error = ExportError(f"Failed to render metrics: {exc}")
            logger.exception(error.message)
            return self._respond(
                start_response,
                "500 Internal Server Error",
                "text/plain; charset=utf-8",
                error.message.encode("utf-8"),
            )

        return self._respond(start_response, "200 OK", CONTENT_TYPE_LATEST, body)

    @staticmethod
    def _respond(start_response: Callable[..., Any], status: str, content_type: str, body: bytes) -> List[bytes]:
        start_response(status, [("Content-Type", content_type), ("Content-Length", str(len(body)))])
        return [body]

    def close(self) -> None:
        """Stop the HTTP server and the snapshot builder."""
        try:
            if self._server is not None:
                self._server.shutdown()
                self._server.server_close()
                if self._server_thread is not None and self._server_thread.is_alive():
                    self._server_thread.join(timeout=1.0)
        finally:
            self._server = None
            self._server_thread = None
            self.builder.close()

        logger.info("Closed %s '%s'", self.__class__.__name__, self.name)

    @staticmethod
    def _normalise_endpoint(endpoint: Optional[str]) -> str:
        """Return a scrape endpoint that always begins with ``/``."""
        if not endpoint:
            return DEFAULT_METRICS_PATH

        cleaned = endpoint.strip() or DEFAULT_METRICS_PATH
        if not cleaned.startswith("/"):
            cleaned = f"/{cleaned}"
        return cleaned
