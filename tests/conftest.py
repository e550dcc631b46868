"""Global pytest configuration for the Artifactory probe exporter.

Puts the ``src`` tree on ``sys.path`` regardless of how the repository is
checked out, and provides a fake Artifactory served by the same threaded WSGI
server the exporter uses, so probes run against real HTTP.
"""

import sys
import threading
import time
from http import HTTPStatus
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from wsgiref.simple_server import make_server

import pytest

# Add the src directory to the Python path so imports work without installing
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from artifactory_probe.config import ExporterConfig, parse_config  # noqa: E402
from artifactory_probe.monitoring.metrics.exporters.threaded_wsgi_server import (  # noqa: E402
    QuietWSGIRequestHandler,
    ThreadedWSGIServer,
)

REPO_PATH = "generic-local/probes"


class FakeArtifactory:
    """Minimal in-memory repository speaking the PUT/GET subset the prober uses."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.requests: List[Tuple[str, str]] = []
        self.push_status = 201
        self.pull_status: Optional[int] = None
        self.pull_delay = 0.0
        self.corrupt_downloads = False
        self.url = ""
        self._lock = threading.Lock()

    def object_path(self, file_name: str) -> str:
        return f"/artifactory/{REPO_PATH}/{file_name}"

    def seed(self, file_name: str, data: bytes) -> None:
        with self._lock:
            self.objects[self.object_path(file_name)] = data

    def methods_for(self, file_name: str) -> List[str]:
        path = self.object_path(file_name)
        with self._lock:
            return [method for method, requested in self.requests if requested == path]

    def __call__(self, environ: Dict[str, Any], start_response: Callable[..., Any]):
        method = environ["REQUEST_METHOD"]
        path = environ.get("PATH_INFO", "")
        with self._lock:
            self.requests.append((method, path))

        if method == "PUT":
            length = int(environ.get("CONTENT_LENGTH") or 0)
            body = environ["wsgi.input"].read(length)
            if self.push_status == 201:
                with self._lock:
                    self.objects[path] = body
            return self._respond(start_response, self.push_status, b"")

        if method == "GET":
            if self.pull_delay:
                time.sleep(self.pull_delay)
            with self._lock:
                body = self.objects.get(path)
            status = self.pull_status or (200 if body is not None else 404)
            if status != 200 or body is None:
                return self._respond(start_response, status, b"")
            if self.corrupt_downloads:
                body = bytes([body[0] ^ 0xFF]) + body[1:]
            return self._respond(start_response, 200, body)

        return self._respond(start_response, 405, b"")

    @staticmethod
    def _respond(start_response: Callable[..., Any], status: int, body: bytes):
        start_response(
            f"{status} {HTTPStatus(status).phrase}",
            [("Content-Type", "application/octet-stream"), ("Content-Length", str(len(body)))],
        )
        return [body]


@pytest.fixture
def fake_artifactory() -> Iterator[FakeArtifactory]:
    """Run a fake Artifactory on an ephemeral localhost port."""
    storage = FakeArtifactory()
    server = make_server(
        "127.0.0.1",
        0,
        storage,
        server_class=ThreadedWSGIServer,
        handler_class=QuietWSGIRequestHandler,
    )
    thread = threading.Thread(target=server.serve_forever, name="fake-artifactory", daemon=True)
    thread.start()
    storage.url = f"http://127.0.0.1:{server.server_port}/artifactory"
    try:
        yield storage
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1.0)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., ExporterConfig]:
    """Build a validated configuration rooted in ``tmp_path``."""

    def _make(url: str = "http://127.0.0.1:1/artifactory", files: Optional[Dict[str, Dict[str, Any]]] = None, **overrides: Any) -> ExporterConfig:
        raw: Dict[str, Any] = {
            "interval": "60s",
            "test_files_path": str(tmp_path / "test-files"),
            "artifactory": {"url": url, "repo_path": REPO_PATH},
            "test_files": files
            or {
                "test1mb": {
                    "size": 1,
                    "histogram_bucket_push": [0.5, 1, 2],
                    "histogram_bucket_pull": [0.5, 1, 2],
                    "verify_checksum": True,
                }
            },
        }
        raw.update(overrides)
        return parse_config(raw)

    return _make
