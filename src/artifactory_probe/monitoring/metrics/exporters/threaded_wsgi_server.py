"""Threaded WSGI server answering metrics scrapes."""

from __future__ import annotations

import logging
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

__all__ = ["QuietWSGIRequestHandler", "ThreadedWSGIServer"]

logger = logging.getLogger(__name__)


class ThreadedWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each scrape in its own daemon thread."""

    daemon_threads = True
    allow_reuse_address = True
    # server_close must not wait on a scrape stuck past its handler timeout
    block_on_close = False


class QuietWSGIRequestHandler(WSGIRequestHandler):
    """Request handler that logs access lines at debug level instead of stderr."""

    def log_message(self, format: str, *args) -> None:  # noqa: A002 - BaseHTTPRequestHandler signature
        logger.debug("%s - %s", self.address_string(), format % args)
