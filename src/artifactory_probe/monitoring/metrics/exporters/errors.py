"""Errors raised by the scrape endpoint."""

from __future__ import annotations

from typing import Optional

from artifactory_probe.core.exceptions import ProbeExporterError

__all__ = ["ExportError", "ExporterError"]


class ExporterError(ProbeExporterError):
    """The HTTP endpoint could not be started or stopped."""

    def __init__(self, message: str, address: Optional[str] = None, error_code: str = "EXPORTER_ERROR") -> None:
        super().__init__(message, error_code=error_code, context={"address": address} if address else None)


class ExportError(ExporterError):
    """A scrape could not be answered with an exposition; served as HTTP 500."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="EXPORT_ERROR")
