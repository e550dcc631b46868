"""
Core Exceptions for the Artifactory probe exporter.

This module defines the exception classes used throughout the exporter. They
fall into three groups:

- Configuration exceptions: fatal, raised before any probing starts
- Probe exceptions: transient, raised inside a single push or pull leg and
  converted into a failed outcome by the prober
- Snapshot exceptions: raised while rendering a metrics scrape

Each exception carries an error code and optional context for logging.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ProbeExporterError(Exception):
    """Base exception class for all probe exporter errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize a probe exporter error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


# Configuration Exceptions

class ConfigurationError(ProbeExporterError):
    """
    Raised when the exporter configuration is invalid.

    Every violation found during validation is kept in ``violations`` so the
    operator sees all of them at once instead of fixing one per restart.
    """

    def __init__(self, message: str, violations: Optional[List[str]] = None):
        self.violations = list(violations or [])
        if self.violations:
            message = f"{message}: " + "; ".join(self.violations)
        super().__init__(
            message,
            error_code="CONFIGURATION_INVALID",
            context={"violations": self.violations},
        )


# Probe Exceptions

class ErrorKind(Enum):
    """Classification of why a push or pull leg did not succeed."""

    NONE = "none"
    FILE_ERROR = "file_error"
    REQUEST_ERROR = "request_error"
    TRANSPORT_ERROR = "transport_error"
    TIMEOUT = "timeout"
    BAD_STATUS = "bad_status"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    UNEXPECTED = "unexpected"


class ProbeError(ProbeExporterError):
    """Raised when a single probe leg fails; never escapes the prober."""

    def __init__(self, kind: ErrorKind, message: str, file_name: Optional[str] = None):
        """
        Initialize a probe error.

        Args:
            kind: Classification of the failure
            message: Description of what went wrong
            file_name: Name of the test file being probed
        """
        self.kind = kind
        self.file_name = file_name
        super().__init__(
            message,
            error_code=kind.name,
            context={"file_name": file_name},
        )


class ChecksumMismatchError(ProbeError):
    """Raised when a downloaded file does not hash to the original digest."""

    def __init__(self, file_name: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            ErrorKind.CHECKSUM_MISMATCH,
            f"Checksum for '{file_name}-downloaded' ({actual}) does not match original ({expected})",
            file_name=file_name,
        )


# Snapshot Exceptions

class SnapshotTimeoutError(ProbeExporterError):
    """Raised when building a metrics exposition exceeds the handler timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Metrics snapshot was not rendered within {timeout:g} seconds",
            error_code="SNAPSHOT_TIMEOUT",
            context={"timeout": timeout},
        )
