"""Creation of the synthetic files the probes push and pull."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Union

from artifactory_probe.config.models import TestFileSpec

__all__ = ["MEBIBYTE", "ensure_test_file", "ensure_test_files"]

logger = logging.getLogger(__name__)

MEBIBYTE = 1024 * 1024


def ensure_test_file(path: Union[str, Path], size_mb: int) -> bool:
    """Write ``size_mb`` MiB of random bytes to ``path`` unless it already has that size.

    Returns ``True`` when the file was (re)written.
    """
    if size_mb <= 0:
        raise ValueError("File size can't be 0 or less")

    target = Path(path)
    target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)

    if target.exists() and target.stat().st_size // MEBIBYTE == size_mb:
        logger.debug("Test file %s already has %s MiB", target, size_mb)
        return False

    with open(target, "wb") as file:
        for _ in range(size_mb):
            file.write(os.urandom(MEBIBYTE))
    logger.info("Created file: %s", target)
    return True


def ensure_test_files(files: Iterable[TestFileSpec], directory: Union[str, Path]) -> int:
    """Make sure every configured test file exists; return how many were written."""
    base = Path(directory)
    return sum(1 for spec in files if ensure_test_file(base / spec.name, spec.size))
