"""MD5 digests of the original test files."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Union

from artifactory_probe.config.models import TestFileSpec

__all__ = ["CHUNK_SIZE", "build_checksum_index", "hash_file_md5"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def hash_file_md5(path: Union[str, Path]) -> str:
    """Return the hex MD5 digest of the file at ``path``."""
    digest = hashlib.md5()
    with open(path, "rb") as file:
        for chunk in iter(lambda: file.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def build_checksum_index(files: Iterable[TestFileSpec], directory: Union[str, Path]) -> Mapping[str, str]:
    """Hash every file that has ``verify_checksum`` set.

    The returned mapping is read-only. ``OSError`` propagates: a missing
    original is a startup failure.
    """
    base = Path(directory)
    index = {}
    for spec in files:
        if not spec.verify_checksum:
            continue
        index[spec.name] = hash_file_md5(base / spec.name)
        logger.debug("Checksum of '%s': %s", spec.name, index[spec.name])
    return MappingProxyType(index)
