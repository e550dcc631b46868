"""Parsing of Go-style duration strings used in the YAML configuration."""

from __future__ import annotations

import re
from typing import Union

__all__ = ["parse_duration"]

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION = re.compile(r"^(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+$")


def parse_duration(value: Union[str, int, float]) -> float:
    """Return ``value`` in seconds.

    Numbers are taken as seconds. Strings follow the Go ``time.Duration``
    syntax (``90s``, ``1m30s``, ``250ms``); a bare numeric string is also
    accepted as seconds.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    text = value.strip()
    if not text:
        raise ValueError("Duration must not be empty")
    if text == "0":
        return 0.0

    try:
        return float(text)
    except ValueError:
        pass

    if not _DURATION.match(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return sum(float(amount) * _UNIT_SECONDS[unit] for amount, unit in _COMPONENT.findall(text))
