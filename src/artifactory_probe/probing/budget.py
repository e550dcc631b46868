"""Per-file timeout budgets derived from the probe interval."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional

from artifactory_probe.config.models import ExporterConfig
from artifactory_probe.core.exceptions import ConfigurationError

__all__ = ["LOOP_OVERHEAD_SECONDS", "TimeoutBudget", "max_file_timeout", "resolve_timeout_budgets"]

logger = logging.getLogger(__name__)

LOOP_OVERHEAD_SECONDS = 1.0


@dataclass(frozen=True)
class TimeoutBudget:
    """Push and pull timeouts, in seconds, granted to one test file."""

    push_timeout: float
    pull_timeout: float


def max_file_timeout(interval: float, file_count: int) -> float:
    """Return the longest timeout a single leg may use.

    Half of the interval is reserved for pushes and half for pulls, split
    evenly between the files, minus one second of loop overhead.
    """
    if file_count < 1:
        raise ValueError("file_count must be at least 1")
    return interval / 2.0 / float(file_count) - LOOP_OVERHEAD_SECONDS


def resolve_timeout_budgets(config: ExporterConfig) -> Mapping[str, TimeoutBudget]:
    """Compute the budget of every configured file.

    Raises ``ConfigurationError`` listing every violation when the computed
    maximum is not positive or an explicit timeout falls outside
    ``(0, maximum]``.
    """
    files = config.file_specs()
    maximum = max_file_timeout(config.interval, len(files))
    violations: List[str] = []

    if maximum <= 0:
        violations.append(
            f"interval {config.interval:g}s is too short for {len(files)} test files "
            f"(computed per-file timeout {maximum:g}s)"
        )
        raise ConfigurationError("Invalid timeout budget", violations=violations)

    budgets = {}
    for spec in files:
        push = _pick_timeout(spec.name, "timeout_push", spec.timeout_push, maximum, violations)
        pull = _pick_timeout(spec.name, "timeout_pull", spec.timeout_pull, maximum, violations)
        budgets[spec.name] = TimeoutBudget(push_timeout=push, pull_timeout=pull)

    if violations:
        raise ConfigurationError("Invalid timeout budget", violations=violations)

    return MappingProxyType(budgets)


def _pick_timeout(
    file_name: str,
    parameter: str,
    explicit: Optional[float],
    maximum: float,
    violations: List[str],
) -> float:
    if explicit is None:
        logger.info("%s for '%s': %g seconds", parameter, file_name, maximum)
        return maximum
    if explicit <= 0 or explicit > maximum:
        violations.append(
            f"test_files.{file_name}.{parameter}: for full-cycle interval should be "
            f"less or equal '{maximum:g}' and more than '0'"
        )
    return explicit
