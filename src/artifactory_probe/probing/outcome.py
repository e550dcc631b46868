"""Value objects describing the result of probing one file."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from artifactory_probe.core.exceptions import ErrorKind

__all__ = ["Direction", "LegOutcome", "ProbeOutcome"]


class Direction(Enum):
    """Which leg of the round-trip an outcome belongs to."""

    PUSH = "push"
    PULL = "pull"


@dataclass(frozen=True)
class LegOutcome:
    """Result of one push or pull.

    ``duration`` is what gets exported and is zero for any failure;
    ``elapsed`` is the wall-clock time actually spent and is kept for logs.
    """

    duration: float = 0.0
    success: bool = False
    error_kind: ErrorKind = ErrorKind.NONE
    detail: str = ""
    elapsed: float = 0.0

    @classmethod
    def succeeded(cls, duration: float) -> "LegOutcome":
        return cls(duration=duration, success=True, elapsed=duration)

    @classmethod
    def failed(cls, kind: ErrorKind, detail: str, elapsed: float = 0.0) -> "LegOutcome":
        return cls(duration=0.0, success=False, error_kind=kind, detail=detail, elapsed=elapsed)

    @property
    def success_value(self) -> float:
        return 1.0 if self.success else 0.0


@dataclass(frozen=True)
class ProbeOutcome:
    """Push and pull results for one file from the same cycle."""

    push: LegOutcome = field(default_factory=LegOutcome)
    pull: LegOutcome = field(default_factory=LegOutcome)
    cycle: int = 0

    def leg(self, direction: Direction) -> LegOutcome:
        return self.push if direction is Direction.PUSH else self.pull
