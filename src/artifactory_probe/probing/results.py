"""Thread-safe holder of the latest probe outcome per file."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping

from .outcome import ProbeOutcome

__all__ = ["ResultsSnapshot", "ResultsStore"]


@dataclass(frozen=True)
class ResultsSnapshot:
    """Immutable copy of every file's outcome at one point in time."""

    outcomes: Mapping[str, ProbeOutcome]
    captured_at: float

    def __getitem__(self, file_name: str) -> ProbeOutcome:
        return self.outcomes[file_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def get(self, file_name: str) -> ProbeOutcome:
        """Return the outcome for ``file_name``, or an empty one if never probed."""
        return self.outcomes.get(file_name, ProbeOutcome())


class ResultsStore:
    """Latest outcome per file, shared by the probe loop and scrape handlers.

    The probe loop is the only writer. A file's push and pull are committed
    together as one ``ProbeOutcome`` under the lock, and ``snapshot`` copies
    the whole map under the same lock, so a reader never sees one leg from a
    cycle and the other leg from the next.
    """

    def __init__(self, file_names: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._outcomes: Dict[str, ProbeOutcome] = {name: ProbeOutcome() for name in file_names}

    def commit(self, file_name: str, outcome: ProbeOutcome) -> None:
        """Replace the outcome of ``file_name`` with a complete new one."""
        with self._lock:
            self._outcomes[file_name] = outcome

    def snapshot(self) -> ResultsSnapshot:
        """Return an isolated, read-only copy of all current outcomes."""
        with self._lock:
            copied = dict(self._outcomes)
        return ResultsSnapshot(outcomes=MappingProxyType(copied), captured_at=time.time())
