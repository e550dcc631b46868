"""Perpetual push/pull probe loop."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from artifactory_probe.config.models import TestFileSpec
from artifactory_probe.core.exceptions import ErrorKind

from .budget import TimeoutBudget
from .outcome import LegOutcome, ProbeOutcome
from .prober import RoundTripProber
from .results import ResultsStore

__all__ = ["CycleReport", "IntervalScheduler", "LoopPhase", "ProbeLoop"]

logger = logging.getLogger(__name__)


class LoopPhase(Enum):
    """State of the probe loop."""

    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"


class IntervalScheduler:
    """Fixed-interval ticker: works out how long to wait after a cycle.

    The wait is ``interval - elapsed`` and never negative, so an overrunning
    cycle is followed immediately by the next one. Waiting returns early when
    ``stop_event`` is set.
    """

    def __init__(self, interval: float, stop_event: Optional[threading.Event] = None) -> None:
        self.interval = interval
        self.stop_event = stop_event or threading.Event()

    def remaining(self, elapsed: float) -> float:
        """Seconds left in the interval after a cycle that took ``elapsed``."""
        return max(0.0, self.interval - elapsed)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return ``True`` if a stop was requested."""
        if seconds <= 0:
            return self.stop_event.is_set()
        return self.stop_event.wait(seconds)


@dataclass(frozen=True)
class CycleReport:
    """Summary of one finished cycle and the wait that follows it."""

    cycle: int
    elapsed: float
    wait: float
    failed_files: int


class ProbeLoop:
    """Probe every configured file once per interval, forever.

    RUNNING probes the files one after another and commits each file's
    outcome to the results store as soon as both legs are done. WAITING
    sleeps for what is left of the interval. The first cycle starts
    immediately. ``stop`` only takes effect while waiting, so a cycle always
    runs to completion.
    """

    def __init__(
        self,
        prober: RoundTripProber,
        store: ResultsStore,
        files: Sequence[TestFileSpec],
        budgets: Mapping[str, TimeoutBudget],
        checksums: Mapping[str, str],
        scheduler: IntervalScheduler,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.prober = prober
        self.store = store
        self.files = tuple(files)
        self.budgets = budgets
        self.checksums = checksums
        self.scheduler = scheduler
        self._clock = clock
        self.phase = LoopPhase.IDLE
        self.cycle = 0
        self._thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        """Run the loop in a daemon thread."""
        self._thread = threading.Thread(target=self.run_forever, name="probe-loop", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the loop to exit at its next wait and join its thread."""
        self.scheduler.stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """Alternate RUNNING and WAITING until stopped or ``max_cycles`` ran."""
        logger.info("Starting probe loop for %s test files every %gs", len(self.files), self.scheduler.interval)
        while True:
            report = self.run_cycle()
            if max_cycles is not None and report.cycle >= max_cycles:
                break
            self.phase = LoopPhase.WAITING
            logger.info("Waiting %.3fs", report.wait)
            if self.scheduler.wait(report.wait):
                break
        self.phase = LoopPhase.IDLE
        logger.info("Probe loop stopped after %s cycles", self.cycle)

    def run_cycle(self) -> CycleReport:
        """Probe every file once and commit each outcome."""
        self.phase = LoopPhase.RUNNING
        self.cycle += 1
        logger.info("---====== Start tests (cycle %s) ======---", self.cycle)
        started = self._clock()
        failed = 0

        for spec in self.files:
            outcome = self._probe(spec)
            self.store.commit(spec.name, outcome)
            if not (outcome.push.success and outcome.pull.success):
                failed += 1

        elapsed = self._clock() - started
        wait = self.scheduler.remaining(elapsed)
        logger.info("---====== Finish tests (cycle %s, %.3fs) ======---", self.cycle, elapsed)
        if wait == 0:
            logger.warning("Cycle %s took %.3fs, longer than the %gs interval", self.cycle, elapsed, self.scheduler.interval)
        return CycleReport(cycle=self.cycle, elapsed=elapsed, wait=wait, failed_files=failed)

    def _probe(self, spec: TestFileSpec) -> ProbeOutcome:
        try:
            return self.prober.probe_file(
                spec,
                self.budgets[spec.name],
                self.checksums.get(spec.name),
                cycle=self.cycle,
            )
        except Exception as exc:
            logger.exception("Unexpected error while probing '%s'", spec.name)
            failed = LegOutcome.failed(ErrorKind.UNEXPECTED, str(exc))
            return ProbeOutcome(push=failed, pull=failed, cycle=self.cycle)
