"""Probe engine: timeout budgets, round-trip prober, loop and results store."""

from .budget import TimeoutBudget, max_file_timeout, resolve_timeout_budgets
from .checksum import build_checksum_index, hash_file_md5
from .loop import CycleReport, IntervalScheduler, LoopPhase, ProbeLoop
from .outcome import Direction, LegOutcome, ProbeOutcome
from .prober import DOWNLOAD_SUFFIX, RoundTripProber
from .results import ResultsSnapshot, ResultsStore
from .testfiles import ensure_test_file, ensure_test_files

__all__ = [
    "CycleReport",
    "DOWNLOAD_SUFFIX",
    "Direction",
    "IntervalScheduler",
    "LegOutcome",
    "LoopPhase",
    "ProbeLoop",
    "ProbeOutcome",
    "ResultsSnapshot",
    "ResultsStore",
    "RoundTripProber",
    "TimeoutBudget",
    "build_checksum_index",
    "ensure_test_file",
    "ensure_test_files",
    "hash_file_md5",
    "max_file_timeout",
    "resolve_timeout_budgets",
]
