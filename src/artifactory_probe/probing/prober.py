"""Push/pull round-trip of one test file against Artifactory."""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import IO, Any, Callable, List, Optional, Union

import requests

from artifactory_probe.config.models import ArtifactoryParams, TestFileSpec
from artifactory_probe.core.exceptions import ChecksumMismatchError, ErrorKind, ProbeError

from .budget import TimeoutBudget
from .checksum import hash_file_md5
from .outcome import Direction, LegOutcome, ProbeOutcome

__all__ = ["DOWNLOAD_CHUNK_SIZE", "DOWNLOAD_SUFFIX", "RoundTripProber"]

logger = logging.getLogger(__name__)

DOWNLOAD_SUFFIX = "-downloaded"
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class _LegAttempt:
    """Deadline and open responses of one leg running in a worker thread.

    Once the calling thread gives up on the leg, ``abandon`` closes whatever
    the worker still holds and every later ``check`` raises, so the worker
    stops at its next read or write.
    """

    def __init__(self, file_name: str, timeout: float, clock: Callable[[], float]) -> None:
        self.file_name = file_name
        self.timeout = timeout
        self._clock = clock
        self.deadline = clock() + timeout
        self.abandoned = False
        self._lock = threading.Lock()
        self._resources: List[Any] = []

    def remaining(self) -> float:
        return self.deadline - self._clock()

    def check(self, action: str) -> None:
        if self.abandoned or self.remaining() <= 0:
            raise ProbeError(ErrorKind.TIMEOUT, f"{action} exceeded {self.timeout:g}s", self.file_name)

    def track(self, resource):
        """Register ``resource`` to be closed if the leg is abandoned."""
        with self._lock:
            if not self.abandoned:
                self._resources.append(resource)
                return resource
        resource.close()
        raise ProbeError(ErrorKind.TIMEOUT, f"Abandoned after {self.timeout:g}s", self.file_name)

    def abandon(self) -> None:
        with self._lock:
            self.abandoned = True
            resources, self._resources = self._resources, []
        for resource in resources:
            try:
                resource.close()
            except Exception:
                logger.debug("Closing abandoned response of '%s' failed", self.file_name, exc_info=True)


class _DeadlineReader:
    """Upload body that refuses to hand out more data once the leg deadline passed."""

    def __init__(self, source: IO[bytes], size: int, attempt: _LegAttempt) -> None:
        self._source = source
        self._size = size
        self._attempt = attempt

    def __len__(self) -> int:
        return self._size

    def read(self, size: int = -1) -> bytes:
        self._attempt.check("Upload")
        return self._source.read(size)


class RoundTripProber:
    """Upload and download a test file, timing each leg independently.

    Every fault inside a leg (unreadable file, bad URL, connection failure,
    timeout, unexpected status, checksum mismatch) is turned into a failed
    ``LegOutcome``; ``probe_file`` never raises for them. A failed push does
    not skip the pull.

    Each leg runs in its own worker thread and the caller waits at most the
    leg's timeout for it. Socket timeouts alone only bound single reads and
    writes, so a peer trickling data would otherwise hold a leg open forever.
    """

    def __init__(
        self,
        artifactory: ArtifactoryParams,
        test_files_dir: Union[str, Path],
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.artifactory = artifactory
        self.test_files_dir = Path(test_files_dir)
        self._session = session or requests.Session()
        self._clock = clock

    def close(self) -> None:
        self._session.close()

    def download_path(self, file_name: str) -> Path:
        return self.test_files_dir / f"{file_name}{DOWNLOAD_SUFFIX}"

    def probe_file(
        self,
        spec: TestFileSpec,
        budget: TimeoutBudget,
        expected_checksum: Optional[str] = None,
        cycle: int = 0,
    ) -> ProbeOutcome:
        """Push then pull ``spec`` and return both results."""
        push = self._run_leg(
            Direction.PUSH,
            spec.name,
            budget.push_timeout,
            lambda attempt: self._push(spec, attempt),
        )
        pull = self._run_leg(
            Direction.PULL,
            spec.name,
            budget.pull_timeout,
            lambda attempt: self._pull(spec, attempt, expected_checksum),
        )
        return ProbeOutcome(push=push, pull=pull, cycle=cycle)

    def _run_leg(
        self,
        direction: Direction,
        file_name: str,
        timeout: float,
        operation: Callable[[_LegAttempt], None],
    ) -> LegOutcome:
        logger.info("Start %s file '%s'", direction.value, file_name)
        start = self._clock()
        attempt = _LegAttempt(file_name, timeout, self._clock)
        errors: List[BaseException] = []

        def work() -> None:
            try:
                operation(attempt)
            except BaseException as exc:  # handed over to the calling thread
                errors.append(exc)
                if attempt.abandoned:
                    logger.debug("Abandoned %s of '%s' ended: %s", direction.value, file_name, exc)

        worker = threading.Thread(target=work, name=f"{direction.value}-{file_name}", daemon=True)
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            attempt.abandon()
            error = ProbeError(
                ErrorKind.TIMEOUT,
                f"{direction.value.capitalize()} exceeded {timeout:g}s",
                file_name,
            )
        elif errors:
            if not isinstance(errors[0], ProbeError):
                raise errors[0]
            error = errors[0]
        else:
            duration = self._clock() - start
            logger.info("'%s' %s duration: %.3f", file_name, direction.value, duration)
            return LegOutcome.succeeded(duration)

        elapsed = self._clock() - start
        logger.error(
            "'%s' %s failed [%s] after %.3fs: %s",
            file_name,
            direction.value,
            error.kind.value,
            elapsed,
            error.message,
        )
        return LegOutcome.failed(error.kind, error.message, elapsed)

    def _push(self, spec: TestFileSpec, attempt: _LegAttempt) -> None:
        source = self.test_files_dir / spec.name
        try:
            body = open(source, "rb")
        except OSError as exc:
            raise ProbeError(ErrorKind.FILE_ERROR, f"Cannot open '{source}': {exc}", spec.name) from exc

        with body:
            upload = _DeadlineReader(body, os.fstat(body.fileno()).st_size, attempt)
            prepared = self._prepare("PUT", spec.name, data=upload)
            response = attempt.track(self._send(prepared, attempt, spec.name))
            with response:
                if response.status_code != requests.codes.created:
                    raise ProbeError(
                        ErrorKind.BAD_STATUS,
                        f"Response code: {response.status_code}",
                        spec.name,
                    )

    def _pull(self, spec: TestFileSpec, attempt: _LegAttempt, expected_checksum: Optional[str]) -> None:
        prepared = self._prepare("GET", spec.name)
        response = attempt.track(self._send(prepared, attempt, spec.name, stream=True))
        target = self.download_path(spec.name)
        with response:
            if response.status_code != requests.codes.ok:
                raise ProbeError(ErrorKind.BAD_STATUS, f"Response code: {response.status_code}", spec.name)
            self._download(response, target, attempt, spec.name)

        if spec.verify_checksum:
            self._verify(spec.name, target, expected_checksum)

    def _prepare(self, method: str, file_name: str, data=None) -> requests.PreparedRequest:
        url = self.artifactory.file_url(file_name)
        try:
            return self._session.prepare_request(requests.Request(method, url, data=data))
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise ProbeError(ErrorKind.REQUEST_ERROR, f"Cannot build {method} {url}: {exc}", file_name) from exc

    def _send(
        self,
        prepared: requests.PreparedRequest,
        attempt: _LegAttempt,
        file_name: str,
        stream: bool = False,
    ) -> requests.Response:
        attempt.check("Request")
        try:
            return self._session.send(prepared, timeout=attempt.remaining(), stream=stream, allow_redirects=True)
        except requests.exceptions.Timeout as exc:
            raise ProbeError(ErrorKind.TIMEOUT, f"Timed out after {attempt.timeout:g}s: {exc}", file_name) from exc
        except requests.exceptions.RequestException as exc:
            raise ProbeError(ErrorKind.TRANSPORT_ERROR, str(exc), file_name) from exc

    def _download(self, response: requests.Response, target: Path, attempt: _LegAttempt, file_name: str) -> None:
        try:
            with open(target, "wb") as output:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    attempt.check("Download")
                    output.write(chunk)
        except requests.exceptions.RequestException as exc:
            kind = ErrorKind.TIMEOUT if isinstance(exc, requests.exceptions.Timeout) else ErrorKind.TRANSPORT_ERROR
            raise ProbeError(kind, f"Download interrupted: {exc}", file_name) from exc
        except OSError as exc:
            raise ProbeError(ErrorKind.FILE_ERROR, f"Cannot write '{target}': {exc}", file_name) from exc

    def _verify(self, file_name: str, target: Path, expected: Optional[str]) -> None:
        if expected is None:
            raise ProbeError(ErrorKind.CHECKSUM_MISMATCH, "No checksum recorded for the original file", file_name)
        try:
            actual = hash_file_md5(target)
        except OSError as exc:
            raise ProbeError(ErrorKind.FILE_ERROR, f"Cannot hash '{target}': {exc}", file_name) from exc

        logger.debug("'%s' hash: %s", file_name, expected)
        logger.debug("'%s%s' hash: %s", file_name, DOWNLOAD_SUFFIX, actual)
        if actual != expected:
            raise ChecksumMismatchError(file_name, expected, actual)
