"""Fetch archives under a shared concurrency limit with per-archive retries."""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from chess_dl.errors import RemoteServiceError, RunCancelledError
from chess_dl.fetch_state import ArchiveFetchJob, BackoffPolicy, FetchState
from chess_dl.models import ArchiveRef, RawArchive
from chess_dl.ports import ArchiveSource
from chess_dl.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Final state of one archive fetch.

    Attributes:
        ref: Archive that was fetched.
        state: SUCCEEDED or FAILED.
        attempts: Number of HTTP attempts made.
        total_backoff: Seconds spent (or scheduled) in backoff.
        raw: Payload when the fetch succeeded.
        error: Last error when the fetch failed.
    """

    ref: ArchiveRef
    state: FetchState
    attempts: int
    total_backoff: float
    raw: RawArchive | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is FetchState.SUCCEEDED


class ArchiveFetcher:
    """Downloads archives while holding a slot of one global limiter.

    The limiter is acquired for a single HTTP attempt only. Backoff sleeps
    happen outside it, so a retrying archive never blocks other fetches.
    """

    def __init__(
        self,
        client: ArchiveSource,
        limiter: threading.Semaphore,
        policy: BackoffPolicy | None = None,
        *,
        sleep: Callable[[float], object] = time.sleep,
        rng: random.Random | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._policy = policy or BackoffPolicy()
        self._sleep = sleep
        self._rng = rng
        self._cancel_event = cancel_event or threading.Event()

    def fetch(self, ref: ArchiveRef) -> FetchOutcome:
        """Fetch one archive, retrying per the backoff policy.

        Returns:
            The outcome; failures are reported, not raised.

        Raises:
            RunCancelledError: The run was cancelled while this archive was pending.
        """

        job = ArchiveFetchJob(ref=ref, policy=self._policy)
        raw: RawArchive | None = None
        while not job.done:
            self._raise_if_cancelled(job)
            job.begin_attempt()
            try:
                with self._limiter:
                    self._raise_if_cancelled(job)
                    raw = self._client.fetch_archive(ref)
            except RemoteServiceError as exc:
                self._handle_failure(job, exc)
                continue
            job.record_success()
        return FetchOutcome(
            ref=ref,
            state=job.state,
            attempts=job.attempts,
            total_backoff=job.total_backoff,
            raw=raw if job.state is FetchState.SUCCEEDED else None,
            error=job.last_error,
        )

    def _handle_failure(self, job: ArchiveFetchJob, exc: RemoteServiceError) -> None:
        state = job.record_failure(exc, self._rng)
        if state is FetchState.FAILED:
            logger.warning(
                "Failed to download %s after %s/%s attempts: %s",
                job.ref.label,
                job.attempts,
                self._policy.max_attempts,
                exc,
            )
            return
        logger.warning(
            "Retrying %s in %.2fs (attempt %s/%s): %s",
            job.ref.label,
            job.next_delay,
            job.attempts,
            self._policy.max_attempts,
            exc,
        )
        self._sleep(job.next_delay)

    def _raise_if_cancelled(self, job: ArchiveFetchJob) -> None:
        if not self._cancel_event.is_set():
            return
        if job.state is FetchState.FETCHING:
            job.record_failure(RunCancelledError("cancelled"))
        elif job.state is FetchState.RETRY_SCHEDULED:
            job.abandon()
        raise RunCancelledError(f"Fetch of {job.ref.label} cancelled")
