"""Retry state machine and backoff policy for archive fetches."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import StrEnum

from chess_dl.errors import (
    InvalidFetchTransition,
    NotFoundError,
    RateLimitError,
    ServiceError,
)
from chess_dl.models import ArchiveRef

_RETRYABLE_ERRORS = (RateLimitError, ServiceError)


class FetchState(StrEnum):
    """Lifecycle of one archive fetch."""

    PENDING = "pending"
    FETCHING = "fetching"
    RETRY_SCHEDULED = "retry_scheduled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[FetchState, frozenset[FetchState]] = {
    FetchState.PENDING: frozenset({FetchState.FETCHING}),
    FetchState.FETCHING: frozenset(
        {FetchState.SUCCEEDED, FetchState.RETRY_SCHEDULED, FetchState.FAILED}
    ),
    FetchState.RETRY_SCHEDULED: frozenset({FetchState.FETCHING, FetchState.FAILED}),
    FetchState.SUCCEEDED: frozenset(),
    FetchState.FAILED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Exponential backoff with jitter.

    Attributes:
        max_attempts: Total attempts allowed per archive, including the first.
        floor_seconds: Starting delay when the service suggests none.
        ceiling_seconds: Upper bound for the doubled delay.
        jitter_ratio: Fraction of the delay added at random (0 disables jitter).
    """

    max_attempts: int = 5
    floor_seconds: float = 1.0
    ceiling_seconds: float = 60.0
    jitter_ratio: float = 0.1

    def delay_for(
        self,
        retry_index: int,
        retry_after: float | None = None,
        rng: random.Random | None = None,
    ) -> float:
        """Return the delay before retry number ``retry_index`` (0-based).

        The delay starts at the service's ``retry_after`` (or the floor), doubles
        per retry and is capped at the ceiling, but never drops below what the
        service asked for.
        """

        start = retry_after if retry_after is not None else self.floor_seconds
        start = max(start, 0.0)
        delay = min(self.ceiling_seconds, start * (2**retry_index))
        delay = max(delay, retry_after or 0.0)
        if self.jitter_ratio and delay:
            delay += delay * self.jitter_ratio * (rng or random).random()
        return delay


@dataclass(slots=True)
class ArchiveFetchJob:
    """Explicit retry state for one ArchiveRef.

    Drive it with `begin_attempt`, then `record_success` or `record_failure`.
    After a failure the job is either FAILED or RETRY_SCHEDULED with
    `next_delay` set; the caller sleeps and calls `begin_attempt` again.
    """

    ref: ArchiveRef
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)
    state: FetchState = FetchState.PENDING
    attempts: int = 0
    next_delay: float = 0.0
    total_backoff: float = 0.0
    last_error: Exception | None = None

    @property
    def done(self) -> bool:
        return self.state in (FetchState.SUCCEEDED, FetchState.FAILED)

    def begin_attempt(self) -> None:
        self._transition(FetchState.FETCHING)
        self.attempts += 1
        self.next_delay = 0.0

    def record_success(self) -> None:
        self._transition(FetchState.SUCCEEDED)
        self.last_error = None

    def record_failure(self, exc: Exception, rng: random.Random | None = None) -> FetchState:
        """Record a failed attempt and decide between retry and failure."""

        self.last_error = exc
        if not self._should_retry(exc):
            self._transition(FetchState.FAILED)
            return self.state
        retry_after = exc.retry_after if isinstance(exc, RateLimitError) else None
        self.next_delay = self.policy.delay_for(self.attempts - 1, retry_after, rng)
        self.total_backoff += self.next_delay
        self._transition(FetchState.RETRY_SCHEDULED)
        return self.state

    def abandon(self) -> None:
        """Mark a scheduled retry as failed, e.g. on cancellation."""

        self._transition(FetchState.FAILED)

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, NotFoundError):
            return False
        if not isinstance(exc, _RETRYABLE_ERRORS):
            return False
        return self.attempts < self.policy.max_attempts

    def _transition(self, target: FetchState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidFetchTransition(
                f"{self.ref.label}: cannot move from {self.state} to {target}"
            )
        self.state = target
