"""Resolve a player handle into its monthly archive references."""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Callable, Iterable

from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from chess_dl.errors import RateLimitError, ServiceError
from chess_dl.fetch_state import BackoffPolicy
from chess_dl.models import ArchiveRef
from chess_dl.ports import ArchiveSource
from chess_dl.utils import funclogger, get_logger, normalize_handle

logger = get_logger(__name__)

_ARCHIVE_URL_PATTERN = re.compile(r"/games/(\d{4})/(\d{1,2})/?$")


def parse_archive_url(handle: str, url: str) -> ArchiveRef | None:
    """Build an ArchiveRef from a monthly archive URL, or None if it is not one."""
    match = _ARCHIVE_URL_PATTERN.search(url.strip())
    if not match:
        return None
    month = int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return ArchiveRef(handle=handle, year=int(match.group(1)), month=month, url=url.strip())


@funclogger
def refs_from_urls(handle: str, urls: Iterable[str]) -> list[ArchiveRef]:
    """Turn listed archive URLs into ArchiveRefs, oldest first.

    Entries that do not look like monthly archives are skipped with a warning,
    and a month listed twice is kept once.
    """
    refs: dict[tuple[int, int], ArchiveRef] = {}
    for url in urls:
        ref = parse_archive_url(handle, url)
        if ref is None:
            logger.warning("Skipping unrecognised archive entry for %s: %s", handle, url)
            continue
        refs.setdefault((ref.year, ref.month), ref)
    return [refs[key] for key in sorted(refs)]


class ArchiveIndexResolver:
    """Lists the monthly archives available for a player.

    One listing call is made per handle; rate limits and transient failures are
    retried with the shared backoff policy. Archives come back oldest first.
    """

    def __init__(
        self,
        client: ArchiveSource,
        policy: BackoffPolicy | None = None,
        *,
        sleep: Callable[[float], object] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._policy = policy or BackoffPolicy()
        self._sleep = sleep
        self._rng = rng

    def resolve(self, handle: str) -> list[ArchiveRef]:
        """Return the archives for a handle.

        Raises:
            NotFoundError: The handle does not exist.
            RateLimitError: Still rate limited after the last attempt.
            ServiceError: Still failing after the last attempt.
        """

        key = normalize_handle(handle)
        urls = self._list_with_retry(key)
        refs = refs_from_urls(key, urls)
        logger.info("Resolved %s archives for %s", len(refs), key)
        return refs

    def _list_with_retry(self, handle: str) -> list[str]:
        retrying = Retrying(
            retry=retry_if_exception_type((RateLimitError, ServiceError)),
            stop=stop_after_attempt(self._policy.max_attempts),
            wait=self._wait,
            sleep=self._sleep,
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        return retrying(self._client.list_archives, handle)

    def _wait(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        retry_after = exc.retry_after if isinstance(exc, RateLimitError) else None
        return self._policy.delay_for(retry_state.attempt_number - 1, retry_after, self._rng)
