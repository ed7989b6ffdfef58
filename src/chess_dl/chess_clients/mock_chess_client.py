"""Mock chess client implementation."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Iterable, Mapping

from chess_dl.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from chess_dl.config import Settings
from chess_dl.errors import NotFoundError
from chess_dl.models import ArchiveRef, RawArchive
from chess_dl.utils import get_logger, normalize_handle

MOCK_ARCHIVE_URL = "https://api.chess.com/pub/player/{username}/games/{year:04d}/{month:02d}"

ArchiveKey = tuple[int, int]
ArchivePayload = bytes | str | list[Mapping[str, object]]


class MockChessClient(BaseChessClient):
    """Mock chess client that serves archives from memory.

    Archives are keyed by handle and ``(year, month)``. A payload may be raw
    bytes, a PGN/JSON string, or a list of game dicts that is wrapped into the
    ``{"games": [...]}`` envelope the real API returns.

    Scripted failures are consumed in order before the real payload is served,
    which lets tests express "rate limited twice, then succeed". The client also
    records how many fetches were running at once.
    """

    def __init__(
        self,
        archives: Mapping[str, Mapping[ArchiveKey, ArchivePayload]],
        context: BaseChessClientContext | None = None,
        *,
        listing_failures: Mapping[str, Iterable[Exception]] | None = None,
        archive_failures: Mapping[tuple[str, int, int], Iterable[Exception]] | None = None,
        fetch_delay_s: float = 0.0,
        media_type: str = "json",
    ) -> None:
        """Initialize the mock client with in-memory archives and failures."""
        super().__init__(
            context
            or BaseChessClientContext(settings=Settings(), logger=get_logger(__name__))
        )
        self._archives = {
            normalize_handle(handle): dict(months) for handle, months in archives.items()
        }
        self._listing_failures = {
            normalize_handle(handle): list(errors)
            for handle, errors in (listing_failures or {}).items()
        }
        self._archive_failures = {
            (normalize_handle(handle), year, month): list(errors)
            for (handle, year, month), errors in (archive_failures or {}).items()
        }
        self._fetch_delay_s = fetch_delay_s
        self._media_type = media_type
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.listing_calls: list[str] = []
        self.fetch_calls: list[ArchiveRef] = []

    def list_archives(self, handle: str) -> list[str]:
        """Return archive URLs for a stored handle, oldest first."""
        key = normalize_handle(handle)
        with self._lock:
            self.listing_calls.append(key)
            failure = _pop_failure(self._listing_failures, key)
        if failure is not None:
            raise failure
        if key not in self._archives:
            raise NotFoundError(f"404 Not Found: player {handle}")
        return [
            MOCK_ARCHIVE_URL.format(username=key, year=year, month=month)
            for year, month in sorted(self._archives[key])
        ]

    def fetch_archive(self, ref: ArchiveRef) -> RawArchive:
        """Serve a stored archive, tracking concurrent calls."""
        key = (ref.handle, ref.year, ref.month)
        with self._lock:
            self.fetch_calls.append(ref)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._fetch_delay_s:
                time.sleep(self._fetch_delay_s)
            with self._lock:
                failure = _pop_failure(self._archive_failures, key)
            if failure is not None:
                raise failure
            payload = self._archives.get(ref.handle, {}).get((ref.year, ref.month))
            if payload is None:
                raise NotFoundError(f"404 Not Found: archive {ref.label}")
            return RawArchive(ref=ref, content=_encode_payload(payload), media_type=self._media_type)
        finally:
            with self._lock:
                self.in_flight -= 1


def _pop_failure(failures: dict, key: object) -> Exception | None:
    queued = failures.get(key)
    if not queued:
        return None
    return queued.pop(0)


def _encode_payload(payload: ArchivePayload) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps({"games": list(payload)}, default=str).encode("utf-8")
