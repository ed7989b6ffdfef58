"""Chess.com public API client."""

from __future__ import annotations

from dataclasses import dataclass

import requests

from chess_dl.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from chess_dl.errors import NotFoundError, RateLimitError, ServiceError
from chess_dl.models import ArchiveRef, RawArchive
from chess_dl.parse_retry_after__chesscom_rate_limit import _parse_retry_after

ARCHIVES_PATH = "/player/{username}/games/archives"
ARCHIVE_PATH = "/player/{username}/games/{year:04d}/{month:02d}"
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_BAD_REQUEST = 400
_NOT_FOUND_STATUSES = frozenset({404, 410})

__all__ = [
    "ARCHIVES_PATH",
    "ARCHIVE_PATH",
    "ChesscomClient",
    "ChesscomClientContext",
]


@dataclass(slots=True)
class ChesscomClientContext(BaseChessClientContext):
    """Context for Chess.com API interactions."""


class ChesscomClient(BaseChessClient):
    """Client for the Chess.com published-data API.

    Every HTTP failure is mapped onto the chess_dl error taxonomy: 404/410
    become `NotFoundError`, 429 becomes `RateLimitError` carrying the parsed
    ``Retry-After`` value, and other error statuses, connection failures and
    timeouts become `ServiceError`. Retrying is left to the caller.
    """

    def __init__(self, context: ChesscomClientContext) -> None:
        super().__init__(context)

    def archives_url(self, handle: str) -> str:
        return self.settings.base_url.rstrip("/") + ARCHIVES_PATH.format(username=handle)

    def archive_url(self, ref: ArchiveRef) -> str:
        url = ref.url or self.settings.base_url.rstrip("/") + ARCHIVE_PATH.format(
            username=ref.handle, year=ref.year, month=ref.month
        )
        if self.settings.archive_format == "pgn":
            return f"{url.rstrip('/')}/pgn"
        return url

    def list_archives(self, handle: str) -> list[str]:
        """Fetch the archive list for a player.

        Args:
            handle: Player handle.

        Returns:
            List of monthly archive URLs, oldest first.
        """

        url = self.archives_url(handle)
        response = self._get(url)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ServiceError(f"Archive listing for {handle} is not JSON") from exc
        archives = payload.get("archives") if isinstance(payload, dict) else None
        if not isinstance(archives, list):
            raise ServiceError(f"Archive listing for {handle} has no archives list")
        self.logger.info("Found %s archives for %s", len(archives), handle)
        return [str(archive) for archive in archives]

    def fetch_archive(self, ref: ArchiveRef) -> RawArchive:
        """Download one monthly archive.

        Args:
            ref: Archive to download.

        Returns:
            Raw archive bytes tagged with the configured media type.

        Raises:
            ServiceError: The service answered with an empty body; retried like
                any other transient failure.
        """

        url = self.archive_url(ref)
        response = self._get(url)
        content = response.content or b""
        if not content.strip():
            raise ServiceError(f"Empty archive body from {url}")
        self.logger.info("Downloaded %s bytes from %s", len(content), url)
        media_type = "pgn" if self.settings.archive_format == "pgn" else "json"
        return RawArchive(ref=ref, content=content, media_type=media_type)

    def _get(self, url: str) -> requests.Response:
        """Issue one GET request and map failures onto chess_dl errors.

        Args:
            url: URL to request.

        Returns:
            Successful response.

        Raises:
            NotFoundError: For 404 and 410 responses.
            RateLimitError: For 429 responses.
            ServiceError: For other error statuses, connection errors and timeouts.
        """

        try:
            response = requests.get(
                url,
                headers={"User-Agent": self.settings.user_agent},
                timeout=self.settings.request_timeout_s,
            )
        except requests.Timeout as exc:
            raise ServiceError(f"Timed out requesting {url}") from exc
        except requests.RequestException as exc:
            raise ServiceError(f"Request to {url} failed: {exc}") from exc
        return _check_status(url, response)


def _check_status(url: str, response: requests.Response) -> requests.Response:
    status = response.status_code
    if status == HTTP_STATUS_TOO_MANY_REQUESTS:
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        raise RateLimitError(
            f"Chess.com rate limited {url}",
            response=response,
            retry_after=retry_after,
        )
    if status in _NOT_FOUND_STATUSES:
        raise NotFoundError(f"{status} Not Found: {url}", response=response)
    if status >= HTTP_STATUS_BAD_REQUEST:
        raise ServiceError(f"{status} Error: {url}", response=response)
    return response
