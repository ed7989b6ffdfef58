"""Port interface for remote archive sources."""

# pylint: disable=too-few-public-methods

from __future__ import annotations

from typing import Protocol

from chess_dl.models import ArchiveRef, RawArchive


class ArchiveSource(Protocol):
    """Stable interface for services that publish monthly game archives."""

    def list_archives(self, handle: str) -> list[str]:
        """Return the archive URLs listed for a player, in service order.

        Raises:
            NotFoundError: The player does not exist.
            RateLimitError: The service asked the caller to slow down.
            ServiceError: Any other transient failure.
        """

    def fetch_archive(self, ref: ArchiveRef) -> RawArchive:
        """Return the raw payload of one monthly archive.

        Raises:
            NotFoundError: The archive is gone.
            RateLimitError: The service asked the caller to slow down.
            ServiceError: Any other transient failure.
        """
