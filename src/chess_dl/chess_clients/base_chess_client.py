from __future__ import annotations

import logging
from dataclasses import dataclass

from chess_dl.config import Settings
from chess_dl.models import ArchiveRef, RawArchive


@dataclass(slots=True)
class BaseChessClientContext:
    """Shared context for chess API clients.

    Attributes:
        settings: Application settings used for API calls.
        logger: Logger for client-specific messages.
    """

    settings: Settings
    logger: logging.Logger


class BaseChessClient:
    """Base class for archive-serving chess API clients.

    Subclasses are expected to implement `list_archives` and `fetch_archive`.
    """

    def __init__(self, context: BaseChessClientContext) -> None:
        """Initialize the client with shared context.

        Args:
            context: Base context containing settings and logger.
        """

        self._context = context

    @property
    def settings(self) -> Settings:
        """Expose the settings from the context."""

        return self._context.settings

    @property
    def logger(self) -> logging.Logger:
        """Expose the logger from the context."""

        return self._context.logger

    def list_archives(self, handle: str) -> list[str]:
        """List archive URLs for a player.

        Args:
            handle: Player handle.

        Returns:
            Archive URLs in the order the service publishes them.

        Raises:
            NotImplementedError: When the subclass does not implement this method.
        """

        raise NotImplementedError("Subclasses must implement list_archives")

    def fetch_archive(self, ref: ArchiveRef) -> RawArchive:
        """Fetch one monthly archive.

        Args:
            ref: Archive to download.

        Returns:
            The undecoded archive payload.

        Raises:
            NotImplementedError: When the subclass does not implement this method.
        """

        raise NotImplementedError("Subclasses must implement fetch_archive")
