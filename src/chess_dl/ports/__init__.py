"""Port interfaces for chess_dl adapters."""

from chess_dl.ports.archive_source import ArchiveSource

__all__ = ["ArchiveSource"]
