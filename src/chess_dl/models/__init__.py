"""Data models passed between pipeline stages."""

from chess_dl.models.archive_ref import ArchiveRef, RawArchive
from chess_dl.models.game_record import UNKNOWN_RATING, GameRecord, Participant

__all__ = [
    "UNKNOWN_RATING",
    "ArchiveRef",
    "GameRecord",
    "Participant",
    "RawArchive",
]
