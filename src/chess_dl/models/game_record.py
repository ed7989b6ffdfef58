"""Parsed game records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from chess_dl.chess_player_color import ChessPlayerColor
from chess_dl.chess_time_control import TimeClass
from chess_dl.utils import normalize_handle

UNKNOWN_RATING = -1


class Participant(BaseModel):
    """One side of a game.

    Attributes:
        handle: Player handle as printed by the service.
        rating: Rating at game time, or `UNKNOWN_RATING`.
    """

    model_config = ConfigDict(frozen=True)

    handle: str
    rating: int = UNKNOWN_RATING

    @property
    def key(self) -> str:
        return normalize_handle(self.handle)

    @property
    def has_rating(self) -> bool:
        return self.rating != UNKNOWN_RATING


class GameRecord(BaseModel):
    """Structured data for one finished game.

    Attributes:
        game_id: Stable identifier from the remote service; the dedup key.
        white: White participant.
        black: Black participant.
        result: PGN result token (``1-0``, ``0-1``, ``1/2-1/2`` or ``*``).
        time_control: Raw TimeControl value.
        time_class: Derived time class.
        end_time: When the game finished (UTC).
        pgn: Full PGN text including move text.
        url: Link to the game, when available.
    """

    model_config = ConfigDict(frozen=True)

    game_id: str
    white: Participant
    black: Participant
    result: str = "*"
    time_control: str = "-"
    time_class: TimeClass = TimeClass.OTHER
    end_time: datetime
    pgn: str = ""
    url: str | None = None

    def participant(self, color: ChessPlayerColor) -> Participant:
        return self.white if color.is_white() else self.black
