"""Time control parsing and time-class bucketing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

# chess.com buckets a clock by its estimated duration over a 40-move game.
TIME_CONTROL_ESTIMATE_MOVES = 40
BULLET_MAX_SECONDS = 180
BLITZ_MAX_SECONDS = 600
RAPID_MAX_SECONDS = 1800

_PLUS_PATTERN = re.compile(r"^(\d+)\+(\d+)$")
_SLASH_PATTERN = re.compile(r"^(\d+)/(\d+)$")


class TimeClass(StrEnum):
    """Time class of a game, derived from its clock configuration."""

    BULLET = "bullet"
    BLITZ = "blitz"
    RAPID = "rapid"
    DAILY = "daily"
    OTHER = "other"

    @classmethod
    def from_str(cls, value: str) -> TimeClass:
        normalized = value.strip().lower()
        aliases = {"correspondence": cls.DAILY, "classical": cls.DAILY}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Invalid time class: {value}") from exc


def classify_clock(base_seconds: int, increment_seconds: int = 0) -> TimeClass:
    """Bucket a (base, increment) clock into a time class.

    >>> classify_clock(179)
    <TimeClass.BULLET: 'bullet'>
    >>> classify_clock(180)
    <TimeClass.BLITZ: 'blitz'>
    """
    return _time_class_for_total(base_seconds + increment_seconds * TIME_CONTROL_ESTIMATE_MOVES)


def _time_class_for_total(total: int) -> TimeClass:
    if total < BULLET_MAX_SECONDS:
        return TimeClass.BULLET
    if total < BLITZ_MAX_SECONDS:
        return TimeClass.BLITZ
    if total < RAPID_MAX_SECONDS:
        return TimeClass.RAPID
    return TimeClass.DAILY


@dataclass(frozen=True, slots=True)
class ChessTimeControl:
    """Represents a chess time control value."""

    initial: int  # seconds; for correspondence, seconds per move
    increment: int = 0
    correspondence: bool = False

    @classmethod
    def from_pgn_string(cls, value: str | None) -> ChessTimeControl | None:
        """Parse a PGN/chess.com TimeControl string.

        Understands ``"180"``, ``"180+2"`` and the daily form ``"1/86400"``.
        Returns None for ``"-"``, empty or unrecognised values.
        """
        normalized = (value or "").strip()
        if not normalized or normalized in {"-", "?"}:
            return None
        if normalized.isdigit():
            return cls(initial=int(normalized))
        plus = _PLUS_PATTERN.match(normalized)
        if plus:
            return cls(initial=int(plus.group(1)), increment=int(plus.group(2)))
        slash = _SLASH_PATTERN.match(normalized)
        if slash:
            return cls(initial=int(slash.group(2)), correspondence=True)
        return None

    def as_str(self) -> str:
        if self.correspondence:
            return f"1/{self.initial}"
        if self.increment:
            return f"{self.initial}+{self.increment}"
        return str(self.initial)

    def __str__(self) -> str:
        return self.as_str()

    def estimated_total_seconds(self, moves: int = TIME_CONTROL_ESTIMATE_MOVES) -> int:
        return self.initial + self.increment * moves

    def time_class(self) -> TimeClass:
        if self.correspondence:
            return TimeClass.DAILY
        return _time_class_for_total(self.estimated_total_seconds())


def time_class_for(value: str | None) -> TimeClass:
    """Return the time class for a raw TimeControl string; OTHER if unparseable."""
    parsed = ChessTimeControl.from_pgn_string(value)
    if parsed is None:
        return TimeClass.OTHER
    return parsed.time_class()
