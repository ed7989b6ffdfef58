from __future__ import annotations

from enum import StrEnum


class ChessPlayerColor(StrEnum):
    """The side a player had in a game."""

    WHITE = "white"
    BLACK = "black"

    @classmethod
    def from_str(cls, color_str: str) -> ChessPlayerColor:
        color_str = color_str.strip().lower()
        if color_str in ["white", "w"]:
            return cls.WHITE
        if color_str in ["black", "b"]:
            return cls.BLACK
        raise ValueError(f"Invalid color string: {color_str}")

    def is_white(self) -> bool:
        return self == ChessPlayerColor.WHITE

    def is_black(self) -> bool:
        return self == ChessPlayerColor.BLACK


class ColorFilter(StrEnum):
    """Which side of the requested player's games to keep."""

    WHITE = "white"
    BLACK = "black"
    EITHER = "either"

    @classmethod
    def from_str(cls, value: str | None) -> ColorFilter:
        if value is None or not value.strip():
            return cls.EITHER
        normalized = value.strip().lower()
        if normalized in {"both", "any", "all"}:
            return cls.EITHER
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Invalid color filter: {value}") from exc

    def allows(self, color: ChessPlayerColor) -> bool:
        return self is ColorFilter.EITHER or self.value == color.value
