"""Archive identifiers and raw archive payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from chess_dl.utils import normalize_handle

ArchiveMediaType = Literal["json", "pgn"]


@dataclass(frozen=True, slots=True, order=True)
class ArchiveRef:
    """One monthly archive of one player.

    Attributes:
        handle: Normalized player handle.
        year: Calendar year of the archive.
        month: Calendar month (1-12).
        url: Listing URL, when the reference came from the remote index.
    """

    handle: str
    year: int
    month: int
    url: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "handle", normalize_handle(self.handle))
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid archive month: {self.month}")

    @property
    def label(self) -> str:
        return f"{self.handle} {self.year:04d}/{self.month:02d}"


@dataclass(frozen=True, slots=True)
class RawArchive:
    """Undecoded payload of one archive, as returned by the remote service."""

    ref: ArchiveRef
    content: bytes
    media_type: ArchiveMediaType = "json"

    def __len__(self) -> int:
        return len(self.content)
