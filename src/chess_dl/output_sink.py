"""Output sinks that receive the final grouped games."""

# pylint: disable=too-few-public-methods

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from chess_dl.aggregator import GroupKey, ResultGroup
from chess_dl.models import RawArchive
from chess_dl.utils import get_logger

logger = get_logger(__name__)


class OutputSink(Protocol):
    """Receives the output of a finished run."""

    def write_groups(self, groups: Mapping[GroupKey, ResultGroup]) -> None:
        """Consume every group: filtered, deduplicated, chronologically ordered."""

    def write_raw(self, archives: Mapping[str, Sequence[RawArchive]]) -> None:
        """Consume each player's undecoded PGN archives, oldest first."""


def group_file_name(key: GroupKey) -> str:
    """File name for a group, e.g. ``hikaru_white_blitz.pgn``."""
    return f"{key.label}.pgn"


def raw_file_name(handle: str) -> str:
    return f"{handle}.pgn"


def render_group(group: ResultGroup) -> str:
    """Concatenate the PGN text of a group, one blank line between games."""
    return _join_chunks(game.record.pgn for game in group.games)


def render_raw(archives: Sequence[RawArchive]) -> str:
    """Concatenate archive payloads as served, one blank line between them."""
    return _join_chunks(
        archive.content.decode("utf-8", errors="replace").replace("\r\n", "\n")
        for archive in archives
    )


def _join_chunks(chunks) -> str:
    kept = [chunk.strip() for chunk in chunks if chunk.strip()]
    if not kept:
        return ""
    return "\n\n".join(kept) + "\n"


class PgnFileSink:
    """Writes one PGN file per group (or per player in raw mode)."""

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir)
        self.written: list[Path] = []

    def write_groups(self, groups: Mapping[GroupKey, ResultGroup]) -> None:
        for key, group in groups.items():
            self._write(group_file_name(key), render_group(group), f"{len(group)} games")

    def write_raw(self, archives: Mapping[str, Sequence[RawArchive]]) -> None:
        for handle, player_archives in archives.items():
            self._write(
                raw_file_name(handle), render_raw(player_archives), f"{len(player_archives)} archives"
            )

    def _write(self, name: str, text: str, what: str) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / name
        path.write_text(text, encoding="utf-8", newline="\n")
        self.written.append(path)
        logger.info("Wrote %s (%s bytes) to %s", what, len(text.encode()), path)


class MemorySink:
    """Keeps the rendered output in memory; useful for previews and tests."""

    def __init__(self) -> None:
        self.rendered: dict[str, str] = {}

    def write_groups(self, groups: Mapping[GroupKey, ResultGroup]) -> None:
        for key, group in groups.items():
            self.rendered[group_file_name(key)] = render_group(group)

    def write_raw(self, archives: Mapping[str, Sequence[RawArchive]]) -> None:
        for handle, player_archives in archives.items():
            self.rendered[raw_file_name(handle)] = render_raw(player_archives)
