"""Decode raw archives into game records."""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import StringIO

import chess.pgn
from pydantic import ValidationError

from chess_dl.chess_time_control import time_class_for
from chess_dl.errors import MalformedArchiveError, MalformedRecordError
from chess_dl.models import UNKNOWN_RATING, GameRecord, Participant, RawArchive
from chess_dl.utils import get_logger, to_int

logger = get_logger(__name__)

PGN_SPLIT_RE = re.compile(r"\n{2,}(?=\[Event )")
SITE_ID_PATTERNS = [
    re.compile(r"https?://(?:www\.)?chess\.com/game/(?:live|daily)/([0-9]+)"),
    re.compile(r"https?://(?:www\.)?chess\.com/(?:live|daily)/game/([0-9]+)"),
    re.compile(r"https?://(?:www\.)?chess\.com/game/([0-9]+)"),
]
_DRAW_CODES = {
    "agreed",
    "repetition",
    "stalemate",
    "insufficient",
    "50move",
    "timevsinsufficient",
}
_RESULT_TOKENS = {"1-0", "0-1", "1/2-1/2", "*"}


@dataclass(slots=True)
class ParsedArchive:
    """Records decoded from one archive plus the entries that failed.

    Attributes:
        games: Successfully decoded records, in archive order.
        errors: One error per skipped entry.
    """

    games: list[GameRecord] = field(default_factory=list)
    errors: list[MalformedRecordError] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.errors)


def parse_archive(raw: RawArchive) -> ParsedArchive:
    """Decode every entry of an archive independently.

    Raises:
        MalformedArchiveError: The payload cannot be decoded at all, or every
            entry in it failed.
    """

    parsed = ParsedArchive()
    for item in iter_archive_entries(raw):
        if isinstance(item, MalformedRecordError):
            parsed.errors.append(item)
        else:
            parsed.games.append(item)
    if parsed.errors and not parsed.games:
        raise MalformedArchiveError(
            f"All {parsed.skipped} entries of {raw.ref.label} are malformed"
        )
    if parsed.errors:
        logger.warning(
            "Skipped %s malformed entries in %s: %s",
            parsed.skipped,
            raw.ref.label,
            parsed.errors[0],
        )
    return parsed


def iter_archive_entries(raw: RawArchive) -> Iterator[GameRecord | MalformedRecordError]:
    """Yield a record or a record error for each entry of an archive."""
    if raw.media_type == "pgn":
        text = _decode_text(raw).replace("\r\n", "\n")
        if not text.strip():
            raise MalformedArchiveError(f"{raw.ref.label} is empty")
        yield from _iter_pgn_entries(text)
        return
    yield from _iter_json_entries(raw)


def _decode_text(raw: RawArchive) -> str:
    try:
        return raw.content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedArchiveError(f"{raw.ref.label} is not valid UTF-8") from exc


def _iter_json_entries(raw: RawArchive) -> Iterator[GameRecord | MalformedRecordError]:
    try:
        payload = json.loads(_decode_text(raw))
    except json.JSONDecodeError as exc:
        raise MalformedArchiveError(f"{raw.ref.label} is not valid JSON: {exc}") from exc
    games = payload.get("games") if isinstance(payload, dict) else None
    if not isinstance(games, list):
        raise MalformedArchiveError(f"{raw.ref.label} has no games list")
    for index, entry in enumerate(games):
        try:
            yield game_record_from_entry(entry)
        except MalformedRecordError as exc:
            yield MalformedRecordError(f"{raw.ref.label} entry {index}: {exc}")


def _iter_pgn_entries(text: str) -> Iterator[GameRecord | MalformedRecordError]:
    chunks = [chunk.strip() for chunk in PGN_SPLIT_RE.split(text) if chunk.strip()]
    for index, chunk in enumerate(chunks):
        try:
            yield game_record_from_pgn(chunk)
        except MalformedRecordError as exc:
            yield MalformedRecordError(f"PGN game {index}: {exc}")


def game_record_from_entry(entry: object) -> GameRecord:
    """Build a record from one chess.com JSON game entry.

    Fields absent from the entry fall back to the PGN headers embedded in it.
    The game id is the numeric id from the game URL, as in the ``/pgn``
    export, so both archive formats dedup on the same key.
    """
    if not isinstance(entry, Mapping):
        raise MalformedRecordError(f"expected an object, got {type(entry).__name__}")
    pgn = entry.get("pgn") if isinstance(entry.get("pgn"), str) else ""
    headers = _read_headers(pgn)
    url = _optional_str(entry.get("url")) or headers.get("Link")
    white_side = _side(entry, "white")
    black_side = _side(entry, "black")
    return _build_record(
        game_id=_match_site_id(url) or _optional_str(entry.get("uuid")),
        white=_participant(white_side, headers, "White"),
        black=_participant(black_side, headers, "Black"),
        result=_result_from_sides(white_side, black_side) or headers.get("Result"),
        time_control=_optional_str(entry.get("time_control")) or headers.get("TimeControl"),
        end_time=_end_time_from_epoch(entry.get("end_time")) or _end_time_from_headers(headers),
        pgn=pgn,
        url=url,
    )


def game_record_from_pgn(pgn: str) -> GameRecord:
    """Build a record from one PGN game as served by the ``/pgn`` endpoint."""
    headers = _read_headers(pgn)
    if not headers:
        raise MalformedRecordError("no PGN headers")
    link = headers.get("Link")
    return _build_record(
        game_id=_match_site_id(link) or _match_site_id(headers.get("Site")),
        white=_participant({}, headers, "White"),
        black=_participant({}, headers, "Black"),
        result=headers.get("Result"),
        time_control=headers.get("TimeControl"),
        end_time=_end_time_from_headers(headers),
        pgn=pgn,
        url=link,
    )


def _build_record(
    *,
    game_id: str | None,
    white: Participant,
    black: Participant,
    result: str | None,
    time_control: str | None,
    end_time: datetime | None,
    pgn: str,
    url: str | None,
) -> GameRecord:
    if not game_id:
        raise MalformedRecordError("missing game identifier")
    if end_time is None:
        raise MalformedRecordError(f"game {game_id} has no end time")
    control = (time_control or "-").strip() or "-"
    try:
        return GameRecord(
            game_id=game_id,
            white=white,
            black=black,
            result=result if result in _RESULT_TOKENS else "*",
            time_control=control,
            time_class=time_class_for(control),
            end_time=end_time,
            pgn=pgn,
            url=url,
        )
    except ValidationError as exc:
        raise MalformedRecordError(f"game {game_id}: {exc}") from exc


def _read_headers(pgn: str) -> Mapping[str, str]:
    if not pgn:
        return {}
    headers = chess.pgn.read_headers(StringIO(pgn))
    return headers if headers is not None else {}


def _side(entry: Mapping[str, object], color: str) -> Mapping[str, object]:
    side = entry.get(color)
    return side if isinstance(side, Mapping) else {}


def _participant(side: Mapping[str, object], headers: Mapping[str, str], color: str) -> Participant:
    handle = _optional_str(side.get("username")) or _optional_str(headers.get(color))
    if not handle or handle == "?":
        raise MalformedRecordError(f"missing {color.lower()} player")
    rating = to_int(side.get("rating"))
    if rating is None:
        rating = to_int(headers.get(f"{color}Elo"))
    return Participant(handle=handle, rating=UNKNOWN_RATING if rating is None else rating)


def _result_from_sides(white: Mapping[str, object], black: Mapping[str, object]) -> str | None:
    white_result = _optional_str(white.get("result"))
    black_result = _optional_str(black.get("result"))
    if white_result == "win":
        return "1-0"
    if black_result == "win":
        return "0-1"
    if white_result in _DRAW_CODES or black_result in _DRAW_CODES:
        return "1/2-1/2"
    return None


def _end_time_from_epoch(value: object) -> datetime | None:
    seconds = to_int(value)
    if seconds is None or seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedRecordError(f"end_time {value!r} is out of range") from exc


def _end_time_from_headers(headers: Mapping[str, str]) -> datetime | None:
    for date_key, time_key in (("EndDate", "EndTime"), ("UTCDate", "UTCTime"), ("Date", None)):
        date_value = headers.get(date_key)
        if not date_value or "?" in date_value:
            continue
        time_value = headers.get(time_key, "00:00:00") if time_key else "00:00:00"
        parsed = _parse_pgn_datetime(date_value, time_value)
        if parsed is not None:
            return parsed
    return None


def _parse_pgn_datetime(date_value: str, time_value: str) -> datetime | None:
    time_match = re.search(r"(\d{1,2}:\d{2}:\d{2})", time_value or "")
    clock = time_match.group(1) if time_match else "00:00:00"
    try:
        return datetime.strptime(f"{date_value.strip()} {clock}", "%Y.%m.%d %H:%M:%S").replace(
            tzinfo=UTC
        )
    except ValueError:
        return None


def _match_site_id(site: str | None) -> str | None:
    if not site:
        return None
    for pattern in SITE_ID_PATTERNS:
        match = pattern.search(site)
        if match:
            return match.group(1)
    return None


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
