from __future__ import annotations

from datetime import UTC, datetime

GAME_URL = "https://www.chess.com/game/live/{game_id}"
_MOVES = "1. e4 e5 2. Qh5 Nc6 3. Bc4 Nf6 4. Qxf7# 1-0"


def build_pgn(
    game_id: str,
    white: str,
    black: str,
    *,
    end_time: datetime,
    time_control: str = "180",
    white_rating: int | None = 1500,
    black_rating: int | None = 1450,
    result: str = "1-0",
) -> str:
    headers = [
        ("Event", "Live Chess"),
        ("Site", "Chess.com"),
        ("Date", end_time.strftime("%Y.%m.%d")),
        ("White", white),
        ("Black", black),
        ("Result", result),
    ]
    if white_rating is not None:
        headers.append(("WhiteElo", str(white_rating)))
    if black_rating is not None:
        headers.append(("BlackElo", str(black_rating)))
    headers.extend(
        [
            ("TimeControl", time_control),
            ("EndDate", end_time.strftime("%Y.%m.%d")),
            ("EndTime", end_time.strftime("%H:%M:%S")),
            ("Link", GAME_URL.format(game_id=game_id)),
        ]
    )
    header_text = "\n".join(f'[{key} "{value}"]' for key, value in headers)
    return f"{header_text}\n\n{_MOVES}"


def build_game(
    game_id: str,
    white: str,
    black: str,
    *,
    end_time: datetime | None = None,
    time_control: str = "180",
    white_rating: int | None = 1500,
    black_rating: int | None = 1450,
) -> dict:
    """Return a chess.com JSON archive entry for a white win."""
    ended = end_time or datetime(2024, 1, 5, 12, 0, tzinfo=UTC)
    white_side: dict = {"username": white, "result": "win"}
    black_side: dict = {"username": black, "result": "checkmated"}
    if white_rating is not None:
        white_side["rating"] = white_rating
    if black_rating is not None:
        black_side["rating"] = black_rating
    return {
        "url": GAME_URL.format(game_id=game_id),
        "pgn": build_pgn(
            game_id,
            white,
            black,
            end_time=ended,
            time_control=time_control,
            white_rating=white_rating,
            black_rating=black_rating,
        ),
        "time_control": time_control,
        "end_time": int(ended.timestamp()),
        "rated": True,
        "white": white_side,
        "black": black_side,
    }


def at(day: int, hour: int = 12, month: int = 1, year: int = 2024) -> datetime:
    return datetime(year, month, day, hour, 0, tzinfo=UTC)
