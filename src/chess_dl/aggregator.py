"""Merge classified games from concurrent producers into ordered groups."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from chess_dl.chess_player_color import ChessPlayerColor
from chess_dl.chess_time_control import TimeClass
from chess_dl.classifier import ClassifiedGame


@dataclass(frozen=True, slots=True)
class GroupingMode:
    """Which axes separate output groups.

    Turning an axis off merges along it; with every axis off the run produces
    a single flat group.
    """

    by_player: bool = True
    by_color: bool = True
    by_time_class: bool = True


@dataclass(frozen=True, slots=True)
class GroupKey:
    """Identifies one output group; None marks a merged axis."""

    player: str | None = None
    color: ChessPlayerColor | None = None
    time_class: TimeClass | None = None

    @classmethod
    def for_game(cls, game: ClassifiedGame, mode: GroupingMode) -> GroupKey:
        return cls(
            player=game.player if mode.by_player else None,
            color=game.color if mode.by_color else None,
            time_class=game.time_class if mode.by_time_class else None,
        )

    def sort_key(self) -> tuple[str, str, str]:
        return (self.player or "", str(self.color or ""), str(self.time_class or ""))

    @property
    def label(self) -> str:
        parts = [str(part) for part in (self.player, self.color, self.time_class) if part]
        return "_".join(parts) or "games"


@dataclass(frozen=True, slots=True)
class ResultGroup:
    """Games of one group, ascending by end time."""

    key: GroupKey
    games: tuple[ClassifiedGame, ...] = ()

    def __len__(self) -> int:
        return len(self.games)


@dataclass(slots=True)
class _GroupBucket:
    lock: threading.Lock = field(default_factory=threading.Lock)
    games: list[ClassifiedGame] = field(default_factory=list)


class GameAggregator:
    """Thread-safe accumulator for classified games.

    Each group key owns a bucket with its own lock, so producers filling
    different groups never wait on each other; the registry lock is only taken
    to create a bucket. Deduplication and ordering happen in `groups`, which
    makes the result independent of arrival order.
    """

    def __init__(self, mode: GroupingMode | None = None) -> None:
        self._mode = mode or GroupingMode()
        self._buckets: dict[GroupKey, _GroupBucket] = {}
        self._registry_lock = threading.Lock()

    @property
    def mode(self) -> GroupingMode:
        return self._mode

    def add(self, game: ClassifiedGame) -> bool:
        """Queue a game for its group; games that failed the filters are ignored."""
        if not game.passed:
            return False
        bucket = self._bucket(GroupKey.for_game(game, self._mode))
        with bucket.lock:
            bucket.games.append(game)
        return True

    def groups(self) -> dict[GroupKey, ResultGroup]:
        """Return deduplicated groups, each sorted by (end time, game id).

        When a game was queued more than once, the copy from the earliest
        requested player is kept and the rest are dropped.
        """
        winners: dict[str, ClassifiedGame] = {}
        for game in self._snapshot():
            current = winners.get(game.game_id)
            if current is None or _precedes(game, current):
                winners[game.game_id] = game

        grouped: dict[GroupKey, list[ClassifiedGame]] = {}
        for game in winners.values():
            grouped.setdefault(GroupKey.for_game(game, self._mode), []).append(game)
        return {
            key: ResultGroup(
                key=key,
                games=tuple(sorted(grouped[key], key=lambda g: (g.end_time, g.game_id))),
            )
            for key in sorted(grouped, key=GroupKey.sort_key)
        }

    def __len__(self) -> int:
        return sum(len(bucket.games) for bucket in list(self._buckets.values()))

    def _bucket(self, key: GroupKey) -> _GroupBucket:
        bucket = self._buckets.get(key)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            return self._buckets.setdefault(key, _GroupBucket())

    def _snapshot(self) -> list[ClassifiedGame]:
        with self._registry_lock:
            buckets = list(self._buckets.values())
        games: list[ClassifiedGame] = []
        for bucket in buckets:
            with bucket.lock:
                games.extend(bucket.games)
        return games


def _precedes(candidate: ClassifiedGame, current: ClassifiedGame) -> bool:
    return (candidate.player_rank, candidate.player) < (current.player_rank, current.player)
