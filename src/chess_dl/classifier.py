"""Label games with the requesting player's color and apply user filters."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from chess_dl.chess_player_color import ChessPlayerColor, ColorFilter
from chess_dl.chess_time_control import TimeClass
from chess_dl.errors import ConfigurationError
from chess_dl.models import GameRecord
from chess_dl.utils import get_logger, normalize_handle

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GameFilters:
    """Color and time-class selection for a run.

    An empty ``time_classes`` set selects every class.
    """

    color: ColorFilter = ColorFilter.EITHER
    time_classes: frozenset[TimeClass] = field(default_factory=frozenset)

    @classmethod
    def from_values(
        cls,
        color: str | ColorFilter | None = None,
        time_classes: Iterable[str | TimeClass] | None = None,
    ) -> GameFilters:
        """Build filters from user-facing strings.

        Raises:
            ConfigurationError: A color or time class name is not recognised.
        """
        try:
            resolved_color = color if isinstance(color, ColorFilter) else ColorFilter.from_str(color)
            resolved_classes = frozenset(
                value if isinstance(value, TimeClass) else TimeClass.from_str(value)
                for value in (time_classes or ())
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        return cls(color=resolved_color, time_classes=resolved_classes)

    def allows(self, color: ChessPlayerColor, time_class: TimeClass) -> bool:
        if not self.color.allows(color):
            return False
        return not self.time_classes or time_class in self.time_classes


@dataclass(frozen=True, slots=True)
class ClassifiedGame:
    """A record labelled from one requested player's point of view.

    Attributes:
        record: The parsed game.
        player: Normalized handle of the requested player it was matched to.
        color: Side that player had.
        passed: Whether the game satisfies the run's filters.
        player_rank: Position of the player in the request, used to pick a
            winner when the same game arrives through several players.
    """

    record: GameRecord
    player: str
    color: ChessPlayerColor
    passed: bool
    player_rank: int = 0

    @property
    def game_id(self) -> str:
        return self.record.game_id

    @property
    def time_class(self) -> TimeClass:
        return self.record.time_class

    @property
    def end_time(self) -> datetime:
        return self.record.end_time

    @property
    def opponent(self) -> str:
        side = ChessPlayerColor.BLACK if self.color.is_white() else ChessPlayerColor.WHITE
        return self.record.participant(side).handle


class UnmatchedPlayerError(ValueError):
    """The requested handle is neither participant of a game."""


def resolve_player_color(record: GameRecord, handle: str) -> ChessPlayerColor:
    """Return the side ``handle`` played, matching case-insensitively."""
    key = normalize_handle(handle)
    if key and record.white.key == key:
        return ChessPlayerColor.WHITE
    if key and record.black.key == key:
        return ChessPlayerColor.BLACK
    raise UnmatchedPlayerError(f"User '{handle}' not found in game {record.game_id}.")


def classify(
    record: GameRecord,
    target_handle: str,
    filters: GameFilters | None = None,
    *,
    player_rank: int = 0,
) -> ClassifiedGame | None:
    """Label a record for ``target_handle`` and evaluate the filters.

    Returns None, after logging a warning, when the handle played neither side.
    """
    try:
        color = resolve_player_color(record, target_handle)
    except UnmatchedPlayerError as exc:
        logger.warning("Dropping game: %s", exc)
        return None
    active = filters or GameFilters()
    return ClassifiedGame(
        record=record,
        player=normalize_handle(target_handle),
        color=color,
        passed=active.allows(color, record.time_class),
        player_rank=player_rank,
    )
