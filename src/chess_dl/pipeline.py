"""Concurrent download pipeline: resolve, fetch, parse, classify, aggregate."""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace

from chess_dl.aggregator import GameAggregator, GroupingMode, GroupKey, ResultGroup
from chess_dl.archive_fetcher import ArchiveFetcher
from chess_dl.archive_index import ArchiveIndexResolver
from chess_dl.archive_parser import parse_archive
from chess_dl.chess_clients import ChesscomClient, ChesscomClientContext
from chess_dl.chess_time_control import TimeClass
from chess_dl.classifier import GameFilters, classify
from chess_dl.config import Settings, get_settings
from chess_dl.errors import (
    ConfigurationError,
    FatalRunError,
    MalformedArchiveError,
    NotFoundError,
    RemoteServiceError,
    RunCancelledError,
)
from chess_dl.fetch_state import FetchState
from chess_dl.models import ArchiveRef, RawArchive
from chess_dl.output_sink import OutputSink, PgnFileSink
from chess_dl.ports import ArchiveSource
from chess_dl.utils import get_logger, normalize_handle, set_level

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DownloadRequest:
    """What to download and how to group it.

    Attributes:
        handles: Requested players, in priority order.
        filters: Color and time-class selection.
        grouping: Output grouping axes.
        raw: Hand each player's archives to the sink as downloaded, without
            parsing, filtering or sorting.
    """

    handles: tuple[str, ...]
    filters: GameFilters = field(default_factory=GameFilters)
    grouping: GroupingMode = field(default_factory=GroupingMode)
    raw: bool = False

    @classmethod
    def build(
        cls,
        handles: Iterable[str],
        *,
        color: str | None = None,
        time_classes: Iterable[str | TimeClass] | None = None,
        merge_players: bool = False,
        merge_colors: bool = False,
        separate_time_classes: bool = True,
        raw: bool = False,
    ) -> DownloadRequest:
        return cls(
            handles=tuple(handles),
            filters=GameFilters.from_values(color, time_classes),
            grouping=GroupingMode(
                by_player=not merge_players,
                by_color=not merge_colors,
                by_time_class=separate_time_classes,
            ),
            raw=raw,
        )

    def normalized_handles(self) -> list[str]:
        """Return unique normalized handles in request order.

        Raises:
            ConfigurationError: No handle was given, or one is blank.
        """
        if not self.handles:
            raise ConfigurationError("At least one player handle is required")
        normalized: list[str] = []
        for handle in self.handles:
            key = normalize_handle(handle)
            if not key:
                raise ConfigurationError(f"Invalid player handle: {handle!r}")
            if key not in normalized:
                normalized.append(key)
        return normalized


@dataclass(frozen=True, slots=True)
class ArchiveReport:
    """What happened to one archive."""

    ref: ArchiveRef
    state: FetchState
    attempts: int = 0
    games_parsed: int = 0
    records_skipped: int = 0
    games_unmatched: int = 0
    games_matched: int = 0
    error: str | None = None
    raw: RawArchive | None = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class PlayerReport:
    """Per-player counters for the run summary."""

    handle: str
    archives_listed: int = 0
    archives_failed: list[tuple[str, str]] = field(default_factory=list)
    records_skipped: int = 0
    games_unmatched: int = 0
    games_matched: int = 0
    error: str | None = None

    @property
    def resolved(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RunSummary:
    """Non-fatal problems of a run, grouped by player.

    Only the coordinating thread writes to it.
    """

    players: dict[str, PlayerReport] = field(default_factory=dict)

    @classmethod
    def for_handles(cls, handles: Iterable[str]) -> RunSummary:
        return cls(players={handle: PlayerReport(handle=handle) for handle in handles})

    def record_archive(self, report: ArchiveReport) -> None:
        player = self.players[report.ref.handle]
        player.records_skipped += report.records_skipped
        player.games_unmatched += report.games_unmatched
        player.games_matched += report.games_matched
        if report.failed:
            player.archives_failed.append((report.ref.label, report.error or ""))

    @property
    def any_resolved(self) -> bool:
        return any(player.resolved for player in self.players.values())

    def warnings(self) -> list[str]:
        lines: list[str] = []
        for player in self.players.values():
            if player.error:
                lines.append(f"{player.handle}: {player.error}")
                continue
            if player.archives_failed:
                lines.append(
                    f"{player.handle}: {len(player.archives_failed)} of "
                    f"{player.archives_listed} archives failed"
                )
                lines.extend(f"  {label}: {reason}" for label, reason in player.archives_failed)
            if player.records_skipped:
                lines.append(f"{player.handle}: skipped {player.records_skipped} malformed games")
            if player.games_unmatched:
                lines.append(
                    f"{player.handle}: dropped {player.games_unmatched} games without the player"
                )
        return lines

    def log(self) -> None:
        for line in self.warnings():
            logger.warning(line)


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Output of a finished run plus its warning summary.

    Attributes:
        groups: Classified games by group key; empty for raw runs.
        summary: Non-fatal problems, per player.
        raw_archives: For raw runs, each player's payloads oldest first.
        raw_mode: Whether the run skipped parsing and classification.
    """

    groups: dict[GroupKey, ResultGroup]
    summary: RunSummary
    raw_archives: dict[str, tuple[RawArchive, ...]] = field(default_factory=dict)
    raw_mode: bool = False

    @property
    def total_games(self) -> int:
        return sum(len(group) for group in self.groups.values())

    @property
    def total_archives(self) -> int:
        return sum(len(archives) for archives in self.raw_archives.values())

    def emit(self, sink: OutputSink) -> None:
        if self.raw_mode:
            sink.write_raw(self.raw_archives)
        else:
            sink.write_groups(self.groups)


class DownloadPipeline:
    """Runs one download from handles to grouped games.

    Listing calls run per player on a thread pool; each resolved player
    immediately schedules its archives on the same pool. Archive fetches share
    one bounded semaphore sized by ``max_concurrent_fetches``. Per-archive
    results flow back to the calling thread, which alone updates the summary.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: ArchiveSource | None = None,
        *,
        sleep: Callable[[float], object] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = (settings or get_settings()).validate()
        self.client = client or ChesscomClient(
            ChesscomClientContext(settings=self.settings, logger=get_logger("chess_dl.chesscom"))
        )
        self._sleep = sleep
        self._rng = rng
        self._clock = clock

    def run(self, request: DownloadRequest) -> DownloadResult:
        """Execute the request.

        Returns:
            Groups for every resolvable player (or their raw archives in raw
            mode), with a warning summary.

        Raises:
            ConfigurationError: The request is invalid; nothing was fetched.
            FatalRunError: No requested player could be resolved.
            RunCancelledError: Interrupted or over the time limit.
        """

        handles = request.normalized_handles()
        if request.raw and self.settings.archive_format != "pgn":
            raise ConfigurationError("Raw downloads need archive_format='pgn'")
        logger.info("Downloading games of %s", ", ".join(handles))
        cancel_event = threading.Event()
        policy = self.settings.backoff_policy()
        sleep = self._sleep or cancel_event.wait
        resolver = ArchiveIndexResolver(self.client, policy, sleep=sleep, rng=self._rng)
        fetcher = ArchiveFetcher(
            self.client,
            threading.BoundedSemaphore(self.settings.max_concurrent_fetches),
            policy,
            sleep=sleep,
            rng=self._rng,
            cancel_event=cancel_event,
        )
        aggregator = GameAggregator(request.grouping)
        summary = RunSummary.for_handles(handles)
        raw_archives: dict[str, list[RawArchive]] = {}
        deadline = self._deadline()

        executor = ThreadPoolExecutor(
            max_workers=self.settings.effective_worker_threads,
            thread_name_prefix="chess_dl",
        )

        def process_archive(ref: ArchiveRef, rank: int) -> ArchiveReport:
            try:
                return _process_archive(
                    fetcher, aggregator, request.filters, ref, rank, raw=request.raw
                )
            except RunCancelledError:
                raise
            except Exception as exc:
                logger.exception("Unexpected failure while processing %s", ref.label)
                return ArchiveReport(
                    ref=ref, state=FetchState.FAILED, error=f"unexpected error: {exc!r}"
                )

        def resolve_and_schedule(handle: str, rank: int) -> list[Future[ArchiveReport]]:
            refs = resolver.resolve(handle)
            return [executor.submit(process_archive, ref, rank) for ref in refs]

        try:
            resolve_futures = {
                executor.submit(resolve_and_schedule, handle, rank): handle
                for rank, handle in enumerate(handles)
            }
            archive_futures: list[Future[ArchiveReport]] = []
            for future in self._completed(resolve_futures, deadline):
                archive_futures.extend(
                    _collect_resolution(future, resolve_futures[future], summary)
                )
            for future in self._completed(archive_futures, deadline):
                report = future.result()
                summary.record_archive(report)
                if report.raw is not None:
                    raw_archives.setdefault(report.ref.handle, []).append(report.raw)
        except (KeyboardInterrupt, TimeoutError, RunCancelledError) as exc:
            cancel_event.set()
            logger.error("Download cancelled; no output produced")
            raise RunCancelledError(_cancel_reason(exc)) from exc
        except BaseException:
            cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=cancel_event.is_set())

        if not summary.any_resolved:
            summary.log()
            raise FatalRunError(
                "No requested player could be resolved: "
                + "; ".join(f"{p.handle}: {p.error}" for p in summary.players.values())
            )
        if request.raw:
            result = DownloadResult(
                groups={},
                summary=summary,
                raw_archives={
                    handle: tuple(sorted(archives, key=lambda archive: archive.ref))
                    for handle, archives in sorted(raw_archives.items())
                },
                raw_mode=True,
            )
            logger.info("Collected %s raw archives", result.total_archives)
        else:
            groups = aggregator.groups()
            result = DownloadResult(groups=groups, summary=summary)
            logger.info("Collected %s games in %s groups", result.total_games, len(groups))
        summary.log()
        return result

    def _deadline(self) -> float | None:
        limit = self.settings.time_limit_s
        return None if limit is None else self._clock() + limit

    def _completed(self, futures: Iterable[Future], deadline: float | None) -> Iterator[Future]:
        timeout = None if deadline is None else max(deadline - self._clock(), 0.0)
        return as_completed(list(futures), timeout=timeout)


def _collect_resolution(
    future: Future[list[Future[ArchiveReport]]],
    handle: str,
    summary: RunSummary,
) -> list[Future[ArchiveReport]]:
    player = summary.players[handle]
    try:
        scheduled = future.result()
    except NotFoundError:
        player.error = "player not found"
        logger.warning("Player %s not found", handle)
        return []
    except RemoteServiceError as exc:
        player.error = f"archive listing failed: {exc}"
        logger.warning("Could not list archives of %s: %s", handle, exc)
        return []
    player.archives_listed = len(scheduled)
    if not scheduled:
        logger.info("No archives found for %s", handle)
    return scheduled


def _process_archive(
    fetcher: ArchiveFetcher,
    aggregator: GameAggregator,
    filters: GameFilters,
    ref: ArchiveRef,
    rank: int,
    *,
    raw: bool = False,
) -> ArchiveReport:
    outcome = fetcher.fetch(ref)
    if not outcome.succeeded or outcome.raw is None:
        return ArchiveReport(
            ref=ref,
            state=outcome.state,
            attempts=outcome.attempts,
            error=str(outcome.error) if outcome.error else "download failed",
        )
    if raw:
        return ArchiveReport(
            ref=ref, state=outcome.state, attempts=outcome.attempts, raw=outcome.raw
        )
    try:
        parsed = parse_archive(outcome.raw)
    except MalformedArchiveError as exc:
        logger.warning("Discarding archive %s: %s", ref.label, exc)
        return ArchiveReport(
            ref=ref, state=outcome.state, attempts=outcome.attempts, error=str(exc)
        )

    unmatched = matched = 0
    for record in parsed.games:
        classified = classify(record, ref.handle, filters, player_rank=rank)
        if classified is None:
            unmatched += 1
        elif aggregator.add(classified):
            matched += 1
    return ArchiveReport(
        ref=ref,
        state=outcome.state,
        attempts=outcome.attempts,
        games_parsed=len(parsed.games),
        records_skipped=parsed.skipped,
        games_unmatched=unmatched,
        games_matched=matched,
    )


def _cancel_reason(exc: BaseException) -> str:
    if isinstance(exc, KeyboardInterrupt):
        return "Download interrupted"
    if isinstance(exc, TimeoutError):
        return "Time limit exceeded"
    return str(exc) or "Download cancelled"


def run_download(
    handles: Iterable[str],
    *,
    color: str | None = None,
    time_classes: Iterable[str | TimeClass] | None = None,
    merge_players: bool = False,
    merge_colors: bool = False,
    separate_time_classes: bool = True,
    raw: bool = False,
    settings: Settings | None = None,
    client: ArchiveSource | None = None,
    sink: OutputSink | None = None,
) -> DownloadResult:
    """Download, classify and group the games of one or more players.

    Filters are validated before any network call. Once the whole run has
    succeeded the output goes to ``sink``, which defaults to a `PgnFileSink`
    in ``settings.output_dir``. With ``raw=True`` the archives are fetched in
    PGN form and written per player without parsing.

    Example:
        >>> result = run_download(["hikaru"], time_classes=["blitz"])
        >>> result.total_games
    """

    request = DownloadRequest.build(
        handles,
        color=color,
        time_classes=time_classes,
        merge_players=merge_players,
        merge_colors=merge_colors,
        separate_time_classes=separate_time_classes,
        raw=raw,
    )
    active_settings = (settings or get_settings()).validate()
    if raw and active_settings.archive_format != "pgn":
        active_settings = replace(active_settings, archive_format="pgn")
    set_level(active_settings.log_level)
    result = DownloadPipeline(active_settings, client).run(request)
    result.emit(sink if sink is not None else PgnFileSink(active_settings.output_dir))
    return result
