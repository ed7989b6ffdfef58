"""Concurrent chess.com game downloader.

Resolves players into monthly archives, downloads them under a shared
concurrency limit, and groups the games by player, color and time class.
"""

from chess_dl.aggregator import GameAggregator, GroupingMode, GroupKey, ResultGroup
from chess_dl.chess_player_color import ChessPlayerColor, ColorFilter
from chess_dl.chess_time_control import ChessTimeControl, TimeClass
from chess_dl.classifier import ClassifiedGame, GameFilters, classify
from chess_dl.config import Settings, get_settings
from chess_dl.output_sink import MemorySink, OutputSink, PgnFileSink
from chess_dl.pipeline import (
    DownloadPipeline,
    DownloadRequest,
    DownloadResult,
    RunSummary,
    run_download,
)

__version__ = "0.4.0"

__all__ = [
    "ChessPlayerColor",
    "ChessTimeControl",
    "ClassifiedGame",
    "ColorFilter",
    "DownloadPipeline",
    "DownloadRequest",
    "DownloadResult",
    "GameAggregator",
    "GameFilters",
    "GroupKey",
    "GroupingMode",
    "MemorySink",
    "OutputSink",
    "PgnFileSink",
    "ResultGroup",
    "RunSummary",
    "Settings",
    "TimeClass",
    "classify",
    "get_settings",
    "run_download",
]
