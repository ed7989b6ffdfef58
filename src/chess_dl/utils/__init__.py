"""Utility exports for the chess_dl package."""

from .logger import funclogger, get_logger, set_level
from .normalize_string import normalize_handle, normalize_string
from .to_int import to_int

__all__ = [
    "funclogger",
    "get_logger",
    "normalize_handle",
    "normalize_string",
    "set_level",
    "to_int",
]
