from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from dotenv import load_dotenv

from chess_dl.errors import ConfigurationError
from chess_dl.fetch_state import BackoffPolicy

DEFAULT_BASE_URL = "https://api.chess.com/pub"
DEFAULT_USER_AGENT = "chess-dl/0.4.0"
DEFAULT_MAX_CONCURRENT_FETCHES = 10
DEFAULT_MAX_ATTEMPTS = 5
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_ARCHIVE_FORMATS = {"json", "pgn"}


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return _env_float(name, 0.0)


@dataclass(slots=True)
class Settings:
    """Runtime configuration for a download run.

    Every field falls back to a ``CHESS_DL_*`` environment variable and then to
    a built-in default. Keyword arguments override both.
    """

    base_url: str = field(default_factory=lambda: _env_str("CHESS_DL_BASE_URL", DEFAULT_BASE_URL))
    user_agent: str = field(
        default_factory=lambda: _env_str("CHESS_DL_USER_AGENT", DEFAULT_USER_AGENT)
    )
    max_concurrent_fetches: int = field(
        default_factory=lambda: _env_int("CHESS_DL_CONCURRENT", DEFAULT_MAX_CONCURRENT_FETCHES)
    )
    worker_threads: int | None = field(
        default_factory=lambda: _env_int("CHESS_DL_WORKERS", 0) or None
    )
    max_attempts: int = field(
        default_factory=lambda: _env_int("CHESS_DL_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    )
    backoff_floor_ms: int = field(
        default_factory=lambda: _env_int("CHESS_DL_BACKOFF_FLOOR_MS", 1000)
    )
    backoff_ceiling_ms: int = field(
        default_factory=lambda: _env_int("CHESS_DL_BACKOFF_CEILING_MS", 60_000)
    )
    backoff_jitter: float = field(
        default_factory=lambda: _env_float("CHESS_DL_BACKOFF_JITTER", 0.1)
    )
    request_timeout_s: float = field(
        default_factory=lambda: _env_float("CHESS_DL_REQUEST_TIMEOUT_S", 20.0)
    )
    time_limit_minutes: float | None = field(
        default_factory=lambda: _env_optional_float("CHESS_DL_TIME_LIMIT_MINUTES")
    )
    output_dir: Path = field(
        default_factory=lambda: Path(_env_str("CHESS_DL_OUTPUT_DIR", "."))
    )
    archive_format: str = field(
        default_factory=lambda: _env_str("CHESS_DL_ARCHIVE_FORMAT", "json").lower()
    )
    log_level: str = field(default_factory=lambda: _env_str("CHESS_DL_LOG_LEVEL", "INFO"))

    @property
    def effective_worker_threads(self) -> int:
        """Thread pool size; twice the fetch limit unless configured."""
        return self.worker_threads or self.max_concurrent_fetches * 2

    @property
    def time_limit_s(self) -> float | None:
        if self.time_limit_minutes is None:
            return None
        return self.time_limit_minutes * 60.0

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            max_attempts=self.max_attempts,
            floor_seconds=self.backoff_floor_ms / 1000.0,
            ceiling_seconds=self.backoff_ceiling_ms / 1000.0,
            jitter_ratio=self.backoff_jitter,
        )

    def validate(self) -> Settings:
        """Raise `ConfigurationError` for values a run cannot work with."""
        problems: list[str] = []
        if self.max_concurrent_fetches < 1:
            problems.append("max_concurrent_fetches must be at least 1")
        if self.worker_threads is not None and self.worker_threads < 1:
            problems.append("worker_threads must be at least 1")
        if self.max_attempts < 1:
            problems.append("max_attempts must be at least 1")
        if self.backoff_floor_ms < 0:
            problems.append("backoff_floor_ms must not be negative")
        if self.backoff_ceiling_ms < self.backoff_floor_ms:
            problems.append("backoff_ceiling_ms must not be below backoff_floor_ms")
        if not 0.0 <= self.backoff_jitter <= 1.0:
            problems.append("backoff_jitter must be between 0 and 1")
        if self.request_timeout_s <= 0:
            problems.append("request_timeout_s must be positive")
        if self.time_limit_minutes is not None and self.time_limit_minutes <= 0:
            problems.append("time_limit_minutes must be positive")
        if self.archive_format not in _ARCHIVE_FORMATS:
            problems.append(f"archive_format must be one of {sorted(_ARCHIVE_FORMATS)}")
        if self.log_level.upper() not in _LOG_LEVELS:
            problems.append(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        if problems:
            raise ConfigurationError("; ".join(problems))
        return self


def get_settings(**overrides: object) -> Settings:
    """Load `.env`, build settings from the environment and apply overrides."""
    load_dotenv()
    known = {f.name for f in fields(Settings)}
    unexpected = sorted(set(overrides) - known)
    if unexpected:
        raise ConfigurationError(f"Unknown setting: {unexpected[0]}")
    settings = Settings(**overrides)  # type: ignore[arg-type]
    if isinstance(settings.output_dir, str):
        settings.output_dir = Path(settings.output_dir)
    return settings.validate()
