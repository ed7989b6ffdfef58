"""Parse Retry-After header values for Chess.com."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def _parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """Parse Retry-After header values.

    Args:
        value: Retry-After header value, either delta-seconds or an HTTP date.
        now: Reference time for HTTP dates; defaults to the current UTC time.

    Returns:
        Number of seconds to wait, or None.
    """

    if not value:
        return None
    seconds = _parse_retry_after_seconds(value)
    if seconds is not None:
        return seconds
    return _parse_retry_after_date(value, now or datetime.now(UTC))


def _parse_retry_after_seconds(value: str) -> float | None:
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


def _parse_retry_after_date(value: str, now: datetime) -> float | None:
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = (dt - now).total_seconds()
    return max(delta, 0.0)
