# pylint: disable=duplicate-code,R0801
"""Custom error types used in chess_dl."""

from __future__ import annotations

import requests


class RemoteServiceError(requests.HTTPError):
    """Base class for failures reported by the remote game service."""


class NotFoundError(RemoteServiceError):
    """The requested player or archive does not exist."""


class RateLimitError(RemoteServiceError):
    """HTTP rate limit error.

    Attributes:
        retry_after: Delay in seconds suggested by the service, if any.
    """

    def __init__(self, *args: object, retry_after: float | None = None, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.retry_after = retry_after


class ServiceError(RemoteServiceError):
    """Transient failure: server error, connection failure or timeout."""


class MalformedArchiveError(ValueError):
    """An archive payload could not be decoded, or none of its entries could."""


class MalformedRecordError(ValueError):
    """A single game entry inside an archive could not be decoded."""


class ConfigurationError(ValueError):
    """Invalid filter or settings input; raised before any network call."""


class FatalRunError(RuntimeError):
    """A non-recoverable condition; the run produces no output."""


class RunCancelledError(FatalRunError):
    """The run was interrupted or exceeded its time limit."""


class InvalidFetchTransition(RuntimeError):
    """An archive fetch job was driven through an illegal state change."""


__all__ = [
    "ConfigurationError",
    "FatalRunError",
    "InvalidFetchTransition",
    "MalformedArchiveError",
    "MalformedRecordError",
    "NotFoundError",
    "RateLimitError",
    "RemoteServiceError",
    "RunCancelledError",
    "ServiceError",
]
