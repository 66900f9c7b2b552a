"""Error taxonomy shared by the router, channel, queue and cache."""

from __future__ import annotations

from enum import Enum

# Substrings reported when the remote side of a channel has been torn down.
CHANNEL_CLOSED_MARKERS = (
    "message channel closed",
    "extension context invalidated",
    "receiving end does not exist",
)


class ErrorKind(str, Enum):
    AUTH = "AuthError"
    RATE_LIMITED = "RateLimited"
    UNSUPPORTED = "Unsupported"
    NETWORK = "NetworkError"
    TRANSIENT = "Transient"
    CACHE_INVALID = "CacheInvalid"
    CHANNEL_UNAVAILABLE = "ChannelUnavailable"

    @property
    def retryable(self) -> bool:
        """Whether a caller may retry a failure of this kind."""
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.TRANSIENT)


def kind_for_status(status: int) -> ErrorKind:
    """Map a non-2xx HTTP status to an error kind."""
    if status in (401, 403):
        return ErrorKind.AUTH
    if status == 429:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.TRANSIENT


def classify_message(message: str) -> ErrorKind:
    """Best-effort error kind for a failure that only survived as text.

    Failures crossing the channel are plain strings, so the kind is
    recovered from the wording the adapters use.
    """
    lowered = message.lower()
    if "rate limit" in lowered:
        return ErrorKind.RATE_LIMITED
    if any(marker in lowered for marker in CHANNEL_CLOSED_MARKERS):
        return ErrorKind.CHANNEL_UNAVAILABLE
    if "api key" in lowered:
        return ErrorKind.AUTH
    if "unsupported" in lowered:
        return ErrorKind.UNSUPPORTED
    if "timeout" in lowered or "timed out" in lowered or "network" in lowered:
        return ErrorKind.NETWORK
    return ErrorKind.TRANSIENT


class DualSubError(Exception):
    """Base exception for dualsub."""


class ConfigurationError(DualSubError):
    """Invalid or incomplete configuration."""


class ProviderError(DualSubError):
    """A translation provider rejected or failed a request."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class ChannelUnavailableError(DualSubError):
    """The remote end of a channel is gone."""


class CacheInvalidError(DualSubError):
    """A cached value looks like a malformed or refused translation."""
