"""Exception hierarchy for caseboard.

Fetch errors are absorbed by the polling cache and surfaced as
``CacheEntry.error``; they never reach widget rendering. Channel errors only
drive the reconnect state machine. Cancellation is plain
``asyncio.CancelledError`` and is never recorded on an entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from caseboard.types import ResourceKey


class CaseboardError(Exception):
    """Base exception for caseboard.

    All custom exceptions inherit from this class, allowing callers to
    catch every caseboard error with a single except clause.
    """


class ConfigurationError(CaseboardError):
    """Invalid settings (bad URL scheme, non-positive interval)."""


class FetchError(CaseboardError):
    """A read against a resource failed.

    Retried by the next scheduled tick; never retried faster.
    """

    def __init__(self, message: str, *, key: ResourceKey | None = None) -> None:
        super().__init__(message)
        self.key = key


class NetworkError(FetchError):
    """Connection-level failure, including the hard per-request timeout."""


class HttpError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(
        self, message: str, *, status: int, key: ResourceKey | None = None
    ) -> None:
        super().__init__(message, key=key)
        self.status = status

    @property
    def is_client_error(self) -> bool:
        """4xx responses indicate a permanent problem with the request."""
        return 400 <= self.status < 500


class ParseError(FetchError):
    """The response body could not be decoded.

    Indicates a contract mismatch between client and server.
    """


class ChannelError(CaseboardError):
    """The live channel failed to connect or dropped."""
