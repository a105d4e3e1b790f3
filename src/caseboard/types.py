"""Core types for the caseboard live-state layer."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from urllib.parse import urlencode

T = TypeVar("T")

# Duration type alias
Duration = str | int  # "30s", "500ms", "1m" or milliseconds


@dataclass(frozen=True, slots=True)
class ResourceKey:
    """Identifies one pollable data source: a path plus its query params."""

    path: str
    params: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, path: str, **params: Any) -> ResourceKey:
        """Build a key with params normalised to sorted string pairs."""
        pairs = tuple(
            sorted((name, str(value)) for name, value in params.items() if value is not None)
        )
        return cls(path=path, params=pairs)

    @property
    def url(self) -> str:
        """Relative URL for this key, identical across calls."""
        if not self.params:
            return self.path
        return f"{self.path}?{urlencode(self.params)}"

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """Snapshot of the cached state for one resource key."""

    key: ResourceKey
    value: T | None = None
    error: BaseException | None = None
    fetched_at: int | None = None  # Unix timestamp ms of the last success
    in_flight: bool = False
    subscriber_count: int = 0
    refresh_interval_ms: int = 0

    @property
    def has_value(self) -> bool:
        return self.fetched_at is not None

    @property
    def is_stale(self) -> bool:
        """A value is present but the latest attempt failed."""
        return self.has_value and self.error is not None

    def age_ms(self, now: int | None = None) -> int | None:
        """Milliseconds since the last successful fetch."""
        if self.fetched_at is None:
            return None
        if now is None:
            now = int(time.time() * 1000)
        return max(0, now - self.fetched_at)


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """A decoded server-to-client frame from the live channel."""

    type: str
    data: Any = None
    timestamp: str | None = None
