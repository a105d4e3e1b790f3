"""Data fetch adapters for caseboard."""

from caseboard.adapters.base import AsyncFetcher
from caseboard.adapters.http import AsyncHttpFetcher
from caseboard.adapters.memory import AsyncMemoryFetcher

__all__ = [
    "AsyncFetcher",
    "AsyncHttpFetcher",
    "AsyncMemoryFetcher",
]
