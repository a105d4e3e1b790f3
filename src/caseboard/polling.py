"""Polling cache - scheduling and de-duplication authority for periodic reads.

This module provides:
- subscribe(): Reference-counted interest in a key, with its own timer
- unsubscribe(): Drop interest; the last one out stops polling and evicts
- invalidate(): Out-of-band refresh that joins any fetch already in flight
- get_snapshot(): Synchronous read of the current entry state
- refresh_all(), aclose(): Lifecycle helpers
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from caseboard.adapters.base import AsyncFetcher
from caseboard.duration import parse_interval
from caseboard.errors import FetchError, NetworkError
from caseboard.types import CacheEntry, Duration, ResourceKey

logger = logging.getLogger(__name__)

Subscriber = Callable[[CacheEntry[Any]], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class SubscriptionHandle:
    """Returned by subscribe(); pass it back to unsubscribe()."""

    key: ResourceKey
    id: int


@dataclass
class _Entry:
    """Mutable per-key state. Only the owning PollingCache touches it."""

    key: ResourceKey
    interval_ms: int
    subscribers: dict[int, Subscriber] = field(default_factory=dict)
    value: Any = None
    error: FetchError | None = None
    fetched_at: int | None = None
    in_flight: asyncio.Task[CacheEntry[Any]] | None = None
    timer: asyncio.Task[None] | None = None

    def snapshot(self) -> CacheEntry[Any]:
        return CacheEntry(
            key=self.key,
            value=self.value,
            error=self.error,
            fetched_at=self.fetched_at,
            in_flight=self.in_flight is not None,
            subscriber_count=len(self.subscribers),
            refresh_interval_ms=self.interval_ms,
        )


class PollingCache:
    """Keeps one auto-refreshing entry per subscribed resource key.

    All state lives on a single event loop. The "at most one fetch in flight
    per key" rule is enforced by checking and setting ``in_flight`` within
    one synchronous turn, so no lock is needed.
    """

    def __init__(
        self,
        fetcher: AsyncFetcher,
        *,
        timeout_factor: float = 3,
        request_timeout: Duration | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if timeout_factor <= 0:
            raise ValueError("timeout_factor must be positive")
        self._fetcher = fetcher
        self._timeout_factor = timeout_factor
        self._request_timeout_ms = (
            parse_interval(request_timeout) if request_timeout is not None else None
        )
        self._clock = clock or _now_ms
        self._entries: dict[ResourceKey, _Entry] = {}
        self._ids = itertools.count(1)
        self._closed = False

    def subscribe(
        self,
        key: ResourceKey,
        interval: Duration,
        callback: Subscriber,
    ) -> SubscriptionHandle:
        """Register interest in key.

        The first subscriber triggers an immediate fetch and arms a repeating
        timer. Later subscribers are called back synchronously with the
        current snapshot if anything is known yet; the interval of an
        existing entry is not changed.

        Args:
            key: Resource to poll
            interval: Refresh cadence ("10s" or milliseconds)
            callback: Called with a CacheEntry after every fetch outcome

        Returns:
            Handle for unsubscribe()
        """
        if self._closed:
            raise RuntimeError("PollingCache is closed")
        interval_ms = parse_interval(interval)
        handle = SubscriptionHandle(key=key, id=next(self._ids))

        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(key=key, interval_ms=interval_ms)
            entry.subscribers[handle.id] = callback
            self._entries[key] = entry
            self._start_fetch(entry)
            entry.timer = asyncio.create_task(
                self._run_timer(entry), name=f"caseboard-timer:{key}"
            )
            logger.debug("Polling %s every %dms", key, interval_ms)
            return handle

        if interval_ms != entry.interval_ms:
            logger.debug(
                "Keeping %dms interval for %s (requested %dms)",
                entry.interval_ms,
                key,
                interval_ms,
            )
        entry.subscribers[handle.id] = callback
        if entry.fetched_at is not None or entry.error is not None:
            self._notify_one(entry.key, callback, entry.snapshot())
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Drop a subscription. Safe to call more than once."""
        entry = self._entries.get(handle.key)
        if entry is None or entry.subscribers.pop(handle.id, None) is None:
            return
        if not entry.subscribers:
            self._evict(entry)

    def invalidate(self, key: ResourceKey) -> asyncio.Future[CacheEntry[Any]] | None:
        """Force a fetch for key regardless of timer phase.

        If a fetch is already in flight the caller joins it instead of
        starting a second one. Each caller gets its own shielded future, so
        cancelling one waiter leaves the fetch running for the others; only
        unsubscribe() and aclose() cancel the fetch itself. Keys with no
        subscribers are not polled, so this returns None for them.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("No subscribers for %s, nothing to invalidate", key)
            return None
        return asyncio.shield(self._start_fetch(entry))

    def refresh_all(self) -> list[asyncio.Future[CacheEntry[Any]]]:
        """Invalidate every live key."""
        return [
            asyncio.shield(self._start_fetch(entry))
            for entry in list(self._entries.values())
        ]

    def get_snapshot(self, key: ResourceKey) -> CacheEntry[Any]:
        """Current state for key; an empty entry if nobody subscribes to it."""
        entry = self._entries.get(key)
        if entry is None:
            return CacheEntry(key=key)
        return entry.snapshot()

    def keys(self) -> list[ResourceKey]:
        return list(self._entries)

    async def aclose(self) -> None:
        """Cancel all timers and fetches and drop every entry."""
        self._closed = True
        tasks: list[asyncio.Task[Any]] = []
        for entry in list(self._entries.values()):
            tasks.extend(self._evict(entry))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _evict(self, entry: _Entry) -> list[asyncio.Task[Any]]:
        if self._entries.get(entry.key) is entry:
            del self._entries[entry.key]
        cancelled: list[asyncio.Task[Any]] = []
        for task in (entry.timer, entry.in_flight):
            if task is not None and not task.done():
                task.cancel()
                cancelled.append(task)
        entry.timer = None
        entry.in_flight = None
        logger.debug("Evicted %s", entry.key)
        return cancelled

    def _start_fetch(self, entry: _Entry) -> asyncio.Task[CacheEntry[Any]]:
        if entry.in_flight is not None:
            return entry.in_flight
        task = asyncio.create_task(self._fetch(entry), name=f"caseboard-fetch:{entry.key}")
        entry.in_flight = task
        return task

    def _timeout_for(self, entry: _Entry) -> float:
        if self._request_timeout_ms is not None:
            return self._request_timeout_ms / 1000
        return entry.interval_ms * self._timeout_factor / 1000

    async def _fetch(self, entry: _Entry) -> CacheEntry[Any]:
        key = entry.key
        timeout = self._timeout_for(entry)
        value: Any = None
        error: FetchError | None = None
        try:
            value = await asyncio.wait_for(self._fetcher.fetch(key), timeout)
        except asyncio.TimeoutError:
            error = NetworkError(f"GET {key.url} timed out after {timeout:g}s", key=key)
        except FetchError as e:
            error = e
        except Exception as e:
            logger.exception("Unexpected error fetching %s", key)
            error = FetchError(f"GET {key.url}: {e}", key=key)
            error.__cause__ = e
        finally:
            if entry.in_flight is asyncio.current_task():
                entry.in_flight = None

        if self._entries.get(key) is not entry:
            logger.debug("Discarding result for evicted key %s", key)
            return entry.snapshot()

        if error is None:
            entry.value = value
            entry.fetched_at = self._clock()
            entry.error = None
        else:
            # Keep the last good value.
            entry.error = error
            logger.warning("Fetch failed for %s: %s", key, error)
        self._notify(entry)
        return entry.snapshot()

    async def _run_timer(self, entry: _Entry) -> None:
        loop = asyncio.get_running_loop()
        interval = entry.interval_ms / 1000
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += interval
            if entry.in_flight is not None:
                logger.debug("Skipping tick for %s, fetch already in flight", entry.key)
                continue
            self._start_fetch(entry)

    def _notify(self, entry: _Entry) -> None:
        snapshot = entry.snapshot()
        for callback in list(entry.subscribers.values()):
            self._notify_one(entry.key, callback, snapshot)

    @staticmethod
    def _notify_one(
        key: ResourceKey, callback: Subscriber, snapshot: CacheEntry[Any]
    ) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("Subscriber callback for %s raised", key)


def create_cache(
    *,
    fetcher: AsyncFetcher,
    timeout_factor: float = 3,
    request_timeout: Duration | None = None,
) -> PollingCache:
    """Create a polling cache over a fetch adapter.

    Args:
        fetcher: Data fetch client
        timeout_factor: Hard request timeout as a multiple of the interval
        request_timeout: Absolute timeout overriding the factor

    Returns:
        PollingCache with subscribe, unsubscribe, invalidate, get_snapshot
    """
    return PollingCache(
        fetcher,
        timeout_factor=timeout_factor,
        request_timeout=request_timeout,
    )


__all__ = ["PollingCache", "SubscriptionHandle", "create_cache"]
