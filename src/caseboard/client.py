"""Dashboard client: wires fetcher, polling cache, live channel and widgets."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any

from caseboard.adapters.base import AsyncFetcher
from caseboard.adapters.http import AsyncHttpFetcher
from caseboard.config import Settings
from caseboard.dashboard import Dashboard, DashboardView, default_widgets
from caseboard.live import LiveChannel
from caseboard.polling import PollingCache
from caseboard.types import CacheEntry

logger = logging.getLogger(__name__)


class DashboardClient:
    """Async context manager running a live dashboard.

    Usage:
        async with DashboardClient(Settings.from_env()) as client:
            view = client.render()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        fetcher: AsyncFetcher | None = None,
        channel_factory: Callable[..., LiveChannel] = LiveChannel,
    ) -> None:
        self.settings = settings or Settings()
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self._channel_factory = channel_factory
        self.cache: PollingCache | None = None
        self.channel: LiveChannel | None = None
        self.dashboard: Dashboard | None = None

    async def __aenter__(self) -> DashboardClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def start(self) -> None:
        settings = self.settings
        if self._fetcher is None:
            self._fetcher = AsyncHttpFetcher(settings.base_url)
        self.cache = PollingCache(
            self._fetcher,
            timeout_factor=settings.timeout_factor,
            request_timeout=settings.request_timeout_ms,
        )
        if settings.live_url:
            self.channel = self._channel_factory(
                settings.live_url,
                self.cache,
                max_attempts=settings.max_reconnect_attempts,
            )
        else:
            logger.info("No live channel configured; relying on interval polling")

        self.dashboard = Dashboard(default_widgets(settings.intervals))
        self.dashboard.mount(self.cache, self.channel)
        if self.channel is not None:
            self.channel.connect()

    async def stop(self) -> None:
        if self.dashboard is not None:
            self.dashboard.unmount()
        if self.channel is not None:
            await self.channel.aclose()
        if self.cache is not None:
            await self.cache.aclose()
        if self._fetcher is not None and self._owns_fetcher:
            await self._fetcher.aclose()
            self._fetcher = None
        self.dashboard = None
        self.channel = None
        self.cache = None

    def render(self) -> DashboardView:
        if self.dashboard is None:
            raise RuntimeError("DashboardClient is not started")
        return self.dashboard.render()

    async def refresh(self) -> list[CacheEntry[Any]]:
        """Refetch every polled resource now and wait for the results."""
        if self.cache is None:
            raise RuntimeError("DashboardClient is not started")
        return list(await asyncio.gather(*self.cache.refresh_all()))
