"""Tests for memory fetcher."""

import asyncio

import pytest

from caseboard import AsyncFetcher, AsyncMemoryFetcher, HttpError, NetworkError, ResourceKey

KEY = ResourceKey.of("/api/cases")


class TestAsyncMemoryFetcher:
    """Tests for async AsyncMemoryFetcher."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(AsyncMemoryFetcher(), AsyncFetcher)

    @pytest.mark.asyncio
    async def test_fetch_returns_record(self) -> None:
        """Test that a stored record is returned."""
        fetcher = AsyncMemoryFetcher({KEY: [{"id": 1}]})
        assert await fetcher.fetch(KEY) == [{"id": 1}]
        assert fetcher.calls[KEY] == 1

    @pytest.mark.asyncio
    async def test_missing_key_is_404(self) -> None:
        """Test that an unknown key raises HttpError 404."""
        fetcher = AsyncMemoryFetcher()
        with pytest.raises(HttpError) as exc_info:
            await fetcher.fetch(KEY)
        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_stored_exception_is_raised(self) -> None:
        fetcher = AsyncMemoryFetcher({KEY: NetworkError("down", key=KEY)})
        with pytest.raises(NetworkError, match="down"):
            await fetcher.fetch(KEY)
        assert fetcher.active[KEY] == 0

    @pytest.mark.asyncio
    async def test_set_and_delete(self) -> None:
        """Test replacing and removing records."""
        fetcher = AsyncMemoryFetcher({KEY: "old"})
        fetcher.set(KEY, "new")
        assert await fetcher.fetch(KEY) == "new"

        fetcher.delete(KEY)
        fetcher.delete(KEY)
        with pytest.raises(HttpError):
            await fetcher.fetch(KEY)

    @pytest.mark.asyncio
    async def test_tracks_concurrency(self) -> None:
        """Test that overlapping fetches are counted."""
        fetcher = AsyncMemoryFetcher({KEY: 1}, latency=0.01)
        await asyncio.gather(fetcher.fetch(KEY), fetcher.fetch(KEY))
        assert fetcher.calls[KEY] == 2
        assert fetcher.max_active[KEY] == 2
        assert fetcher.active[KEY] == 0

    @pytest.mark.asyncio
    async def test_aclose(self) -> None:
        await AsyncMemoryFetcher().aclose()
