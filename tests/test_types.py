"""Tests for core types."""

import pytest

from caseboard import CacheEntry, NetworkError, ResourceKey


class TestResourceKey:
    """Tests for ResourceKey identity and URL rendering."""

    def test_structural_equality(self) -> None:
        a = ResourceKey.of("/api/notifications", userId=1, unread=True)
        b = ResourceKey.of("/api/notifications", unread="True", userId="1")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_params_are_different_keys(self) -> None:
        assert ResourceKey.of("/api/cases", status="active") != ResourceKey.of("/api/cases")

    def test_url_is_deterministic(self) -> None:
        key = ResourceKey.of("/api/threats", limit=10, active="true")
        assert key.url == "/api/threats?active=true&limit=10"
        assert key.url == key.url
        assert str(key) == key.url

    def test_url_without_params(self) -> None:
        assert ResourceKey.of("/api/cases").url == "/api/cases"

    def test_none_params_are_dropped(self) -> None:
        assert ResourceKey.of("/api/cases", status=None) == ResourceKey.of("/api/cases")

    def test_usable_as_dict_key(self) -> None:
        seen = {ResourceKey.of("/api/cases"): 1}
        assert seen[ResourceKey("/api/cases")] == 1


class TestCacheEntry:
    """Tests for CacheEntry snapshot helpers."""

    def test_empty_entry(self) -> None:
        entry: CacheEntry[object] = CacheEntry(key=ResourceKey("/api/cases"))
        assert not entry.has_value
        assert not entry.is_stale
        assert entry.age_ms(5000) is None

    def test_value_with_error_is_stale(self) -> None:
        key = ResourceKey("/api/cases")
        entry = CacheEntry(
            key=key, value=[], error=NetworkError("down", key=key), fetched_at=1000
        )
        assert entry.has_value
        assert entry.is_stale

    def test_age(self) -> None:
        entry = CacheEntry(key=ResourceKey("/api/cases"), value=[], fetched_at=1000)
        assert entry.age_ms(4500) == 3500
        assert entry.age_ms(500) == 0

    def test_snapshot_is_immutable(self) -> None:
        entry: CacheEntry[object] = CacheEntry(key=ResourceKey("/api/cases"))
        with pytest.raises(AttributeError):
            entry.value = 1  # type: ignore[misc]
