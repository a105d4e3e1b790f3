"""In-memory fetch adapter."""

import asyncio
from collections import Counter
from typing import Any

from caseboard.errors import HttpError
from caseboard.types import ResourceKey


class AsyncMemoryFetcher:
    """Serves resources from a dict, with optional simulated latency.

    A stored ``BaseException`` instance is raised instead of returned, which
    lets callers script failures. Unknown keys raise ``HttpError`` 404.
    """

    def __init__(
        self,
        records: dict[ResourceKey, Any] | None = None,
        *,
        latency: float = 0.0,
    ) -> None:
        self._records: dict[ResourceKey, Any] = dict(records or {})
        self._latency = latency
        self.calls: Counter[ResourceKey] = Counter()
        self.active: Counter[ResourceKey] = Counter()
        self.max_active: Counter[ResourceKey] = Counter()

    def set(self, key: ResourceKey, value: Any) -> None:
        """Replace the stored value (or exception) for key."""
        self._records[key] = value

    def delete(self, key: ResourceKey) -> None:
        self._records.pop(key, None)

    async def fetch(self, key: ResourceKey) -> Any:
        """Return the stored record, after the configured latency."""
        self.calls[key] += 1
        self.active[key] += 1
        self.max_active[key] = max(self.max_active[key], self.active[key])
        try:
            if self._latency:
                await asyncio.sleep(self._latency)
            if key not in self._records:
                raise HttpError(f"GET {key.url}: Not found", status=404, key=key)
            record = self._records[key]
            if isinstance(record, BaseException):
                raise record
            return record
        finally:
            self.active[key] -= 1

    async def aclose(self) -> None:
        """Nothing to release for memory."""
        pass
