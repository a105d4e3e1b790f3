"""HTTP fetch client backed by httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from caseboard.errors import HttpError, NetworkError, ParseError
from caseboard.types import ResourceKey

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are accepted by json.loads but are not JSON.
    raise ValueError(f"non-standard JSON constant {name}")


class AsyncHttpFetcher:
    """Async JSON reader for the dashboard's GET endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    async def fetch(self, key: ResourceKey) -> Any:
        """GET the key's URL and decode the JSON body."""
        try:
            response = await self._client.get(key.url)
        except httpx.TransportError as e:
            raise NetworkError(f"GET {key.url} failed: {e}", key=key) from e

        if not response.is_success:
            try:
                error = response.json().get("error", "Request failed")
            except (ValueError, AttributeError):
                error = f"HTTP {response.status_code}"
            raise HttpError(
                f"GET {key.url}: {error}", status=response.status_code, key=key
            )

        try:
            return response.json(parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            logger.warning("Malformed body from %s: %s", key.url, e)
            raise ParseError(f"GET {key.url}: malformed JSON body", key=key) from e

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
