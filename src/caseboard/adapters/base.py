"""Base adapter protocol for data fetch clients."""

from typing import Any, Protocol, runtime_checkable

from caseboard.types import ResourceKey


@runtime_checkable
class AsyncFetcher(Protocol):
    """Async read interface against the backend's GET endpoints.

    ``fetch`` returns the decoded body or raises a ``FetchError`` subclass.
    Cancelling the awaiting task aborts the request. Implementations must not
    touch any cache state.
    """

    async def fetch(self, key: ResourceKey) -> Any:
        """Read the resource identified by key."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        ...
