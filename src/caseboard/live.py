"""Live channel adapter - push events that trigger targeted cache refreshes.

The channel is a latency optimisation layered over interval polling. It
never feeds data into the cache directly, only invalidations, so widgets
stay correct when it is absent, reconnecting or failed.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from collections.abc import AsyncIterable, Awaitable, Callable, Mapping
from contextlib import AbstractAsyncContextManager, suppress
from enum import Enum
from typing import Any

import websockets

from caseboard import resources
from caseboard.errors import ChannelError
from caseboard.polling import PollingCache
from caseboard.types import ChannelMessage, ResourceKey

logger = logging.getLogger(__name__)

Frame = str | bytes
ConnectFactory = Callable[[str], AbstractAsyncContextManager[AsyncIterable[Frame]]]
StateListener = Callable[["ChannelState"], None]
MessageListener = Callable[[ChannelMessage], None]

MAX_ATTEMPTS = 5
BASE_DELAY_MS = 1000
MAX_DELAY_MS = 30_000


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


_TRANSITIONS: dict[ChannelState, frozenset[ChannelState]] = {
    ChannelState.DISCONNECTED: frozenset({ChannelState.CONNECTING}),
    ChannelState.CONNECTING: frozenset(
        {
            ChannelState.CONNECTED,
            ChannelState.RECONNECTING,
            ChannelState.FAILED,
            ChannelState.DISCONNECTED,
        }
    ),
    ChannelState.CONNECTED: frozenset(
        {ChannelState.RECONNECTING, ChannelState.FAILED, ChannelState.DISCONNECTED}
    ),
    ChannelState.RECONNECTING: frozenset(
        {ChannelState.CONNECTING, ChannelState.DISCONNECTED}
    ),
    ChannelState.FAILED: frozenset(),
}

# Message type -> keys to invalidate. Types not listed here are ignored.
DEFAULT_ROUTES: dict[str, tuple[ResourceKey, ...]] = {
    "connection_established": (),
    "case_created": (resources.CASES, resources.DASHBOARD),
    "case_updated": (resources.CASES, resources.DASHBOARD),
    "evidence_analyzed": (resources.EVIDENCE, resources.DASHBOARD),
    "threats_updated": (resources.THREATS, resources.DASHBOARD),
    "ai_jobs_updated": (resources.AI_JOBS, resources.DASHBOARD),
    "auto_analysis_complete": (
        resources.EVIDENCE,
        resources.THREATS,
        resources.DASHBOARD,
    ),
    "batch_analysis_complete": (
        resources.EVIDENCE,
        resources.THREATS,
        resources.DASHBOARD,
    ),
    "anomaly_analysis_complete": (
        resources.EVIDENCE,
        resources.THREATS,
        resources.DASHBOARD,
    ),
    "report_generated": (resources.CASES,),
}


def backoff_delay(
    attempt: int,
    *,
    base_ms: int = BASE_DELAY_MS,
    cap_ms: int = MAX_DELAY_MS,
) -> int:
    """Delay in ms before the given reconnect attempt: base * 2^attempt, capped."""
    if attempt < 0:
        raise ValueError("attempt must be non-negative")
    return min(base_ms * 2**attempt, cap_ms)


def parse_message(raw: Frame) -> ChannelMessage:
    """Decode one JSON frame into a ChannelMessage.

    Raises:
        ValueError: if the frame is not a JSON object with a string type
    """
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    message_type = payload.get("type")
    if not isinstance(message_type, str):
        raise ValueError("message has no string 'type'")
    timestamp = payload.get("timestamp")
    return ChannelMessage(
        type=message_type,
        data=payload.get("data"),
        timestamp=str(timestamp) if timestamp is not None else None,
    )


_default_connect: ConnectFactory = functools.partial(
    websockets.connect, ping_interval=20, ping_timeout=20, open_timeout=10
)


class LiveChannel:
    """Reconnecting push connection that invalidates polling cache keys."""

    def __init__(
        self,
        url: str,
        cache: PollingCache,
        *,
        routes: Mapping[str, tuple[ResourceKey, ...]] | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        connect: ConnectFactory | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
        self._url = url
        self._cache = cache
        self._routes = dict(DEFAULT_ROUTES if routes is None else routes)
        self._max_attempts = max_attempts
        self._connect = connect or _default_connect
        self._sleep = sleep
        self._state = ChannelState.DISCONNECTED
        self._attempt = 0
        self._last_error: ChannelError | None = None
        self._task: asyncio.Task[None] | None = None
        self._state_listeners: list[StateListener] = []
        self._message_listeners: list[MessageListener] = []

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    @property
    def attempt(self) -> int:
        """Reconnect attempts since the last successful connection."""
        return self._attempt

    @property
    def last_error(self) -> ChannelError | None:
        return self._last_error

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._state_listeners.append(listener)
        return functools.partial(_discard, self._state_listeners, listener)

    def on_message(self, listener: MessageListener) -> Callable[[], None]:
        """Register a listener for recognised messages."""
        self._message_listeners.append(listener)
        return functools.partial(_discard, self._message_listeners, listener)

    def connect(self) -> None:
        """Start the connection loop in the background."""
        if self._state is ChannelState.FAILED:
            logger.warning("Live channel %s has failed; not reconnecting", self._url)
            return
        if self._task is not None and not self._task.done():
            return
        self._attempt = 0
        self._task = asyncio.create_task(self._run(), name=f"caseboard-live:{self._url}")

    async def aclose(self) -> None:
        """Stop the connection loop. A failed channel stays failed."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if self._state is not ChannelState.FAILED:
            self._transition(ChannelState.DISCONNECTED)

    def dispatch(self, raw: Frame) -> ChannelMessage | None:
        """Handle one incoming frame.

        Malformed frames are dropped. Recognised types invalidate their
        routed keys; unknown types are ignored.
        """
        try:
            message = parse_message(raw)
        except (ValueError, RecursionError) as e:
            logger.warning("Dropping malformed live frame: %s", e)
            return None

        keys = self._routes.get(message.type)
        if keys is None:
            logger.debug("Ignoring unknown live message type %r", message.type)
            return message

        for key in keys:
            self._cache.invalidate(key)
        for listener in list(self._message_listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Live message listener raised on %r", message.type)
        return message

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            self._transition(ChannelState.CONNECTING)
            try:
                async with self._connect(self._url) as socket:
                    self._transition(ChannelState.CONNECTED)
                    self._attempt = 0
                    self._last_error = None
                    async for frame in socket:
                        self.dispatch(frame)
                self._last_error = ChannelError(f"Live channel {self._url} closed")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = ChannelError(f"Live channel {self._url} error: {e}")
                error.__cause__ = e
                self._last_error = error
                logger.warning("Live channel %s dropped: %s", self._url, e)

            if self._attempt >= self._max_attempts:
                logger.error(
                    "Live channel %s failed after %d reconnect attempts",
                    self._url,
                    self._attempt,
                )
                self._transition(ChannelState.FAILED)
                return

            self._attempt += 1
            delay = backoff_delay(self._attempt)
            self._transition(ChannelState.RECONNECTING)
            logger.info(
                "Reconnecting to %s in %dms (attempt %d/%d)",
                self._url,
                delay,
                self._attempt,
                self._max_attempts,
            )
            await self._sleep(delay / 1000)

    def _transition(self, new: ChannelState) -> None:
        old = self._state
        if new is old:
            return
        if new not in _TRANSITIONS[old]:
            raise RuntimeError(f"Invalid live channel transition {old.value} -> {new.value}")
        self._state = new
        logger.info("Live channel %s: %s -> %s", self._url, old.value, new.value)
        for listener in list(self._state_listeners):
            try:
                listener(new)
            except Exception:
                logger.exception("Live state listener raised")


def _discard(listeners: list[Any], listener: Any) -> None:
    if listener in listeners:
        listeners.remove(listener)


__all__ = [
    "DEFAULT_ROUTES",
    "ChannelState",
    "LiveChannel",
    "backoff_delay",
    "parse_message",
]
