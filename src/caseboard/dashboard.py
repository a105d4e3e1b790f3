"""Aggregate dashboard view composed from widgets.

The dashboard owns layout only. All data comes from the polling cache via
its widgets; the live channel, when present, contributes nothing but the
connection indicator and toasts.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from caseboard import resources as res
from caseboard.live import ChannelState, LiveChannel
from caseboard.models import DashboardSnapshot
from caseboard.polling import PollingCache
from caseboard.types import ChannelMessage, Duration
from caseboard.widgets.views import (
    DEFAULT_WIDGETS,
    AIEnginesStatus,
    CasesList,
    EvidenceList,
    StatusCards,
    ThreatFeed,
    Widget,
    WidgetView,
)

logger = logging.getLogger(__name__)

MAX_TOASTS = 20

# Widget class -> name of the interval setting that drives it.
_WIDGET_INTERVALS: dict[type[Widget], str] = {
    StatusCards: "dashboard",
    ThreatFeed: "threats",
    AIEnginesStatus: "ai_jobs",
    EvidenceList: "evidence",
    CasesList: "cases",
}


@dataclass(frozen=True, slots=True)
class Toast:
    title: str
    description: str


@dataclass(frozen=True, slots=True)
class DashboardHeader:
    active_case_name: str
    user_name: str
    user_role: str
    notification_count: int
    active_cases: int
    threat_count: int


@dataclass(frozen=True, slots=True)
class DashboardView:
    header: DashboardHeader
    live: bool
    channel_state: ChannelState | None
    widgets: dict[str, WidgetView]  # keyed by Widget.name
    toasts: tuple[Toast, ...]


def default_widgets(intervals: Mapping[str, Duration] | None = None) -> list[Widget]:
    """One of each standard widget, with intervals taken from settings."""
    intervals = intervals or {}
    return [
        widget_cls(interval=intervals.get(_WIDGET_INTERVALS[widget_cls]))
        for widget_cls in DEFAULT_WIDGETS
    ]


def toast_for(message: ChannelMessage) -> Toast | None:
    """User-facing notice for push events worth interrupting the analyst."""
    data: dict[str, Any] = message.data if isinstance(message.data, dict) else {}
    if message.type == "case_created":
        return Toast(
            title="New Case Created",
            description=f'Case "{data.get("name", "")}" has been created.',
        )
    if message.type == "evidence_analyzed":
        return Toast(
            title="Evidence Analysis Complete",
            description=f'AI analysis completed for "{data.get("filename", "")}".',
        )
    return None


class Dashboard:
    """Lays out widgets and the connection indicator."""

    def __init__(self, widgets: Sequence[Widget] | None = None) -> None:
        self.widgets = list(widgets) if widgets is not None else default_widgets()
        names = [widget.name for widget in self.widgets]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate widget names: {', '.join(duplicates)}")
        self._cache: PollingCache | None = None
        self._channel: LiveChannel | None = None
        self._detach_channel: Callable[[], None] | None = None
        self._toasts: deque[Toast] = deque(maxlen=MAX_TOASTS)

    @property
    def live(self) -> bool:
        """True only while a live channel is wired in and connected."""
        return self._channel is not None and self._channel.is_connected

    def mount(self, cache: PollingCache, channel: LiveChannel | None = None) -> None:
        self._cache = cache
        for widget in self.widgets:
            widget.mount(cache)
        if channel is not None:
            self._channel = channel
            self._detach_channel = channel.on_message(self._on_message)

    def unmount(self) -> None:
        for widget in self.widgets:
            widget.unmount()
        if self._detach_channel is not None:
            self._detach_channel()
        self._detach_channel = None
        self._channel = None
        self._cache = None

    def drain_toasts(self) -> list[Toast]:
        toasts = list(self._toasts)
        self._toasts.clear()
        return toasts

    def render(self, now: datetime | None = None) -> DashboardView:
        now = now or datetime.now(timezone.utc)
        return DashboardView(
            header=self._header(),
            live=self.live,
            channel_state=self._channel.state if self._channel is not None else None,
            widgets={widget.name: widget.render(now) for widget in self.widgets},
            toasts=tuple(self._toasts),
        )

    def _header(self) -> DashboardHeader:
        value: Any = None
        if self._cache is not None:
            value = self._cache.get_snapshot(res.DASHBOARD).value
        snapshot = DashboardSnapshot.from_dict(value if isinstance(value, dict) else {})
        active_case_name = (
            snapshot.active_cases[0].name if snapshot.active_cases else "No Active Case"
        )
        return DashboardHeader(
            active_case_name=active_case_name,
            user_name=snapshot.user.name,
            user_role=snapshot.user.role,
            notification_count=sum(1 for n in snapshot.notifications if not n.is_read),
            active_cases=snapshot.stats.active_investigations,
            threat_count=snapshot.stats.threats_detected,
        )

    def _on_message(self, message: ChannelMessage) -> None:
        toast = toast_for(message)
        if toast is not None:
            logger.debug("Queued toast %r", toast.title)
            self._toasts.append(toast)
