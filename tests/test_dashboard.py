"""Tests for the aggregate dashboard view."""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from caseboard import ChannelMessage, ChannelState, Dashboard, LiveChannel, PollingCache
from caseboard import resources as res
from caseboard.dashboard import MAX_TOASTS, Toast, default_widgets, toast_for
from caseboard.widgets import (
    AIEnginesStatus,
    CasesList,
    EvidenceList,
    StatusCards,
    ThreatFeed,
    ViewState,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@asynccontextmanager
async def open_socket(url: str):
    async def frames():
        await asyncio.Event().wait()
        yield ""

    yield frames()


def frame(message_type: str, **data: object) -> str:
    return json.dumps({"type": message_type, "data": data})


class TestDefaultWidgets:
    def test_one_of_each(self) -> None:
        widgets = default_widgets()
        assert [type(w) for w in widgets] == [
            StatusCards,
            ThreatFeed,
            AIEnginesStatus,
            EvidenceList,
            CasesList,
        ]

    def test_names_are_class_names(self) -> None:
        assert [w.name for w in default_widgets()] == [
            "StatusCards",
            "ThreatFeed",
            "AIEnginesStatus",
            "EvidenceList",
            "CasesList",
        ]

    def test_intervals_from_settings(self) -> None:
        widgets = {type(w): w for w in default_widgets({"threats": 5000, "cases": "1m"})}
        assert widgets[ThreatFeed].interval == 5000
        assert widgets[CasesList].interval == "1m"
        assert widgets[AIEnginesStatus].interval == "10s"


class TestToasts:
    def test_case_created(self) -> None:
        toast = toast_for(ChannelMessage(type="case_created", data={"name": "Op Dawn"}))
        assert toast == Toast(
            title="New Case Created", description='Case "Op Dawn" has been created.'
        )

    def test_evidence_analyzed(self) -> None:
        toast = toast_for(
            ChannelMessage(type="evidence_analyzed", data={"filename": "cctv.mp4"})
        )
        assert toast == Toast(
            title="Evidence Analysis Complete",
            description='AI analysis completed for "cctv.mp4".',
        )

    def test_other_types_are_silent(self) -> None:
        assert toast_for(ChannelMessage(type="threats_updated")) is None
        assert toast_for(ChannelMessage(type="case_created", data="oops")) is not None


class TestDashboard:
    async def test_render_without_channel(self, cache: PollingCache) -> None:
        dashboard = Dashboard()
        dashboard.mount(cache)
        await asyncio.gather(*cache.refresh_all())

        view = dashboard.render(NOW)

        assert view.live is False
        assert view.channel_state is None
        assert set(view.widgets) == {
            "StatusCards",
            "ThreatFeed",
            "AIEnginesStatus",
            "EvidenceList",
            "CasesList",
        }
        assert all(w.state is ViewState.POPULATED for w in view.widgets.values())
        header = view.header
        assert header.active_case_name == "Operation Nightfall"
        assert header.user_name == "Dana Scully"
        assert header.user_role == "lead_investigator"
        assert header.notification_count == 1
        assert header.active_cases == 1
        assert header.threat_count == 3

    async def test_header_before_data(self, cache: PollingCache) -> None:
        dashboard = Dashboard()
        dashboard.mount(cache)
        header = dashboard.render(NOW).header
        assert header.active_case_name == "No Active Case"
        assert header.user_name == "Analyst"
        assert header.notification_count == 0

    async def test_live_indicator_follows_channel(self, cache: PollingCache) -> None:
        channel = LiveChannel("ws://localhost:5000/ws", cache, connect=open_socket)
        dashboard = Dashboard()
        dashboard.mount(cache, channel)
        assert dashboard.render(NOW).live is False
        assert dashboard.render(NOW).channel_state is ChannelState.DISCONNECTED

        channel.connect()
        for _ in range(10):
            await asyncio.sleep(0)
        assert dashboard.live
        assert dashboard.render(NOW).channel_state is ChannelState.CONNECTED

        await channel.aclose()
        assert dashboard.live is False

    async def test_channel_messages_become_toasts(self, cache: PollingCache) -> None:
        channel = LiveChannel("ws://localhost:5000/ws", cache, connect=open_socket)
        dashboard = Dashboard()
        dashboard.mount(cache, channel)

        channel.dispatch(frame("case_created", name="Op Dawn"))
        channel.dispatch(frame("threats_updated"))
        channel.dispatch(frame("mystery_event", name="x"))

        assert [t.title for t in dashboard.render(NOW).toasts] == ["New Case Created"]
        assert len(dashboard.drain_toasts()) == 1
        assert dashboard.drain_toasts() == []

    async def test_toasts_are_capped(self, cache: PollingCache) -> None:
        channel = LiveChannel("ws://localhost:5000/ws", cache, connect=open_socket)
        dashboard = Dashboard()
        dashboard.mount(cache, channel)
        for n in range(MAX_TOASTS + 5):
            channel.dispatch(frame("evidence_analyzed", filename=f"{n}.png"))

        toasts = dashboard.drain_toasts()
        assert len(toasts) == MAX_TOASTS
        assert toasts[-1].description == f'AI analysis completed for "{MAX_TOASTS + 4}.png".'

    async def test_unmount(self, cache: PollingCache) -> None:
        channel = LiveChannel("ws://localhost:5000/ws", cache, connect=open_socket)
        dashboard = Dashboard()
        dashboard.mount(cache, channel)
        dashboard.unmount()

        channel.dispatch(frame("case_created", name="Late"))
        assert cache.keys() == []
        assert dashboard.drain_toasts() == []
        assert dashboard.render(NOW).channel_state is None

    async def test_widget_data_ignores_channel_state(
        self, cache: PollingCache
    ) -> None:
        dashboard = Dashboard()
        dashboard.mount(cache)
        await cache.invalidate(res.CASES)
        view = dashboard.render(NOW).widgets["CasesList"]
        assert view.state is ViewState.POPULATED

    async def test_notification_count_is_unread_only(
        self, cache: PollingCache, fetcher, dashboard_payload: dict
    ) -> None:
        dashboard_payload["notifications"] = [
            {"id": 1, "isRead": True},
            {"id": 2, "isRead": False},
            {"id": 3},
        ]
        fetcher.set(res.DASHBOARD, dashboard_payload)
        dashboard = Dashboard()
        dashboard.mount(cache)
        await cache.invalidate(res.DASHBOARD)
        assert dashboard.render(NOW).header.notification_count == 2

    def test_duplicate_widget_names_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate widget names: ThreatFeed"):
            Dashboard([ThreatFeed(), ThreatFeed(interval=5000)])

    async def test_named_widgets_render_separately(self, cache: PollingCache) -> None:
        dashboard = Dashboard(
            [
                ThreatFeed(name="threats-fast", interval=1000),
                ThreatFeed(name="threats-slow"),
            ]
        )
        dashboard.mount(cache)
        await cache.invalidate(res.THREATS)

        view = dashboard.render(NOW)

        assert set(view.widgets) == {"threats-fast", "threats-slow"}
        assert view.widgets["threats-fast"].rows == view.widgets["threats-slow"].rows
        assert len(view.widgets["threats-slow"].rows) == 3
