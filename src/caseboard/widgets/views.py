"""Dashboard widgets: cache subscriptions rendered into plain view models.

A widget owns its subscription handles and nothing else. ``render`` reads
the current snapshot from the cache and is otherwise a pure function, so the
same snapshot and ``now`` always give the same view.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from caseboard import resources as res
from caseboard.models import (
    AiAnalysisJob,
    Case,
    DashboardSnapshot,
    Evidence,
    Threat,
    parse_list,
)
from caseboard.polling import PollingCache, SubscriptionHandle
from caseboard.types import CacheEntry, Duration, ResourceKey
from caseboard.widgets import format as fmt

Row = dict[str, Any]


class ViewState(str, Enum):
    LOADING = "loading"  # nothing fetched yet
    POPULATED = "populated"
    EMPTY = "empty"  # fetched, zero items
    ERROR = "error"  # failed with no prior value


@dataclass(frozen=True, slots=True)
class WidgetView:
    title: str
    state: ViewState
    rows: tuple[Row, ...] = ()
    summary: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    stale: bool = False
    fetched_at: int | None = None


class Widget:
    """Base class for a widget bound to one resource key."""

    title: ClassVar[str] = ""
    default_key: ClassVar[ResourceKey]
    default_interval: ClassVar[Duration] = "30s"

    def __init__(
        self,
        *,
        key: ResourceKey | None = None,
        interval: Duration | None = None,
        name: str | None = None,
    ) -> None:
        self.name = name or type(self).__name__
        self.key = key or self.default_key
        self.interval = interval if interval is not None else self.default_interval
        self._cache: PollingCache | None = None
        self._handles: list[SubscriptionHandle] = []
        self._listeners: list[Callable[[Widget], None]] = []

    @property
    def resources(self) -> tuple[tuple[ResourceKey, Duration], ...]:
        """The keys this widget polls and how often."""
        return ((self.key, self.interval),)

    @property
    def mounted(self) -> bool:
        return self._cache is not None

    def mount(self, cache: PollingCache) -> None:
        if self._cache is not None:
            raise RuntimeError(f"{type(self).__name__} is already mounted")
        self._cache = cache
        for key, interval in self.resources:
            self._handles.append(cache.subscribe(key, interval, self._changed))

    def unmount(self) -> None:
        if self._cache is None:
            return
        for handle in self._handles:
            self._cache.unsubscribe(handle)
        self._handles.clear()
        self._cache = None

    def on_update(self, listener: Callable[[Widget], None]) -> Callable[[], None]:
        """Call listener whenever new data for this widget lands."""
        self._listeners.append(listener)
        return functools.partial(self._remove_listener, listener)

    def render(self, now: datetime | None = None) -> WidgetView:
        if self._cache is None:
            entry: CacheEntry[Any] = CacheEntry(key=self.key)
        else:
            entry = self._cache.get_snapshot(self.key)
        return self.view(entry, now or datetime.now(timezone.utc))

    def view(self, entry: CacheEntry[Any], now: datetime) -> WidgetView:
        """Map one cache snapshot to a view model."""
        error = str(entry.error) if entry.error is not None else None
        if not entry.has_value:
            if error is not None:
                return WidgetView(title=self.title, state=ViewState.ERROR, error=error)
            return WidgetView(title=self.title, state=ViewState.LOADING)

        rows, summary = self.build(entry.value, now)
        return WidgetView(
            title=self.title,
            state=ViewState.POPULATED if rows else ViewState.EMPTY,
            rows=tuple(rows),
            summary=summary,
            error=error,
            stale=error is not None,
            fetched_at=entry.fetched_at,
        )

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        raise NotImplementedError

    def _changed(self, entry: CacheEntry[Any]) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _remove_listener(self, listener: Callable[[Widget], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


class ThreatFeed(Widget):
    title = "Real-time Threat Intelligence"
    default_key = res.THREATS
    default_interval = "15s"

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        threats = fmt.sort_by_severity(
            parse_list(Threat, value), key=lambda threat: threat.severity
        )
        rows = [
            {
                "id": threat.id,
                "title": threat.title,
                "description": threat.description,
                "severity": fmt.title_case_label(threat.severity),
                "color": fmt.severity_color(threat.severity),
                "source": threat.source,
                "time_ago": fmt.time_ago(threat.created_at, now),
                "confidence": fmt.percent(threat.confidence),
            }
            for threat in threats
        ]
        return rows, {"count": len(rows)}


class CasesList(Widget):
    title = "Active Investigations"
    default_key = res.CASES
    default_interval = "30s"

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        cases = parse_list(Case, value)
        active = [case for case in cases if case.status == "active"]
        rows = [
            {
                "id": case.id,
                "name": case.name,
                "description": case.description,
                "priority": fmt.title_case_label(case.priority),
                "color": fmt.priority_color(case.priority),
                "status_color": fmt.case_status_color(case.status),
                "assigned_to": case.assigned_to or "Unassigned",
                "updated": fmt.updated_ago(case.last_activity, now),
                "progress": fmt.progress_percent(case.progress),
            }
            for case in active
        ]
        return rows, {"total": len(cases), "active": len(active)}


class EvidenceList(Widget):
    title = "Recent Evidence"
    default_key = res.EVIDENCE
    default_interval = "30s"
    limit = 5

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        items = parse_list(Evidence, value)
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        recent = sorted(items, key=lambda e: e.created_at or oldest, reverse=True)
        rows = [
            {
                "id": evidence.id,
                "filename": evidence.filename,
                "size": fmt.format_file_size(evidence.size),
                "risk_score": evidence.risk_score,
                "risk_color": fmt.risk_score_color(evidence.risk_score),
                "analysis": fmt.analysis_description(evidence),
                "received": fmt.hours_ago(evidence.created_at, now),
            }
            for evidence in recent[: self.limit]
        ]
        return rows, {"total": len(items)}


class AIEnginesStatus(Widget):
    title = "AI Analysis Engines"
    default_key = res.AI_JOBS
    default_interval = "10s"

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        jobs = parse_list(AiAnalysisJob, value)
        rows = []
        for job in jobs:
            progress = fmt.progress_percent(job.progress)
            rows.append(
                {
                    "id": job.id,
                    "name": fmt.job_display_name(job.job_type),
                    "status": job.status,
                    "color": fmt.job_status_color(job.status),
                    "progress": progress,
                    "stats": fmt.job_stats(job),
                    "progress_text": f"{progress}% complete",
                }
            )
        running = sum(1 for job in jobs if job.status == "running")
        return rows, {"running": running}


class StatusCards(Widget):
    title = "Overview"
    default_key = res.DASHBOARD
    default_interval = "30s"

    def build(self, value: Any, now: datetime) -> tuple[list[Row], dict[str, Any]]:
        snapshot = DashboardSnapshot.from_dict(value if isinstance(value, dict) else {})
        stats = snapshot.stats
        rows = [
            {
                "title": "AI Threats Detected",
                "value": str(stats.threats_detected),
                "color": "error",
            },
            {
                "title": "Evidence Files",
                "value": f"{stats.evidence_files:,}",
                "color": "primary",
            },
            {
                "title": "Active Investigations",
                "value": str(stats.active_investigations),
                "color": "accent",
            },
            {
                "title": "AI Analysis Progress",
                "value": f"{fmt.progress_percent(stats.ai_progress)}%",
                "color": "success",
            },
        ]
        return rows, {"snapshot": snapshot}


DEFAULT_WIDGETS: tuple[type[Widget], ...] = (
    StatusCards,
    ThreatFeed,
    AIEnginesStatus,
    EvidenceList,
    CasesList,
)
