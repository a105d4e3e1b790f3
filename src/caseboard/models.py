"""Read-only server entities, decoded leniently from the JSON API.

The client never mutates these. Every optional field has a default so that
rendering code never fails on a partial record; unknown enumeration values
are kept verbatim.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

CASE_STATUSES = ("active", "closed", "on-hold")
PRIORITIES = ("low", "medium", "high", "critical")
SEVERITIES = PRIORITIES
ANALYSIS_STATUSES = ("pending", "processing", "completed", "failed")
JOB_STATUSES = ("queued", "running", "completed", "failed")
NOTIFICATION_TYPES = ("info", "warning", "error", "success")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def _str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


@dataclass(frozen=True, slots=True)
class Case:
    id: int
    name: str = ""
    description: str = ""
    priority: str = "medium"
    status: str = "active"
    assigned_to: str = ""
    progress: int = 0
    created_at: datetime | None = None
    last_activity: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Case:
        return cls(
            id=_int(data.get("id")),
            name=_str(data.get("name")),
            description=_str(data.get("description")),
            priority=_str(data.get("priority"), "medium"),
            status=_str(data.get("status"), "active"),
            assigned_to=_str(data.get("assignedTo")),
            progress=_int(data.get("progress")),
            created_at=parse_timestamp(data.get("createdAt")),
            last_activity=parse_timestamp(data.get("lastActivity")),
        )


@dataclass(frozen=True, slots=True)
class Evidence:
    id: int
    filename: str = ""
    file_type: str = ""
    size: int = 0
    hash: str | None = None
    case_id: int | None = None
    risk_score: float = 0.0
    analysis_status: str = "pending"
    ai_analysis_results: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Evidence:
        case_id = data.get("caseId")
        return cls(
            id=_int(data.get("id")),
            filename=_str(data.get("filename")),
            file_type=_str(data.get("fileType")),
            size=_int(data.get("size")),
            hash=data.get("hash"),
            case_id=_int(case_id) if case_id is not None else None,
            risk_score=_float(data.get("riskScore")),
            analysis_status=_str(data.get("analysisStatus"), "pending"),
            ai_analysis_results=_dict(data.get("aiAnalysisResults")),
            created_at=parse_timestamp(data.get("createdAt")),
            processed_at=parse_timestamp(data.get("processedAt")),
        )


@dataclass(frozen=True, slots=True)
class Threat:
    id: int
    title: str = ""
    description: str = ""
    severity: str = "low"
    source: str = ""
    confidence: float = 0.0
    threat_type: str = ""
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Threat:
        return cls(
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            description=_str(data.get("description")),
            severity=_str(data.get("severity"), "low"),
            source=_str(data.get("source")),
            confidence=_float(data.get("confidence")),
            threat_type=_str(data.get("threatType")),
            is_active=bool(data.get("isActive", True)),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class AiAnalysisJob:
    id: int
    job_type: str = ""
    status: str = "queued"
    progress: int = 0
    items_total: int = 0
    items_processed: int = 0
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AiAnalysisJob:
        return cls(
            id=_int(data.get("id")),
            job_type=_str(data.get("jobType")),
            status=_str(data.get("status"), "queued"),
            progress=_int(data.get("progress")),
            items_total=_int(data.get("itemsTotal")),
            items_processed=_int(data.get("itemsProcessed")),
            error_message=data.get("errorMessage"),
            created_at=parse_timestamp(data.get("createdAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
        )


@dataclass(frozen=True, slots=True)
class Notification:
    id: int
    title: str = ""
    message: str = ""
    type: str = "info"
    is_read: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Notification:
        return cls(
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            message=_str(data.get("message")),
            type=_str(data.get("type"), "info"),
            is_read=bool(data.get("isRead", False)),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class User:
    name: str = "Analyst"
    role: str = "analyst"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            name=_str(data.get("name"), "Analyst"),
            role=_str(data.get("role"), "analyst"),
        )


@dataclass(frozen=True, slots=True)
class DashboardStats:
    threats_detected: int = 0
    evidence_files: int = 0
    active_investigations: int = 0
    ai_progress: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DashboardStats:
        return cls(
            threats_detected=_int(data.get("threatsDetected")),
            evidence_files=_int(data.get("evidenceFiles")),
            active_investigations=_int(data.get("activeInvestigations")),
            ai_progress=_int(data.get("aiProgress")),
        )


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """The aggregate ``/api/dashboard`` payload."""

    stats: DashboardStats = field(default_factory=DashboardStats)
    active_cases: tuple[Case, ...] = ()
    recent_evidence: tuple[Evidence, ...] = ()
    active_threats: tuple[Threat, ...] = ()
    ai_jobs: tuple[AiAnalysisJob, ...] = ()
    user: User = field(default_factory=User)
    notifications: tuple[Notification, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DashboardSnapshot:
        return cls(
            stats=DashboardStats.from_dict(_dict(data.get("stats"))),
            active_cases=parse_list(Case, data.get("activeCases")),
            recent_evidence=parse_list(Evidence, data.get("recentEvidence")),
            active_threats=parse_list(Threat, data.get("activeThreats")),
            ai_jobs=parse_list(AiAnalysisJob, data.get("aiJobs")),
            user=User.from_dict(_dict(data.get("user"))),
            notifications=parse_list(Notification, data.get("notifications")),
        )


def parse_list(model: Any, items: Any) -> tuple[Any, ...]:
    """Decode a JSON array with model.from_dict, skipping non-object items."""
    return tuple(model.from_dict(item) for item in _list(items) if isinstance(item, dict))
