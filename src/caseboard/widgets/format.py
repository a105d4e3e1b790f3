"""Pure display formatters for dashboard widgets.

Every function here is deterministic for a given input; time-relative
helpers take ``now`` explicitly. Colors are palette tokens for the external
rendering layer, with ``"neutral"`` for anything unrecognised.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

from caseboard.models import AiAnalysisJob, Evidence

T = TypeVar("T")

NEUTRAL = "neutral"

SEVERITY_RANK: dict[str, int] = {
    "critical": 3,
    "high": 2,
    "medium": 1,
    "low": 0,
}
UNKNOWN_RANK = -1

_RANK_COLORS: dict[str, str] = {
    "critical": "error",
    "high": "warning",
    "medium": "accent",
    "low": "success",
}

_JOB_STATUS_COLORS: dict[str, str] = {
    "running": "success",
    "queued": "warning",
    "completed": "primary",
    "failed": "error",
}

_CASE_STATUS_COLORS: dict[str, str] = {
    "active": "success",
    "on-hold": "warning",
    "closed": NEUTRAL,
}

_JOB_NAMES: dict[str, str] = {
    "deepfake": "Deepfake Detection",
    "social_media": "Social Media Analysis",
    "network": "Network Anomaly Detection",
    "crypto": "Crypto Transaction Analysis",
}

_FILE_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def severity_rank(value: str | None) -> int:
    return SEVERITY_RANK.get((value or "").lower(), UNKNOWN_RANK)


def sort_by_severity(
    items: Iterable[T], key: Callable[[T], str | None] | None = None
) -> list[T]:
    """Stable sort, most severe first; unrecognised values go last."""
    get = key or (lambda item: item)  # type: ignore[assignment,return-value]
    return sorted(items, key=lambda item: -severity_rank(get(item)))


def severity_color(severity: str | None) -> str:
    return _RANK_COLORS.get((severity or "").lower(), NEUTRAL)


def priority_color(priority: str | None) -> str:
    """Cases use the same four-level scale as threat severity."""
    return severity_color(priority)


def job_status_color(status: str | None) -> str:
    return _JOB_STATUS_COLORS.get((status or "").lower(), NEUTRAL)


def case_status_color(status: str | None) -> str:
    return _CASE_STATUS_COLORS.get((status or "").lower(), NEUTRAL)


def risk_score_color(score: float | None) -> str:
    if score is None:
        return NEUTRAL
    if score >= 8:
        return "error"
    if score >= 6:
        return "warning"
    if score >= 4:
        return "accent"
    return "success"


def title_case_label(value: str | None) -> str:
    """'critical' -> 'Critical'."""
    if not value:
        return "Unknown"
    return value[0].upper() + value[1:]


def progress_percent(value: Any) -> int:
    """Clamp to a 0..100 integer for progress bars."""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if math.isnan(number):
        return 0
    return round(max(0.0, min(100.0, number)))


def percent(fraction: Any) -> str:
    """0.873 -> '87%'."""
    try:
        number = float(fraction)
    except (TypeError, ValueError, OverflowError):
        return "0%"
    if not math.isfinite(number * 100):
        return "0%"
    return f"{round(number * 100)}%"


def _elapsed_minutes(moment: datetime | None, now: datetime) -> int | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0, int((now - moment).total_seconds() // 60))


def time_ago(moment: datetime | None, now: datetime) -> str:
    """Fine-grained relative time for the threat feed."""
    minutes = _elapsed_minutes(moment, now)
    if minutes is None:
        return "unknown"
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def updated_ago(moment: datetime | None, now: datetime) -> str:
    """Case activity: hour granularity, 'Updated ...' phrasing."""
    minutes = _elapsed_minutes(moment, now)
    if minutes is None:
        return "No recent activity"
    hours = minutes // 60
    if hours < 1:
        return "Updated 1 hour ago"
    if hours < 24:
        return f"Updated {hours} hours ago"
    days = hours // 24
    return f"Updated {days} day{'' if days == 1 else 's'} ago"


def hours_ago(moment: datetime | None, now: datetime) -> str:
    """Evidence intake: hour granularity."""
    minutes = _elapsed_minutes(moment, now)
    if minutes is None:
        return "unknown"
    hours = minutes // 60
    if hours < 1:
        return "< 1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def format_file_size(size: int | None) -> str:
    if not size or size <= 0:
        return "0 Bytes"
    scaled = float(size)
    exponent = 0
    while scaled >= 1024 and exponent < len(_FILE_SIZE_UNITS) - 1:
        scaled /= 1024
        exponent += 1
    text = f"{scaled:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_FILE_SIZE_UNITS[exponent]}"


def job_display_name(job_type: str | None) -> str:
    if not job_type:
        return "Analysis Job"
    return _JOB_NAMES.get(job_type, job_type)


def job_stats(job: AiAnalysisJob) -> str:
    """Workload summary in the unit each engine deals in."""
    total = job.items_total
    if job.job_type == "network":
        return f"Processing: {total / 1_000_000:.1f}M packets"
    if job.job_type == "social_media":
        return f"Processing: {total / 1000:.1f}k posts"
    if job.job_type == "crypto":
        return f"Processing: {total / 1000:.1f}k transactions"
    return f"Processing: {total} files"


def analysis_description(evidence: Evidence) -> str:
    deepfake = evidence.ai_analysis_results.get("deepfake")
    if isinstance(deepfake, dict):
        if deepfake.get("isDeepfake"):
            confidence = percent(deepfake.get("confidence", 0))
            return f"AI-generated content detected with {confidence} confidence"
        return "Authentic content verified by AI analysis"

    status = evidence.analysis_status
    if status == "completed":
        return "Analysis completed - no anomalies detected"
    if status == "processing":
        return "AI analysis in progress..."
    if status == "failed":
        return "Analysis failed - manual review required"
    return "Pending AI analysis"
