"""Shared pytest fixtures."""

from typing import Any

import pytest

from caseboard import AsyncMemoryFetcher, PollingCache
from caseboard import resources as res


@pytest.fixture
def threats() -> list[dict[str, Any]]:
    """Recent threats as served by /api/threats/recent."""
    return [
        {
            "id": 1,
            "title": "Phishing kit",
            "description": "Credential harvesting page",
            "severity": "low",
            "source": "OSINT",
            "confidence": 0.42,
            "threatType": "phishing",
            "isActive": True,
            "createdAt": "2024-05-01T11:30:00Z",
        },
        {
            "id": 2,
            "title": "Deepfake video",
            "description": "Synthetic CEO statement",
            "severity": "critical",
            "source": "Social media",
            "confidence": 0.97,
            "threatType": "deepfake",
            "isActive": True,
            "createdAt": "2024-05-01T11:58:30Z",
        },
        {
            "id": 3,
            "title": "Loader beacon",
            "description": "C2 traffic observed",
            "severity": "high",
            "source": "Network sensor",
            "confidence": 0.8,
            "threatType": "malware",
            "isActive": True,
            "createdAt": "2024-04-29T12:00:00Z",
        },
    ]


@pytest.fixture
def cases() -> list[dict[str, Any]]:
    """Case list as served by /api/cases."""
    return [
        {
            "id": 10,
            "name": "Operation Nightfall",
            "description": "Ransomware intrusion",
            "priority": "critical",
            "status": "active",
            "assignedTo": "J. Rivera",
            "progress": 65,
            "createdAt": "2024-04-20T08:00:00Z",
            "lastActivity": "2024-05-01T09:00:00Z",
        },
        {
            "id": 11,
            "name": "Closed matter",
            "description": "Archived",
            "priority": "low",
            "status": "closed",
            "assignedTo": "A. Chen",
            "progress": 100,
            "createdAt": "2024-03-01T08:00:00Z",
            "lastActivity": "2024-03-10T08:00:00Z",
        },
    ]


@pytest.fixture
def evidence() -> list[dict[str, Any]]:
    """Evidence items as served by /api/evidence."""
    return [
        {
            "id": 100 + i,
            "filename": f"item-{i}.png",
            "fileType": "image/png",
            "size": 2048 * (i + 1),
            "caseId": 10,
            "riskScore": i * 1.5,
            "analysisStatus": "completed",
            "createdAt": f"2024-05-01T0{i}:00:00Z",
        }
        for i in range(7)
    ]


@pytest.fixture
def ai_jobs() -> list[dict[str, Any]]:
    """AI jobs as served by /api/ai-jobs."""
    return [
        {
            "id": 1,
            "jobType": "network",
            "status": "running",
            "progress": 42,
            "itemsTotal": 2_500_000,
            "itemsProcessed": 1_050_000,
        },
        {
            "id": 2,
            "jobType": "deepfake",
            "status": "queued",
            "progress": 0,
            "itemsTotal": 12,
        },
    ]


@pytest.fixture
def dashboard_payload(
    cases: list[dict[str, Any]], threats: list[dict[str, Any]]
) -> dict[str, Any]:
    """Aggregate payload as served by /api/dashboard."""
    return {
        "stats": {
            "threatsDetected": 3,
            "evidenceFiles": 1284,
            "activeInvestigations": 1,
            "aiProgress": 21,
        },
        "activeCases": [cases[0]],
        "recentEvidence": [],
        "activeThreats": threats,
        "aiJobs": [],
        "user": {"name": "Dana Scully", "role": "lead_investigator"},
        "notifications": [{"id": 1, "title": "Backup done", "message": "ok"}],
    }


@pytest.fixture
def fetcher(
    threats: list[dict[str, Any]],
    cases: list[dict[str, Any]],
    evidence: list[dict[str, Any]],
    ai_jobs: list[dict[str, Any]],
    dashboard_payload: dict[str, Any],
) -> AsyncMemoryFetcher:
    """Memory fetcher serving every dashboard endpoint."""
    return AsyncMemoryFetcher(
        {
            res.THREATS: threats,
            res.CASES: cases,
            res.EVIDENCE: evidence,
            res.AI_JOBS: ai_jobs,
            res.DASHBOARD: dashboard_payload,
        }
    )


@pytest.fixture
async def cache(fetcher: AsyncMemoryFetcher):
    """PollingCache over the memory fetcher, closed after the test."""
    polling_cache = PollingCache(fetcher)
    yield polling_cache
    await polling_cache.aclose()
