"""Resource keys and default refresh cadences for the dashboard endpoints."""

from caseboard.types import ResourceKey

DASHBOARD = ResourceKey.of("/api/dashboard")
CASES = ResourceKey.of("/api/cases")
EVIDENCE = ResourceKey.of("/api/evidence")
THREATS = ResourceKey.of("/api/threats/recent")
AI_JOBS = ResourceKey.of("/api/ai-jobs")

# Faster-changing data gets shorter intervals.
DEFAULT_INTERVALS: dict[str, str] = {
    "dashboard": "30s",
    "cases": "30s",
    "evidence": "30s",
    "threats": "15s",
    "ai_jobs": "10s",
}
