"""Configuration for the dashboard client.

Values come from ``CASEBOARD_*`` environment variables. Malformed numbers and
durations log a warning and fall back to the default instead of crashing;
structurally invalid settings (bad URL scheme, non-positive interval) raise
ConfigurationError.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

from caseboard.duration import parse_duration
from caseboard.errors import ConfigurationError
from caseboard.resources import DEFAULT_INTERVALS

logger = logging.getLogger(__name__)

ENV_PREFIX = "CASEBOARD_"

_HTTP_SCHEMES = frozenset({"http", "https"})
_LIVE_SCHEMES = frozenset({"ws", "wss"})


# =============================================================================
# Environment Variable Parsing Helpers
# =============================================================================


def _parse_int_env(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(
            "Invalid integer value for %s: %r, using default %d", name, value, default
        )
        return default


def _parse_float_env(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(
            "Invalid float value for %s: %r, using default %s", name, value, default
        )
        return default


def _parse_duration_env(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    """Accepts "10s"-style durations or plain milliseconds."""
    value = env.get(name)
    if value is None or not value.strip():
        return default
    value = value.strip()
    try:
        return int(value) if value.isdigit() else parse_duration(value)
    except ValueError:
        logger.warning(
            "Invalid duration for %s: %r, using default %s", name, value, default
        )
        return default


def _default_intervals() -> dict[str, int]:
    return {name: parse_duration(value) for name, value in DEFAULT_INTERVALS.items()}


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Dashboard client settings.

    Intervals are in milliseconds, keyed by resource name (``dashboard``,
    ``cases``, ``evidence``, ``threats``, ``ai_jobs``).
    """

    base_url: str = "http://localhost:5000"
    live_url: str | None = None
    intervals: dict[str, int] = field(default_factory=_default_intervals)
    timeout_factor: float = 3.0
    request_timeout_ms: int | None = None
    max_reconnect_attempts: int = 5

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if urlparse(self.base_url).scheme not in _HTTP_SCHEMES:
            raise ConfigurationError(f"base_url must be http(s): {self.base_url!r}")
        if self.live_url is not None and urlparse(self.live_url).scheme not in _LIVE_SCHEMES:
            raise ConfigurationError(f"live_url must be ws(s): {self.live_url!r}")
        for name, interval in self.intervals.items():
            if interval <= 0:
                raise ConfigurationError(f"Interval for {name} must be positive")
        if self.timeout_factor <= 0:
            raise ConfigurationError("timeout_factor must be positive")
        if self.request_timeout_ms is not None and self.request_timeout_ms <= 0:
            raise ConfigurationError("request_timeout_ms must be positive")
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError("max_reconnect_attempts must not be negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``CASEBOARD_*`` variables."""
        env = os.environ if environ is None else environ
        intervals = _default_intervals()
        for name, default in intervals.items():
            value = _parse_duration_env(env, f"{ENV_PREFIX}INTERVAL_{name.upper()}", default)
            intervals[name] = default if value is None else value

        return cls(
            base_url=env.get(f"{ENV_PREFIX}BASE_URL", "http://localhost:5000"),
            live_url=env.get(f"{ENV_PREFIX}LIVE_URL") or None,
            intervals=intervals,
            timeout_factor=_parse_float_env(env, f"{ENV_PREFIX}TIMEOUT_FACTOR", 3.0),
            request_timeout_ms=_parse_duration_env(
                env, f"{ENV_PREFIX}REQUEST_TIMEOUT", None
            ),
            max_reconnect_attempts=_parse_int_env(
                env, f"{ENV_PREFIX}MAX_RECONNECT_ATTEMPTS", 5
            ),
        )
