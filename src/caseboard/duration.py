"""Duration parsing utilities."""

import re

from caseboard.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
}


def parse_duration(duration: Duration) -> int:
    """Parse a duration string to milliseconds. Passthrough if already int."""
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, int):
        return duration

    match = _DURATION_PATTERN.match(duration.strip())
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]


def parse_interval(interval: Duration) -> int:
    """Parse a refresh interval, which must be strictly positive."""
    ms = parse_duration(interval)
    if ms <= 0:
        raise ValueError(f"Refresh interval must be positive, got {interval!r}")
    return ms
