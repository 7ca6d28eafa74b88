"""Utility functions for handling Docker API timestamps."""

import re
from datetime import datetime

# Docker reports fractional seconds with up to nanosecond precision
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_docker_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp from the Docker API.

    Fractional seconds beyond microsecond precision are truncated, and a
    trailing ``Z`` is read as UTC.

    Args:
        value: Timestamp string from an API payload

    Returns:
        Timezone-aware datetime, or None if the value is empty or malformed

    Example:
        >>> parse_docker_timestamp("2024-01-01T12:00:00.123456789Z")
        datetime.datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=datetime.timezone.utc)
    """
    if not value:
        return None

    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    normalized = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1)

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None

    # Go's zero time; the daemon sends it for tasks that never transitioned
    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def to_epoch_seconds(value: datetime) -> float:
    """Convert a timezone-aware datetime to whole epoch seconds.

    Sub-second precision is dropped, matching how Prometheus exporters
    conventionally report change times.
    """
    return float(int(value.timestamp() // 1))
