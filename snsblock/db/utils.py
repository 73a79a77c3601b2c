"""Timestamp helpers shared by the state backends and the handshake codec."""

import logging
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


def ensure_timezone_aware_iso(dt: datetime) -> str:
    """
    Convert datetime to ISO string, assuming UTC for naive values.

    Example:
        >>> from datetime import datetime
        >>> ensure_timezone_aware_iso(datetime(2024, 1, 15, 10, 30))
        '2024-01-15T10:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat()


def parse_timezone_aware_iso(value: str | None) -> datetime | None:
    """
    Parse an ISO string written by ensure_timezone_aware_iso().

    Naive values are taken to be UTC. Returns None for empty or
    unparseable input so callers can apply their own fallback.

    Example:
        >>> parse_timezone_aware_iso("2024-01-15T10:30:00")
        datetime.datetime(2024, 1, 15, 10, 30, tzinfo=datetime.timezone.utc)
    """
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable timestamp {value!r}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def utc_now() -> datetime:
    return datetime.now(UTC)
