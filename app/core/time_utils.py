from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def utc_cutoff(*, hours: float = 0, seconds: float = 0) -> datetime:
    """Return the UTC instant that lies ``hours`` + ``seconds`` in the past."""
    return utc_now() - timedelta(hours=hours, seconds=seconds)


def isoformat_z(value: datetime) -> str:
    """Format a datetime as an ISO-8601 string with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def coerce_datetime(value: Any) -> datetime | None:
    """Best-effort conversion of stored or remote timestamps to aware UTC datetimes.

    SQLite hands timezone-aware values back as strings, and remote records carry
    ISO-8601 text that may end in ``Z``. Unparseable input yields ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
