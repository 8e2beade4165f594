from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time without tzinfo; every stored timestamp uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a client-supplied date or datetime ("2024-03-01", "...T10:00:00Z",
    "...+05:30"). Offsets are folded into UTC; values without one are taken
    as UTC already. Blank input gives None, garbage raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """'2024-03-01T10:00:00Z' style output for JSON, to the second."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def time_ago(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Dashboard feed label: "5 mins ago", "3 hours ago", "2 days ago"."""
    if dt is None:
        return ""
    seconds = max(int(((now or utcnow()) - _as_naive_utc(dt)).total_seconds()), 0)

    if seconds < 3600:
        return f"{seconds // 60} mins ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"
