"""Timestamp helpers"""
from datetime import datetime, timezone
from typing import Optional


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_display_time(timestamp: Optional[str]) -> str:
    """Human readable rendering of an ISO timestamp, e.g. for email headers"""
    if not timestamp:
        timestamp = utc_now_iso()
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%b %d, %Y, %H:%M:%S UTC")
