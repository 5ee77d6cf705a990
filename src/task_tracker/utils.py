"""Provide utility helpers for timestamps."""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        if not isinstance(value, str):
            value = str(value)
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        # If a naive timestamp slips in, assume UTC to avoid crashes.
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        return None


def normalize_due_date(value: Optional[str]) -> Optional[str]:
    """Turn a user-entered due date into an ISO-8601 timestamp.

    Accepts a bare ``YYYY-MM-DD`` date (taken as midnight UTC) or a full
    timestamp.  Empty input means "no due date".  Raises :class:`ValueError`
    for anything unparsable.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        parsed = _parse_iso(raw)
        if parsed is None:
            raise ValueError(f"Invalid due date: {value!r}") from None
        return parsed.isoformat()
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).isoformat()
