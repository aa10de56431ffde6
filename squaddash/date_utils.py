"""Shared date normalization helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATE_SEARCH_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_MIN_DATE_KEY = "0000-00-00"
_MAX_DATE_KEY = "9999-99-99"


def today_key() -> str:
    """Return today's local date as YYYY-MM-DD."""
    return date.today().isoformat()


def to_date_key(value: Any) -> str:
    """Format a date/datetime (or pass through a YYYY-MM-DD string) as a date key."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        token = value.strip()
        if _DATE_ONLY_RE.match(token):
            return token
        match = _ISO_DATE_SEARCH_RE.search(token)
        return match.group(1) if match else ""
    return ""


def first_iso_date(text: str) -> str | None:
    """Return the first embedded YYYY-MM-DD token, e.g. from '2026-02-14/15'."""
    match = _ISO_DATE_SEARCH_RE.search(text or "")
    return match.group(1) if match else None


def midnight_timestamp(date_key: str) -> str:
    return f"{date_key}T00:00:00Z"


def date_range_bounds(start: str | None, end: str | None) -> tuple[str, str]:
    """Open-ended range bounds that compare correctly against date keys."""
    return (start or _MIN_DATE_KEY, end or _MAX_DATE_KEY)


def _file_created_datetime(stats: Any) -> datetime | None:
    # st_birthtime is missing on most Linux filesystems; st_ctime stands in
    for attr in ("st_birthtime", "st_ctime"):
        value = getattr(stats, attr, None)
        if isinstance(value, (int, float)) and value > 0:
            return datetime.fromtimestamp(float(value), timezone.utc)
    return None


def file_created_date(path: Path) -> str:
    """Return the file's creation date as YYYY-MM-DD (empty when unavailable)."""
    try:
        stats = path.stat()
    except OSError:
        return ""
    created_dt = _file_created_datetime(stats)
    if not created_dt:
        return ""
    return created_dt.astimezone().date().isoformat()
