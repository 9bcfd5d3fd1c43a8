"""Date helpers shared by filter extraction and the query planner.

All datetimes are timezone-aware UTC; day-level bounds cover the whole day
(``00:00:00`` to ``23:59:59.999999``).
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

DateSpan = Tuple[date, date]

_RELATIVE_RE = re.compile(
    r"\b(this week|last week|this month|last month|yesterday|today)\b",
    re.IGNORECASE,
)

_MONTHS = (
    "january february march april may june july august september october "
    "november december jan feb mar apr jun jul aug sep sept oct nov dec"
).split()
_WEEKDAYS = (
    "monday tuesday wednesday thursday friday saturday sunday "
    "mon tue tues wed thu thurs fri sat sun"
).split()
_DATE_WORDS = {"today", "yesterday", "tonight", "tomorrow", "week", "weeks", "month", "months", "year", "years"}

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_ORDINAL_RE = re.compile(r"^\d{1,2}(st|nd|rd|th)$")
_NUMERIC_DATE_RE = re.compile(r"^\d{1,4}[/.-]\d{1,2}([/.-]\d{1,4})?$")


def resolve_relative_date(phrase: str, today: date) -> Optional[DateSpan]:
    """Map a relative date phrase onto an inclusive ``(from, to)`` span.

    * "today" / "yesterday": that single day
    * "this week": the last 7 days up to today
    * "last week": 14 to 7 days ago
    * "this month": the 1st of the current month up to today
    * "last month": the whole previous calendar month
    """
    p = " ".join(phrase.lower().split())
    if p == "today":
        return today, today
    if p == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if p == "this week":
        return today - timedelta(days=7), today
    if p == "last week":
        return today - timedelta(days=14), today - timedelta(days=7)
    if p == "this month":
        return today.replace(day=1), today
    if p == "last month":
        last_day = today.replace(day=1) - timedelta(days=1)
        return last_day.replace(day=1), last_day
    return None


def find_relative_date(text: str, today: date) -> Optional[Tuple[str, DateSpan]]:
    """Return the first relative date phrase in ``text`` and its span."""
    m = _RELATIVE_RE.search(text or "")
    if not m:
        return None
    span = resolve_relative_date(m.group(1), today)
    if span is None:  # pragma: no cover - regex and resolver agree
        return None
    return m.group(0), span


def looks_like_date(term: str) -> bool:
    """True for strings that name a date or a relative time period."""
    t = " ".join((term or "").lower().split())
    if not t:
        return False
    if _ISO_RE.match(t) or _NUMERIC_DATE_RE.match(t) or _ORDINAL_RE.match(t):
        return True
    if _RELATIVE_RE.search(t):
        return True
    words = t.replace(",", " ").split()
    return all(
        w in _MONTHS or w in _WEEKDAYS or w in _DATE_WORDS or w in {"last", "this", "next", "past"}
        or _ORDINAL_RE.match(w) or w.isdigit()
        for w in words
    ) and any(w in _MONTHS or w in _WEEKDAYS or w in _DATE_WORDS for w in words)


def parse_iso_date(value: object) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (optionally followed by a time part) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not _ISO_RE.match(s):
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def named_range_start(name: str, now: datetime) -> Optional[datetime]:
    """Start of a named UI range (today/week/month/year) relative to ``now``."""
    if name == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if name == "week":
        return now - timedelta(days=7)
    if name == "month":
        return now - timedelta(days=30)
    if name == "year":
        return now - timedelta(days=365)
    return None


__all__ = [
    "DateSpan",
    "resolve_relative_date",
    "find_relative_date",
    "looks_like_date",
    "parse_iso_date",
    "start_of_day",
    "end_of_day",
    "named_range_start",
]
