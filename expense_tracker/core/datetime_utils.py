from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta, timezone

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")


def utc_now_iso() -> str:
    """Timestamp stored in created_at/updated_at columns, e.g. 2025-03-03T08:15:00.123Z."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_ymd(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_ymd(value: str) -> date:
    if not isinstance(value, str) or not _YMD_RE.match(value):
        raise ValueError(f"Invalid date format (YYYY-MM-DD): {value!r}")
    return datetime.strptime(value, "%Y-%m-%d").date()


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(value: str) -> tuple[int, int]:
    if not isinstance(value, str) or not _MONTH_KEY_RE.match(value):
        raise ValueError(f"Invalid month format (YYYY-MM): {value!r}")
    y, m = (int(x) for x in value.split("-"))
    if m < 1 or m > 12:
        raise ValueError(f"Invalid month: {value!r}")
    return y, m


def first_day_of_month(key: str) -> date:
    y, m = parse_month_key(key)
    return date(y, m, 1)


def last_day_of_month(key: str) -> date:
    y, m = parse_month_key(key)
    return date(y, m, calendar.monthrange(y, m)[1])


def shift_month(key: str, diff: int) -> str:
    y, m = parse_month_key(key)
    index = y * 12 + (m - 1) + diff
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def can_go_next(key: str, today: date) -> bool:
    # Zero-padded keys compare correctly as strings.
    return key < month_key(today)


def month_label(key: str) -> str:
    """'2025-03' -> 'March 2025'."""

    d = first_day_of_month(key)
    return f"{calendar.month_name[d.month]} {d.year}"


def week_start_monday(d: date) -> date:
    return d - timedelta(days=d.weekday())


def clamp_date(d: date, lo: date, hi: date) -> date:
    return min(max(d, lo), hi)


def weekday_short(d: date) -> str:
    return calendar.day_abbr[d.weekday()]


def pretty_date(d: date) -> str:
    """'Mar 3, 2025'."""

    return f"{calendar.month_abbr[d.month]} {d.day}, {d.year}"


def _range_label(start: date, end: date) -> str:
    left = f"{calendar.month_abbr[start.month]} {start.day}"
    if start == end:
        return left

    # Both ends fall in the same month once clipped.
    return f"{left} – {calendar.month_name[end.month]} {end.day}"


def clipped_week_range(monday: date, key: str) -> tuple[date, date]:
    """The Monday-Sunday week starting at ``monday``, restricted to month ``key``."""

    lo = first_day_of_month(key)
    hi = last_day_of_month(key)
    return clamp_date(monday, lo, hi), clamp_date(monday + timedelta(days=6), lo, hi)


def week_range_label_clipped(monday: date, key: str) -> str:
    start, end = clipped_week_range(monday, key)
    return _range_label(start, end)
