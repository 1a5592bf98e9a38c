"""Consecutive-day practice streaks."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

Timestamp = Union[str, datetime, date]

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC.

    Fractional seconds of any length are padded or cut to microseconds;
    hosted backends emit anything from one to six digits.
    """

    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def to_date(value: Timestamp) -> date:
    """Strip the time of day from ``value``, converting aware times to local time."""

    if isinstance(value, str):
        value = parse_timestamp(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def current_streak(timestamps: Iterable[Timestamp], today: Optional[date] = None) -> int:
    """Count consecutive practice days ending today or yesterday.

    Only the current run is counted: the first missing day ends it, and a
    history whose latest day is older than yesterday has no streak at all.
    """

    today = today or date.today()
    days = sorted({to_date(ts) for ts in timestamps}, reverse=True)
    if not days:
        return 0

    most_recent = days[0]
    if most_recent not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    previous = most_recent
    for day in days[1:]:
        if day != previous - timedelta(days=1):
            break
        streak += 1
        previous = day
    return streak
