"""Business-timezone helpers for scheduled follow-ups.

Follow-ups are stored as a calendar date plus an "HH:MM" wall-clock time
that always means Pacific Time, whatever the server or database zone.
Conversions go through zoneinfo so daylight-saving transitions are honored.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from lien_recovery.core.config import settings

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

END_OF_DAY = time(23, 59, 59, 999000)


@lru_cache(maxsize=4)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def business_tz() -> ZoneInfo:
    return _zone(settings.BUSINESS_TIMEZONE)


def parse_hhmm(value: str) -> time:
    """Parse a 24-hour "HH:MM" string. Raises ValueError when malformed."""
    match = _HHMM_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def to_business_instant(day: date, hhmm: str | None = None, *, default: time = time(0, 0)) -> datetime:
    """
    Convert a business-zone wall-clock (date + optional HH:MM) to an aware UTC datetime.

    Wall-clock times skipped by a spring-forward transition (e.g. 02:30 on
    the second Sunday of March) resolve with the pre-transition offset, as
    zoneinfo does for fold=0.
    """
    wall = parse_hhmm(hhmm) if hhmm else default
    local = datetime.combine(day, wall, tzinfo=business_tz())
    return local.astimezone(timezone.utc)


def end_of_business_day(day: date) -> datetime:
    return to_business_instant(day, default=END_OF_DAY)


def start_of_business_day(day: date) -> datetime:
    return to_business_instant(day)


def to_business_local(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(business_tz())


def business_date(instant: datetime) -> date:
    return to_business_local(instant).date()


def format_business_hhmm(instant: datetime) -> str:
    return to_business_local(instant).strftime("%H:%M")
