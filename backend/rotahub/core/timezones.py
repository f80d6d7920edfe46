from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from rotahub.core.config import settings


def reference_tz() -> ZoneInfo:
    return ZoneInfo(settings.REFERENCE_TIMEZONE or "UTC")


def utcnow() -> datetime:
    """System clock. Every public operation also accepts an explicit ``now``."""
    return datetime.now(timezone.utc)


def aware(dt: datetime) -> datetime:
    # naive datetimes in stored records are UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def local_date(dt: datetime) -> date:
    return aware(dt).astimezone(reference_tz()).date()


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=reference_tz())


def start_of_today(now: datetime) -> datetime:
    return start_of_day(local_date(now))


def end_of_day(d: date) -> datetime:
    """Exclusive end: midnight of the following day."""
    return start_of_day(d + timedelta(days=1))
