"""Expand an event's repeat settings into concrete occurrences.

Supported patterns are the fixed set the hub offers: daily, weekly, monthly and yearly
every N units, optionally pinned to a day of the month or to the Nth weekday of the
month ("2nd Tuesday"). This is not an RRULE engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterator

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta
from pydantic import Field, model_validator

from rotahub.core.config import settings
from rotahub.core.timezones import reference_tz
from rotahub.models.enums import RepeatEndType, RepeatType
from rotahub.schemas import WEEKDAYS, WEEKS_OF_MONTH, RecurrenceFields, parse

log = logging.getLogger("rotahub.recurrence")

_WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)


class RecurrenceSpec(RecurrenceFields):
    start_date: datetime
    end_date: datetime
    location: str = Field("", max_length=500)

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        if (
            self.repeat_type != RepeatType.NONE
            and self.repeat_end_type == RepeatEndType.ON
            and self.repeat_end_date is not None
            and self.repeat_end_date < self.start_date.date()
        ):
            raise ValueError("repeatEndDate must not be before the start date")
        return self


@dataclass(frozen=True)
class GeneratedOccurrence:
    starts_at: datetime
    ends_at: datetime
    location: str

    def to_record(self, event_id: str) -> dict[str, Any]:
        return {
            "eventId": event_id,
            "startsAt": self.starts_at.isoformat(),
            "endsAt": self.ends_at.isoformat(),
            "location": self.location,
        }


def nth_weekday(month: date, weekday: int, n: int) -> date | None:
    """Nth ``weekday`` (Monday=0) of ``month``'s month; ``n=-1`` is the last one. None if it doesn't exist."""
    wd = _WEEKDAYS[weekday]
    if n == -1:
        return month + relativedelta(day=31, weekday=wd(-1))
    day = month + relativedelta(day=1, weekday=wd(+n))
    return day if day.month == month.month else None


def _candidate_dates(spec: RecurrenceSpec, first: date) -> Iterator[date | None]:
    """Yield the k-th candidate date for k = 0, 1, 2, ...; None marks a skipped month."""
    step = spec.repeat_interval
    pinned_weekday = (
        (WEEKDAYS.index(spec.repeat_day_of_week), WEEKS_OF_MONTH[spec.repeat_week_of_month])
        if spec.repeat_week_of_month and spec.repeat_day_of_week
        else None
    )
    day_of_month = spec.repeat_day_of_month or first.day

    k = 0
    while True:
        if spec.repeat_type == RepeatType.DAILY:
            yield first + relativedelta(days=k * step)
        elif spec.repeat_type == RepeatType.WEEKLY:
            yield first + relativedelta(weeks=k * step)
        elif spec.repeat_type == RepeatType.MONTHLY:
            if pinned_weekday:
                yield nth_weekday(first + relativedelta(months=k * step, day=1), *pinned_weekday)
            else:
                # relativedelta clamps: Jan 31 + 1 month = Feb 28
                yield first + relativedelta(months=k * step, day=day_of_month)
        elif spec.repeat_type == RepeatType.YEARLY:
            if pinned_weekday:
                yield nth_weekday(first + relativedelta(years=k * step, day=1), *pinned_weekday)
            else:
                yield first + relativedelta(years=k * step, day=day_of_month)
        else:
            return
        k += 1


def generate_occurrences(spec: RecurrenceSpec | dict[str, Any], *, limit: int | None = None) -> list[GeneratedOccurrence]:
    """Materialise every instance of ``spec``, ordered by start time.

    Each instance keeps the first instance's wall-clock time (in the reference
    timezone) and duration. Generation stops at the end condition or after ``limit``
    instances (``settings.OCCURRENCE_LIMIT`` by default); hitting the limit is not an
    error, the prefix generated so far is returned.
    """
    if not isinstance(spec, RecurrenceSpec):
        spec = parse(RecurrenceSpec, spec)
    limit = limit or settings.OCCURRENCE_LIMIT

    tz = reference_tz()
    start = spec.start_date.astimezone(tz) if spec.start_date.tzinfo else spec.start_date.replace(tzinfo=tz)
    end = spec.end_date.astimezone(tz) if spec.end_date.tzinfo else spec.end_date.replace(tzinfo=tz)
    duration = end - start
    wall_clock = start.time().replace(tzinfo=None)

    if spec.repeat_type == RepeatType.NONE:
        return [GeneratedOccurrence(starts_at=start, ends_at=end, location=spec.location)]

    out: list[GeneratedOccurrence] = []
    # bounded even when most months are skipped ("5th Friday")
    max_steps = limit * 4
    for steps, day in enumerate(_candidate_dates(spec, start.date())):
        if steps >= max_steps:
            log.warning("recurrence expansion stopped after %s steps (%s generated)", steps, len(out))
            break
        if day is None or day < start.date():
            continue
        if spec.repeat_end_type == RepeatEndType.ON and day > spec.repeat_end_date:
            break
        if spec.repeat_end_type == RepeatEndType.AFTER and len(out) >= spec.repeat_count:
            break
        if len(out) >= limit:
            log.warning("recurrence expansion capped at %s occurrences", limit)
            break

        starts_at = datetime.combine(day, wall_clock, tzinfo=tz)
        out.append(GeneratedOccurrence(starts_at=starts_at, ends_at=starts_at + duration, location=spec.location))

    return out
