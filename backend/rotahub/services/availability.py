from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable

from rotahub.core.timezones import aware, end_of_day, local_date, reference_tz, start_of_day
from rotahub.models.enums import Collection, ConflictType
from rotahub.schemas import WEEKDAYS, Holiday, Occurrence, load_many
from rotahub.services.assignments import ScheduleIndex, resolve_scope
from rotahub.services.store import RecordStore

log = logging.getLogger("rotahub.availability")


@dataclass(frozen=True)
class Conflict:
    type: ConflictType
    contact_id: str
    contact_name: str
    # holiday
    holiday_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    # double booking
    rota_id: str | None = None
    rota_role: str | None = None
    event_id: str | None = None
    event_name: str | None = None
    occurrence_id: str | None = None
    occurrence_time: datetime | None = None
    # declared unavailability
    weekday: str | None = None
    part_of_day: str | None = None

    def as_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


def holiday_interval(h: Holiday) -> tuple[datetime, datetime]:
    """Half-open interval covered by an away period. All-day periods span whole local days."""
    if h.all_day:
        first = h.start_date.date() if h.start_date.tzinfo is None else local_date(h.start_date)
        last = h.end_date.date() if h.end_date.tzinfo is None else local_date(h.end_date)
        return start_of_day(first), end_of_day(last)
    return aware(h.start_date), aware(h.end_date)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def part_of_day(dt: datetime) -> str:
    hour = aware(dt).astimezone(reference_tz()).hour
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def _contact_name(index: ScheduleIndex, contact_id: str) -> str:
    c = index.contacts.get(contact_id)
    return c.display_name if c is not None else "Unknown"


def find_conflicts(
    index: ScheduleIndex,
    holidays: Iterable[Holiday],
    contact_ids: Iterable[str],
    occurrence_id: str,
    exclude_rota_id: str | None = None,
) -> list[Conflict]:
    """Reasons the given contacts should not serve at ``occurrence_id``.

    Double booking is checked at calendar-date level: serving anywhere else on the same
    day counts, even if the times don't overlap.
    """
    target = index.occurrences.get(occurrence_id)
    if target is None:
        log.warning("availability check for missing occurrence id=%s", occurrence_id)
        return []

    wanted = list(dict.fromkeys(c for c in contact_ids if c))
    wanted_set = set(wanted)
    conflicts: list[Conflict] = []

    # 1) away periods
    by_contact: dict[str, list[Holiday]] = {}
    for h in holidays:
        if h.contact_id in wanted_set:
            by_contact.setdefault(h.contact_id, []).append(h)
    for cid in wanted:
        for h in sorted(by_contact.get(cid, []), key=lambda x: holiday_interval(x)[0]):
            h_start, h_end = holiday_interval(h)
            if overlaps(target.starts_at, target.ends_at, h_start, h_end):
                conflicts.append(
                    Conflict(
                        type=ConflictType.HOLIDAY,
                        contact_id=cid,
                        contact_name=_contact_name(index, cid),
                        holiday_id=h.id,
                        start_date=h_start,
                        end_date=h_end,
                    )
                )

    # 2) declared weekly unavailability
    weekday = WEEKDAYS[local_date(target.starts_at).weekday()]
    slot = part_of_day(target.starts_at)
    for cid in wanted:
        contact = index.contacts.get(cid)
        if contact is not None and contact.unavailability.get(weekday, {}).get(slot):
            conflicts.append(
                Conflict(
                    type=ConflictType.UNAVAILABLE,
                    contact_id=cid,
                    contact_name=contact.display_name,
                    weekday=weekday,
                    part_of_day=slot,
                )
            )

    # 3) other rotas on the same calendar date
    target_day = local_date(target.starts_at)
    same_day: dict[str, Occurrence] = {
        o.id: o for o in index.occurrences.values() if local_date(o.starts_at) == target_day
    }
    for rota in index.rotas:
        if exclude_rota_id and rota.id == exclude_rota_id:
            continue
        for a in rota.assignees:
            if a.contact_id not in wanted_set:
                continue
            scope = resolve_scope(a, rota)
            if scope is None:
                hits = [o for o in index.event_occurrences(rota.event_id) if o.id in same_day]
            else:
                hits = [same_day[scope]] if scope in same_day else []
            for occ in hits:
                conflicts.append(
                    Conflict(
                        type=ConflictType.DOUBLE_BOOKING,
                        contact_id=a.contact_id,
                        contact_name=_contact_name(index, a.contact_id),
                        rota_id=rota.id,
                        rota_role=rota.role,
                        event_id=rota.event_id,
                        event_name=index.event_title(rota.event_id),
                        occurrence_id=occ.id,
                        occurrence_time=occ.starts_at,
                    )
                )

    return conflicts


def check_conflicts(
    store: RecordStore,
    contact_ids: Iterable[str],
    occurrence_id: str,
    exclude_rota_id: str | None = None,
) -> list[Conflict]:
    index = ScheduleIndex.load(store)
    holidays = load_many(Holiday, store.list(Collection.HOLIDAYS))
    return find_conflicts(index, holidays, contact_ids, occurrence_id, exclude_rota_id)
