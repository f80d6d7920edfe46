from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from rotahub.core.timezones import start_of_today, utcnow
from rotahub.models.enums import Collection
from rotahub.schemas import Assignee, Contact, Event, Occurrence, Rota, load_many
from rotahub.services.store import RecordStore

log = logging.getLogger("rotahub.assignments")

UNKNOWN_EVENT = "Unknown Event"


def resolve_scope(assignee: Assignee, rota: Rota) -> str | None:
    """Effective occurrence of an assignee: its own, else the rota's. None means every occurrence."""
    return assignee.occurrence_id or rota.occurrence_id or None


@dataclass
class ScheduleIndex:
    """In-memory lookups built once per request. Missing references resolve to None / "Unknown Event"."""

    events: dict[str, Event] = field(default_factory=dict)
    occurrences: dict[str, Occurrence] = field(default_factory=dict)
    rotas: list[Rota] = field(default_factory=list)
    contacts: dict[str, Contact] = field(default_factory=dict)
    occurrences_by_event: dict[str, list[Occurrence]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        events: Iterable[Event] = (),
        occurrences: Iterable[Occurrence] = (),
        rotas: Iterable[Rota] = (),
        contacts: Iterable[Contact] = (),
    ) -> "ScheduleIndex":
        idx = cls(
            events={e.id: e for e in events if e.id},
            occurrences={o.id: o for o in occurrences if o.id},
            rotas=list(rotas),
            contacts={c.id: c for c in contacts if c.id},
        )
        for occ in sorted(idx.occurrences.values(), key=lambda o: o.starts_at):
            idx.occurrences_by_event.setdefault(occ.event_id, []).append(occ)
        return idx

    @classmethod
    def load(cls, store: RecordStore) -> "ScheduleIndex":
        return cls.build(
            events=load_many(Event, store.list(Collection.EVENTS)),
            occurrences=load_many(Occurrence, store.list(Collection.OCCURRENCES)),
            rotas=load_many(Rota, store.list(Collection.ROTAS)),
            contacts=load_many(Contact, store.list(Collection.CONTACTS)),
        )

    def event_title(self, event_id: str) -> str:
        ev = self.events.get(event_id)
        if ev is None:
            log.warning("rota references missing event id=%s", event_id)
            return UNKNOWN_EVENT
        return ev.title

    def event_occurrences(self, event_id: str) -> list[Occurrence]:
        return self.occurrences_by_event.get(event_id, [])

    def rota(self, rota_id: str) -> Rota | None:
        for r in self.rotas:
            if r.id == rota_id:
                return r
        return None


@dataclass(frozen=True)
class Assignment:
    rota_id: str | None
    role: str
    event_id: str
    event_title: str
    occurrence_id: str | None
    starts_at: datetime | None
    ends_at: datetime | None
    location: str
    contact_id: str | None = None


def _matches(assignee: Assignee, contact_id: str | None, email: str, index: ScheduleIndex) -> bool:
    if contact_id and assignee.contact_id == contact_id:
        return True
    if not email:
        return False
    if assignee.email and assignee.email.lower() == email:
        return True
    if assignee.contact_id:
        contact = index.contacts.get(assignee.contact_id)
        if contact is not None and contact.email == email:
            return True
    return False


def expand_assignee(index: ScheduleIndex, rota: Rota, assignee: Assignee) -> list[Assignment]:
    """Dated instances one assignee is booked for; a single dateless entry when none resolve."""
    title = index.event_title(rota.event_id)
    event = index.events.get(rota.event_id)
    event_location = event.location if event else ""

    scope = resolve_scope(assignee, rota)
    if scope is None:
        occurrences = index.event_occurrences(rota.event_id)
    else:
        occ = index.occurrences.get(scope)
        if occ is None:
            log.warning("rota id=%s references missing occurrence id=%s", rota.id, scope)
        occurrences = [occ] if occ is not None else []

    if not occurrences:
        return [
            Assignment(
                rota_id=rota.id,
                role=rota.role,
                event_id=rota.event_id,
                event_title=title,
                occurrence_id=None,
                starts_at=None,
                ends_at=None,
                location=event_location,
                contact_id=assignee.contact_id,
            )
        ]

    return [
        Assignment(
            rota_id=rota.id,
            role=rota.role,
            event_id=rota.event_id,
            event_title=title,
            occurrence_id=occ.id,
            starts_at=occ.starts_at,
            ends_at=occ.ends_at,
            location=occ.location or event_location,
            contact_id=assignee.contact_id,
        )
        for occ in occurrences
    ]


def resolve_assignments_for_contact(
    index: ScheduleIndex,
    contact_id: str | None,
    email: str | None,
    *,
    now: datetime | None = None,
    include_past: bool = False,
) -> list[Assignment]:
    """Every rota slot a volunteer holds, matched by contact id or (case-insensitive) e-mail.

    Past instances are dropped unless ``include_past``; dateless entries are kept and
    sorted after the dated ones.
    """
    email = (email or "").strip().lower()
    if not contact_id and not email:
        return []

    out: list[Assignment] = []
    seen: set[tuple[str | None, str | None]] = set()
    for rota in index.rotas:
        for assignee in rota.assignees:
            if not _matches(assignee, contact_id, email, index):
                continue
            for a in expand_assignee(index, rota, assignee):
                key = (a.rota_id, a.occurrence_id)
                if key in seen:
                    continue
                seen.add(key)
                out.append(a)

    if not include_past:
        cutoff = start_of_today(now or utcnow())
        out = [a for a in out if a.starts_at is None or a.starts_at >= cutoff]

    out.sort(key=lambda a: (a.starts_at is None, a.starts_at.timestamp() if a.starts_at else 0, a.event_title, a.role))
    return out


def resolve_assignees_for_occurrence(rota: Rota, occurrence_id: str | None) -> list[Assignee]:
    """Assignees whose effective scope is exactly ``occurrence_id`` (None: the all-occurrences ones)."""
    return [a for a in rota.assignees if resolve_scope(a, rota) == (occurrence_id or None)]


def merge_rotas_by_role(rotas: Iterable[Rota]) -> list[Rota]:
    """One row per (event, role). Each assignee keeps the scope it had on its own rota."""
    merged: dict[tuple[str, str], Rota] = {}
    for rota in rotas:
        scoped = [a.model_copy(update={"occurrence_id": resolve_scope(a, rota)}) for a in rota.assignees]
        key = (rota.event_id, rota.role)
        row = merged.get(key)
        if row is None:
            merged[key] = rota.model_copy(update={"occurrence_id": None, "assignees": scoped})
        else:
            row.assignees.extend(scoped)
    return list(merged.values())


def find_contacts_by_past_role(rotas: Iterable[Rota], role: str, exclude_rota_id: str | None = None) -> list[str]:
    """Distinct contact ids holding ``role`` (case-insensitive) on any rota but ``exclude_rota_id``."""
    wanted = (role or "").strip().lower()
    if not wanted:
        return []

    found: dict[str, None] = {}
    for rota in rotas:
        if rota.id == exclude_rota_id:
            continue
        if rota.role.strip().lower() != wanted:
            continue
        for a in rota.assignees:
            if a.contact_id:
                found.setdefault(a.contact_id)
    return list(found)
