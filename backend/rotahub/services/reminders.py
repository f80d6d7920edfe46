"""Daily rota reminder sweep.

Each (contact, rota, occurrence, bucket) reminder moves from "not yet due" to "due,
unsent" on the day its lead time is reached, and to "sent" once a ``reminder_log``
row is committed. The row is inserted with ON CONFLICT DO NOTHING *before* dispatch
and committed *after* it:

* a second sweep running concurrently cannot claim the same key, so the e-mail goes
  out once;
* a failed dispatch rolls the claim back, leaving the reminder due for the next run;
* a crash between dispatch and commit also rolls the claim back, so that reminder may
  be sent twice. Duplicates are preferred over lost reminders.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterator

from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rotahub.core.config import settings
from rotahub.core.timezones import local_date, utcnow
from rotahub.models.enums import ReminderTiming
from rotahub.models.reminder_log import ReminderLog
from rotahub.schemas import Assignee, Occurrence, Rota
from rotahub.services import mailer
from rotahub.services.assignments import ScheduleIndex, resolve_scope
from rotahub.services.store import RecordStore

log = logging.getLogger("rotahub.reminders")

# days-before-occurrence buckets covered by each contact preference
TIMING_TO_DAYS: dict[ReminderTiming, tuple[int, ...]] = {
    ReminderTiming.ONE_DAY: (1,),
    ReminderTiming.TWO_DAYS: (2,),
    ReminderTiming.ONE_WEEK: (7,),
    ReminderTiming.ONE_WEEK_AND_ONE_DAY: (1, 7),
}


@dataclass
class SweepResult:
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    total_assignments: int = 0
    # DRY_RUN: due reminders that would have been sent
    matched: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DueSlot:
    rota: Rota
    occurrence: Occurrence
    assignee: Assignee
    days_ahead: int


def timing_matches(timing: ReminderTiming, days_ahead: int) -> bool:
    return days_ahead in TIMING_TO_DAYS.get(timing, TIMING_TO_DAYS[ReminderTiming.ONE_WEEK])


def iter_slots(index: ScheduleIndex, now: datetime, buckets: list[int]) -> Iterator[DueSlot]:
    """Assignments whose occurrence is exactly one of ``buckets`` calendar days away."""
    today = local_date(now)
    wanted = set(buckets)
    rotas_by_event: dict[str, list[Rota]] = {}
    for rota in index.rotas:
        rotas_by_event.setdefault(rota.event_id, []).append(rota)

    for occ in sorted(index.occurrences.values(), key=lambda o: o.starts_at):
        days_ahead = (local_date(occ.starts_at) - today).days
        if days_ahead not in wanted:
            continue
        for rota in rotas_by_event.get(occ.event_id, []):
            for assignee in rota.assignees:
                scope = resolve_scope(assignee, rota)
                if scope is not None and scope != occ.id:
                    continue
                yield DueSlot(rota=rota, occurrence=occ, assignee=assignee, days_ahead=days_ahead)


def _claim(db: Session, row: dict[str, Any]) -> bool:
    """Insert-or-ignore on the dedup key. True when this call owns the reminder."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(ReminderLog).values(**row).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(ReminderLog).values(**row).on_conflict_do_nothing()
    else:
        return _claim_by_insert(db, row)
    return db.execute(stmt).rowcount == 1


def _claim_by_insert(db: Session, row: dict[str, Any]) -> bool:
    # dialects without ON CONFLICT: let the unique constraint reject the duplicate
    try:
        db.execute(insert(ReminderLog).values(**row))
    except IntegrityError:
        db.rollback()
        return False
    return True


def _error(email, event_title, role, occurrence_id, days_ahead, exc: Exception) -> dict[str, Any]:
    return {
        "contact": email,
        "event": event_title,
        "role": role,
        "occurrenceId": occurrence_id,
        "daysAhead": days_ahead,
        "error": str(exc) or exc.__class__.__name__,
    }


def run_reminder_sweep(
    db: Session,
    now: datetime | None = None,
    *,
    send: mailer.SendFn | None = None,
    buckets: list[int] | None = None,
    dry_run: bool = False,
    force_email: str | None = None,
) -> SweepResult:
    """Send every rota reminder due today, at most once per (assignment, bucket).

    Runs to completion: a failed dispatch is recorded in ``errors`` and the sweep moves on.
    """
    now = now or utcnow()
    send = send or mailer.send
    buckets = buckets or settings.reminder_buckets()

    index = ScheduleIndex.load(RecordStore(db))
    # end the read transaction; each reminder gets its own
    db.rollback()

    result = SweepResult()
    for slot in iter_slots(index, now, buckets):
        result.total_assignments += 1
        rota, occ, assignee = slot.rota, slot.occurrence, slot.assignee

        if assignee.contact_id is None:
            # public signup without a contact record: no preferences to honour
            result.skipped += 1
            continue
        contact = index.contacts.get(assignee.contact_id)
        if contact is None:
            log.warning("rota id=%s references missing contact id=%s", rota.id, assignee.contact_id)
            result.skipped += 1
            continue
        if not contact.reminder_email or not contact.email:
            result.skipped += 1
            continue
        if not timing_matches(contact.reminder_timing, slot.days_ahead):
            continue

        event_title = index.event_title(rota.event_id)
        event = index.events.get(rota.event_id)
        message = mailer.render_rota_reminder(
            to=force_email or contact.email,
            first_name=contact.first_name,
            event_title=event_title,
            role=rota.role,
            starts_at=occ.starts_at,
            location=occ.location or (event.location if event else ""),
            days_ahead=slot.days_ahead,
            all_day=occ.all_day,
        )

        if dry_run:
            log.info(
                "DRY_RUN match: contact=%s rota=%s occurrence=%s days_ahead=%s",
                contact.email, rota.id, occ.id, slot.days_ahead,
            )
            result.matched += 1
            continue

        # forced test sends go to someone else and must not mark the real reminder as sent
        if not force_email:
            claimed = _claim(
                db,
                {
                    "contact_id": contact.id,
                    "rota_id": rota.id,
                    "occurrence_id": occ.id,
                    "timing_bucket": slot.days_ahead,
                    "contact_email": contact.email,
                    "event_title": event_title[:200],
                    "role": rota.role,
                    "sent_at": now,
                },
            )
            if not claimed:
                result.skipped += 1
                continue

        try:
            send(message)
        except Exception as e:
            db.rollback()
            result.failed += 1
            result.errors.append(_error(contact.email, event_title, rota.role, occ.id, slot.days_ahead, e))
            log.exception("failed to send %s-day reminder to %s for %r", slot.days_ahead, contact.email, event_title)
            continue

        try:
            db.commit()
        except SQLAlchemyError as e:
            # sent but not logged: the reminder stays due and may go out again
            db.rollback()
            result.failed += 1
            result.errors.append(_error(contact.email, event_title, rota.role, occ.id, slot.days_ahead, e))
            log.exception("reminder to %s for %r sent but not logged", contact.email, event_title)
            continue

        result.sent += 1
        log.info("sent %s-day reminder to %s for %r (%s)", slot.days_ahead, contact.email, event_title, rota.role)

    log.info(
        "reminder sweep done: sent=%s skipped=%s failed=%s assignments=%s",
        result.sent, result.skipped, result.failed, result.total_assignments,
    )
    return result
