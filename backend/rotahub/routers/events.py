from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rotahub.core.db import get_db
from rotahub.models.enums import Collection
from rotahub.schemas import Occurrence, load_many
from rotahub.services.events import add_occurrences, create_event_with_occurrences
from rotahub.services.store import RecordStore

router = APIRouter(prefix="/events", tags=["events"])


# ---------- Schemas ----------

class RepeatIn(BaseModel):
    repeat_type: str = "none"
    repeat_interval: int = Field(1, ge=1)
    repeat_end_type: str = "never"
    repeat_end_date: date | None = None
    repeat_count: int | None = Field(default=None, ge=1)
    repeat_day_of_month: int | None = Field(default=None, ge=1, le=31)
    repeat_day_of_week: str | None = None
    repeat_week_of_month: str | None = None


class EventCreateIn(RepeatIn):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    location: str = ""
    visibility: str = "private"
    starts_at: datetime
    ends_at: datetime


class OccurrenceAddIn(BaseModel):
    starts_at: datetime
    ends_at: datetime
    location: str | None = None
    repeat: RepeatIn | None = None


def occurrence_payload(o: Occurrence) -> dict:
    return {
        "id": o.id,
        "event_id": o.event_id,
        "starts_at": o.starts_at.isoformat(),
        "ends_at": o.ends_at.isoformat(),
        "location": o.location,
        "all_day": o.all_day,
    }


# ---------- Routes ----------

@router.post("")
def create_event(payload: EventCreateIn, db: Session = Depends(get_db)):
    """Create an event and expand its repeat settings into occurrences."""
    store = RecordStore(db)
    event, occurrences = create_event_with_occurrences(
        store,
        payload.model_dump(exclude={"starts_at", "ends_at"}),
        first_starts_at=payload.starts_at,
        first_ends_at=payload.ends_at,
    )
    return {
        "event": event,
        "occurrences": [occurrence_payload(o) for o in load_many(Occurrence, occurrences)],
    }


@router.get("/{event_id}/occurrences")
def list_occurrences(event_id: str, db: Session = Depends(get_db)):
    store = RecordStore(db)
    if store.read(Collection.EVENTS, event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")

    rows = load_many(Occurrence, store.list(Collection.OCCURRENCES, where=lambda o: o.get("eventId") == event_id))
    return [occurrence_payload(o) for o in sorted(rows, key=lambda o: o.starts_at)]


@router.post("/{event_id}/occurrences")
def create_occurrences(event_id: str, payload: OccurrenceAddIn, db: Session = Depends(get_db)):
    """Add one occurrence, or a further repeat run, to an existing event."""
    created = add_occurrences(
        RecordStore(db),
        event_id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        location=payload.location,
        repeat=payload.repeat.model_dump() if payload.repeat else None,
    )
    return [occurrence_payload(o) for o in load_many(Occurrence, created)]
