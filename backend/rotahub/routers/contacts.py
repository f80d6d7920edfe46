from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from rotahub.core.db import get_db
from rotahub.models.enums import Collection
from rotahub.schemas import Holiday
from rotahub.services.assignments import ScheduleIndex, resolve_assignments_for_contact
from rotahub.services.availability import holiday_interval
from rotahub.services.holidays import add_holiday, delete_holiday, get_holidays_by_contact, update_holiday
from rotahub.services.store import RecordStore

router = APIRouter(prefix="/contacts", tags=["contacts"])


class HolidayIn(BaseModel):
    start_date: str
    end_date: str
    all_day: bool = True


class HolidayUpdateIn(BaseModel):
    start_date: str | None = None
    end_date: str | None = None
    all_day: bool | None = None


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def holiday_payload(h: Holiday) -> dict:
    start, end = holiday_interval(h)
    return {
        "id": h.id,
        "contact_id": h.contact_id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "all_day": h.all_day,
    }


def _camel(payload: BaseModel) -> dict:
    # stored records are camelCase; merging snake_case keys into them would be ambiguous
    return {to_camel(k): v for k, v in payload.model_dump(exclude_none=True).items()}


@router.get("/{contact_id}/assignments")
def contact_assignments(
    contact_id: str,
    email: str | None = Query(default=None),
    include_past: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    """Rota slots held by a volunteer, by contact id or e-mail (public signups)."""
    index = ScheduleIndex.load(RecordStore(db))
    contact = index.contacts.get(contact_id)
    if email is None and contact is not None:
        email = contact.email

    items = resolve_assignments_for_contact(index, contact_id, email, include_past=include_past)
    return [
        {
            "rota_id": a.rota_id,
            "role": a.role,
            "event_id": a.event_id,
            "event_title": a.event_title,
            "occurrence_id": a.occurrence_id,
            "starts_at": _iso(a.starts_at),
            "ends_at": _iso(a.ends_at),
            "location": a.location,
        }
        for a in items
    ]


@router.get("/{contact_id}/holidays")
def list_holidays(contact_id: str, db: Session = Depends(get_db)):
    return [holiday_payload(h) for h in get_holidays_by_contact(RecordStore(db), contact_id)]


@router.post("/{contact_id}/holidays", status_code=status.HTTP_201_CREATED)
def create_holiday(contact_id: str, payload: HolidayIn, db: Session = Depends(get_db)):
    saved = add_holiday(RecordStore(db), contact_id, _camel(payload))
    return holiday_payload(Holiday.model_validate(saved))


def _own_holiday(store: RecordStore, contact_id: str, holiday_id: str) -> None:
    existing = store.read(Collection.HOLIDAYS, holiday_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Away period not found")
    if existing.get("contactId") != contact_id:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.patch("/{contact_id}/holidays/{holiday_id}")
def edit_holiday(contact_id: str, holiday_id: str, payload: HolidayUpdateIn, db: Session = Depends(get_db)):
    store = RecordStore(db)
    _own_holiday(store, contact_id, holiday_id)
    saved = update_holiday(store, holiday_id, _camel(payload))
    return holiday_payload(Holiday.model_validate(saved))


@router.delete("/{contact_id}/holidays/{holiday_id}")
def remove_holiday(contact_id: str, holiday_id: str, db: Session = Depends(get_db)):
    store = RecordStore(db)
    _own_holiday(store, contact_id, holiday_id)
    delete_holiday(store, holiday_id)
    return {"ok": True}
