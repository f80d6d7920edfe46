from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rotahub.core.db import get_db
from rotahub.models.enums import Collection
from rotahub.schemas import Assignee, Occurrence, Rota, load_many, parse
from rotahub.services.assignments import (
    ScheduleIndex,
    find_contacts_by_past_role,
    resolve_assignees_for_occurrence,
)
from rotahub.services.availability import check_conflicts
from rotahub.services.coverage import compute_coverage, rota_overview
from rotahub.services.store import RecordStore

router = APIRouter(prefix="/rotas", tags=["rotas"])

ITEMS_PER_PAGE = 20


class AvailabilityCheckIn(BaseModel):
    contact_ids: list[str] = Field(..., min_length=1)
    occurrence_id: str = Field(..., min_length=1)
    current_rota_id: str | None = None


def assignee_payload(a: Assignee) -> dict:
    return {
        "contact_id": a.contact_id,
        "occurrence_id": a.occurrence_id,
        "name": a.name,
        "email": a.email,
    }


def _get_rota(store: RecordStore, rota_id: str) -> Rota:
    raw = store.read(Collection.ROTAS, rota_id)
    if raw is None:
        raise HTTPException(status_code=404, detail="Rota not found")
    return parse(Rota, raw)


@router.get("")
def list_rotas(
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
):
    """Coordinator list: one row per (event, role), upcoming assignees only, with coverage."""
    rows = rota_overview(ScheduleIndex.load(RecordStore(db)), search=search)

    total = len(rows)
    start = (page - 1) * ITEMS_PER_PAGE
    return {
        "rotas": [
            {
                "id": r.rota.id,
                "event_id": r.rota.event_id,
                "event_title": r.event_title,
                "role": r.rota.role,
                "capacity": r.rota.capacity,
                "visibility": r.rota.visibility.value,
                "assignees": [assignee_payload(a) for a in r.assignees],
                "covered": r.coverage.covered,
                "total": r.coverage.total,
            }
            for r in rows[start:start + ITEMS_PER_PAGE]
        ],
        "page": page,
        "total_pages": (total + ITEMS_PER_PAGE - 1) // ITEMS_PER_PAGE,
        "total": total,
    }


@router.post("/check-availability")
def check_availability(payload: AvailabilityCheckIn, db: Session = Depends(get_db)):
    store = RecordStore(db)
    if store.read(Collection.OCCURRENCES, payload.occurrence_id) is None:
        raise HTTPException(status_code=404, detail="Occurrence not found")

    conflicts = check_conflicts(store, payload.contact_ids, payload.occurrence_id, payload.current_rota_id)
    return {"conflicts": [c.as_dict() for c in conflicts]}


@router.get("/past-role-contacts")
def past_role_contacts(
    role: str = Query(..., min_length=1),
    exclude_rota_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    """Contacts who have served in ``role`` before (invite suggestions)."""
    rotas = load_many(Rota, RecordStore(db).list(Collection.ROTAS))
    return {"contact_ids": find_contacts_by_past_role(rotas, role, exclude_rota_id)}


@router.get("/{rota_id}/assignees")
def rota_assignees(
    rota_id: str,
    occurrence_id: str | None = Query(default=None, description="omit for the all-occurrences assignees"),
    db: Session = Depends(get_db),
):
    rota = _get_rota(RecordStore(db), rota_id)
    return [assignee_payload(a) for a in resolve_assignees_for_occurrence(rota, occurrence_id)]


@router.get("/{rota_id}/coverage")
def rota_coverage(rota_id: str, db: Session = Depends(get_db)):
    store = RecordStore(db)
    rota = _get_rota(store, rota_id)
    occurrences = load_many(
        Occurrence, store.list(Collection.OCCURRENCES, where=lambda o: o.get("eventId") == rota.event_id)
    )
    cov = compute_coverage(rota, occurrences)
    return {"rota_id": rota.id, "covered": cov.covered, "total": cov.total}
