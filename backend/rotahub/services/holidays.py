from __future__ import annotations

from typing import Any

from rotahub.errors import RecordNotFound
from rotahub.models.enums import Collection
from rotahub.schemas import Holiday, load_many, parse
from rotahub.services.store import RecordStore


def get_holidays_by_contact(store: RecordStore, contact_id: str) -> list[Holiday]:
    rows = store.list(Collection.HOLIDAYS, where=lambda h: h.get("contactId") == contact_id)
    return sorted(load_many(Holiday, rows), key=lambda h: (h.start_date.replace(tzinfo=None), h.id or ""))


def add_holiday(store: RecordStore, contact_id: str, data: dict[str, Any]) -> dict[str, Any]:
    if store.read(Collection.CONTACTS, contact_id) is None:
        raise RecordNotFound(Collection.CONTACTS.value, contact_id)
    holiday = parse(Holiday, {**data, "contactId": contact_id})
    return store.create(Collection.HOLIDAYS, holiday.to_record())


def update_holiday(store: RecordStore, holiday_id: str, data: dict[str, Any]) -> dict[str, Any]:
    existing = store.get(Collection.HOLIDAYS, holiday_id)
    holiday = parse(Holiday, {**existing, **data, "contactId": existing.get("contactId")})
    return store.update(Collection.HOLIDAYS, holiday_id, holiday.to_record())


def delete_holiday(store: RecordStore, holiday_id: str) -> None:
    store.delete(Collection.HOLIDAYS, holiday_id)
