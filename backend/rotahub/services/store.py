from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from rotahub.errors import RecordNotFound
from rotahub.models.enums import Collection
from rotahub.models.record import Record

log = logging.getLogger("rotahub.store")

# Writes are serialized per collection inside this process; two coordinators editing
# different collections never wait on each other.
_collection_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
_locks_guard = threading.Lock()


def _lock_for(collection: str) -> threading.Lock:
    with _locks_guard:
        return _collection_locks[collection]


def _name(collection: str | Collection) -> str:
    return collection.value if isinstance(collection, Collection) else str(collection)


def new_id() -> str:
    return str(uuid.uuid4())


class RecordStore:
    """Generic JSON record collections on top of the ``records`` table.

    Every write commits before returning, so a subsequent read on any session sees it.
    Last writer wins for concurrent updates of the same record.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, collection: str | Collection, data: dict[str, Any]) -> dict[str, Any]:
        name = _name(collection)
        doc = dict(data)
        doc["id"] = doc.get("id") or new_id()
        now = datetime.now(timezone.utc)
        doc.setdefault("createdAt", now.isoformat())
        doc["updatedAt"] = now.isoformat()

        with _lock_for(name):
            self.db.add(Record(collection=name, record_id=doc["id"], data=doc, created_at=now, updated_at=now))
            self.db.commit()
        return doc

    def read(self, collection: str | Collection, record_id: str) -> dict[str, Any] | None:
        row = self._row(_name(collection), record_id)
        return dict(row.data) if row is not None else None

    def get(self, collection: str | Collection, record_id: str) -> dict[str, Any]:
        doc = self.read(collection, record_id)
        if doc is None:
            raise RecordNotFound(_name(collection), record_id)
        return doc

    def update(self, collection: str | Collection, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        name = _name(collection)
        with _lock_for(name):
            row = self._row(name, record_id)
            if row is None:
                raise RecordNotFound(name, record_id)
            now = datetime.now(timezone.utc)
            doc = {**row.data, **data, "id": record_id, "updatedAt": now.isoformat()}
            # JSON columns are not mutation-tracked: assign a new object
            row.data = doc
            row.updated_at = now
            self.db.commit()
        return doc

    def delete(self, collection: str | Collection, record_id: str) -> None:
        name = _name(collection)
        with _lock_for(name):
            row = self._row(name, record_id)
            if row is None:
                raise RecordNotFound(name, record_id)
            self.db.delete(row)
            self.db.commit()

    def list(
        self,
        collection: str | Collection,
        where: Callable[[dict[str, Any]], bool] | None = None,
    ) -> list[dict[str, Any]]:
        rows = self.db.execute(
            select(Record.data).where(Record.collection == _name(collection)).order_by(Record.pk.asc())
        ).scalars().all()
        docs = [dict(d) for d in rows]
        if where is not None:
            docs = [d for d in docs if where(d)]
        return docs

    def _row(self, name: str, record_id: str) -> Record | None:
        return self.db.execute(
            select(Record).where(Record.collection == name, Record.record_id == record_id)
        ).scalar_one_or_none()
