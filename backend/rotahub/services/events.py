from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from rotahub.errors import RecordNotFound
from rotahub.models.enums import Collection, RepeatType
from rotahub.schemas import Event, Occurrence, parse
from rotahub.services.recurrence import RecurrenceSpec, generate_occurrences
from rotahub.services.store import RecordStore

log = logging.getLogger("rotahub.events")


def _expand(event: Event, starts_at: datetime, ends_at: datetime, location: str | None) -> list[dict[str, Any]]:
    spec = parse(
        RecurrenceSpec,
        {
            **event.model_dump(include=set(RecurrenceSpec.model_fields) - {"start_date", "end_date", "location", "id"}),
            "start_date": starts_at,
            "end_date": ends_at,
            "location": location if location is not None else event.location,
        },
    )
    records = [parse(Occurrence, g.to_record(event.id)).to_record() for g in generate_occurrences(spec)]
    return records


def create_event_with_occurrences(
    store: RecordStore,
    data: dict[str, Any],
    *,
    first_starts_at: datetime,
    first_ends_at: datetime,
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Create an event and every occurrence its repeat settings produce.

    Everything is validated before the first write, so a bad recurrence never leaves
    a half-created event behind.
    """
    event = parse(Event, data)
    draft = event.model_copy(update={"id": "pending"})
    # validates the recurrence + first instance; ids are filled in after the event exists
    _expand(draft, first_starts_at, first_ends_at, None)

    saved = store.create(Collection.EVENTS, event.to_record())
    event = event.model_copy(update={"id": saved["id"]})

    occurrences = [store.create(Collection.OCCURRENCES, rec) for rec in _expand(event, first_starts_at, first_ends_at, None)]
    log.info(
        "created event id=%s repeat=%s occurrences=%s",
        event.id, event.repeat_type.value, len(occurrences),
    )
    return saved, occurrences


def add_occurrences(
    store: RecordStore,
    event_id: str,
    *,
    starts_at: datetime,
    ends_at: datetime,
    location: str | None = None,
    repeat: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Append occurrences to an existing event. Existing occurrences are never touched.

    Without ``repeat`` a single occurrence is added; with it the given repeat settings
    are expanded from ``starts_at``.
    """
    stored = store.read(Collection.EVENTS, event_id)
    if stored is None:
        raise RecordNotFound(Collection.EVENTS.value, event_id)
    event = parse(Event, stored)
    if repeat is None:
        event = event.model_copy(update={"repeat_type": RepeatType.NONE})
    else:
        # snake_case on both sides so the new repeat settings win
        event = parse(Event, {**event.model_dump(), **repeat})

    records = _expand(event, starts_at, ends_at, location)
    return [store.create(Collection.OCCURRENCES, rec) for rec in records]
