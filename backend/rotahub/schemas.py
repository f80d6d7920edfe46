"""Record shapes shared by the store, the engine and the routers.

Records are persisted as camelCase JSON (``eventId``, ``startsAt``...). Every model
accepts both camelCase and snake_case keys and keeps unknown keys, so records written
by older versions of the hub survive a read/modify/write cycle untouched.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from rotahub.core.timezones import aware
from rotahub.errors import ValidationError
from rotahub.models.enums import (
    EventVisibility,
    ReminderTiming,
    RepeatEndType,
    RepeatType,
    RotaVisibility,
)

log = logging.getLogger("rotahub.schemas")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WEEKS_OF_MONTH = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5, "last": -1}
PARTS_OF_DAY = ("morning", "afternoon", "evening")

# older hub versions wrote "date" / "count"
_LEGACY_END_TYPES = {"date": "on", "count": "after"}


class RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        str_strip_whitespace=True,
    )

    id: str | None = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


M = TypeVar("M", bound=RecordModel)


def _parse_day(value: Any) -> Any:
    # "2026-03-01" -> midnight; pydantic only takes full timestamps for datetime fields
    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.combine(date.fromisoformat(value.strip()), datetime.min.time())
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, datetime.min.time())
    return value


class RecurrenceFields(RecordModel):
    repeat_type: RepeatType = RepeatType.NONE
    repeat_interval: int = Field(1, ge=1)
    repeat_end_type: RepeatEndType = RepeatEndType.NEVER
    repeat_end_date: date | None = None
    repeat_count: int | None = Field(default=None, ge=1)
    repeat_day_of_month: int | None = Field(default=None, ge=1, le=31)
    repeat_day_of_week: str | None = None
    repeat_week_of_month: str | None = None

    @field_validator("repeat_type", mode="before")
    @classmethod
    def _repeat_type(cls, v):
        return v or RepeatType.NONE

    @field_validator("repeat_interval", mode="before")
    @classmethod
    def _repeat_interval(cls, v):
        return 1 if v in (None, "") else v

    @field_validator("repeat_end_type", mode="before")
    @classmethod
    def _repeat_end_type(cls, v):
        if not v:
            return RepeatEndType.NEVER
        if isinstance(v, str):
            return _LEGACY_END_TYPES.get(v.lower(), v.lower())
        return v

    @field_validator("repeat_end_date", mode="before")
    @classmethod
    def _repeat_end_date(cls, v):
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v or None

    @field_validator("repeat_count", "repeat_day_of_month", mode="before")
    @classmethod
    def _blank_int(cls, v):
        return None if v in ("", None) else v

    @field_validator("repeat_day_of_week", mode="before")
    @classmethod
    def _day_of_week(cls, v):
        if v in (None, ""):
            return None
        if isinstance(v, int):
            if not 0 <= v <= 6:
                raise ValueError("repeatDayOfWeek must be 0 (Monday) to 6 (Sunday)")
            return WEEKDAYS[v]
        name = str(v).strip().lower()
        if name not in WEEKDAYS:
            raise ValueError(f"Unknown weekday: {v}")
        return name

    @field_validator("repeat_week_of_month", mode="before")
    @classmethod
    def _week_of_month(cls, v):
        if v in (None, ""):
            return None
        if isinstance(v, int) or (isinstance(v, str) and v.strip().lstrip("-").isdigit()):
            n = int(v)
            for name, num in WEEKS_OF_MONTH.items():
                if num == n:
                    return name
            raise ValueError("repeatWeekOfMonth must be 1-5 or -1 (last)")
        name = str(v).strip().lower()
        if name not in WEEKS_OF_MONTH:
            raise ValueError(f"Unknown week of month: {v}")
        return name

    @model_validator(mode="after")
    def _end_condition(self):
        if self.repeat_type == RepeatType.NONE:
            return self
        if self.repeat_end_type == RepeatEndType.ON and self.repeat_end_date is None:
            raise ValueError("repeatEndDate is required when repeatEndType is 'on'")
        if self.repeat_end_type == RepeatEndType.AFTER and self.repeat_count is None:
            raise ValueError("repeatCount is required when repeatEndType is 'after'")
        if self.repeat_week_of_month and not self.repeat_day_of_week:
            raise ValueError("repeatWeekOfMonth needs repeatDayOfWeek")
        return self


class Event(RecurrenceFields):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=10000)
    location: str = Field("", max_length=500)
    visibility: EventVisibility = EventVisibility.PRIVATE

    @field_validator("visibility", mode="before")
    @classmethod
    def _visibility(cls, v):
        v = getattr(v, "value", v)
        return v if v in {e.value for e in EventVisibility} else EventVisibility.PRIVATE


class Occurrence(RecordModel):
    event_id: str = Field(..., min_length=1, max_length=50)
    starts_at: datetime
    ends_at: datetime
    location: str = Field("", max_length=500)
    all_day: bool = False
    max_spaces: int | None = None
    information: str = Field("", max_length=5000)

    @field_validator("location", "information", mode="before")
    @classmethod
    def _blank_str(cls, v):
        return v or ""

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _aware(cls, v):
        return aware(v)

    @model_validator(mode="after")
    def _ordered(self):
        if self.ends_at <= self.starts_at:
            raise ValueError("End date must be after start date")
        return self


class Assignee(BaseModel):
    """Canonical assignee. Built once from either stored shape by :func:`normalize_assignee`."""

    model_config = ConfigDict(frozen=True)

    contact_id: str | None = None
    occurrence_id: str | None = None
    name: str | None = None
    email: str | None = None
    # stored as a bare contact id string
    legacy: bool = False

    def to_record(self) -> Any:
        if self.legacy and self.occurrence_id is None:
            return self.contact_id
        if self.contact_id is None:
            # public signup, never linked to a contact record
            return {
                "contactId": {"name": self.name or "", "email": self.email or ""},
                "occurrenceId": self.occurrence_id,
            }
        out: dict[str, Any] = {"contactId": self.contact_id, "occurrenceId": self.occurrence_id}
        if self.name:
            out["name"] = self.name
        if self.email:
            out["email"] = self.email
        return out


def normalize_assignee(raw: Any) -> Assignee | None:
    """Convert a stored assignee (bare id string or object) into an :class:`Assignee`.

    Returns None for entries that carry neither a contact id nor an e-mail.
    """
    if isinstance(raw, Assignee):
        return raw
    if isinstance(raw, str):
        return Assignee(contact_id=raw, legacy=True) if raw.strip() else None
    if not isinstance(raw, dict):
        return None

    cid = raw.get("contactId") or raw.get("contact_id") or raw.get("id")
    occurrence_id = raw.get("occurrenceId") or raw.get("occurrence_id") or None
    name = raw.get("name") or None
    email = raw.get("email") or None

    if isinstance(cid, dict):
        name = name or cid.get("name") or None
        email = email or cid.get("email") or None
        cid = None
    elif cid is not None and not isinstance(cid, str):
        cid = str(cid)

    if not cid and not email:
        return None
    return Assignee(contact_id=cid or None, occurrence_id=occurrence_id, name=name, email=email)


class Rota(RecordModel):
    event_id: str = Field(..., min_length=1, max_length=50)
    occurrence_id: str | None = None
    role: str = Field(..., min_length=1, max_length=100)
    capacity: int = 1
    assignees: list[Assignee] = Field(default_factory=list)
    visibility: RotaVisibility = RotaVisibility.PUBLIC
    notes: str = Field("", max_length=10000)
    owner_id: str | None = None

    @field_validator("occurrence_id", "owner_id", mode="before")
    @classmethod
    def _blank_id(cls, v):
        return v or None

    @field_validator("capacity", mode="before")
    @classmethod
    def _capacity(cls, v):
        try:
            n = int(v)
        except (TypeError, ValueError):
            return 1
        return n if n > 0 else 1

    @field_validator("assignees", mode="before")
    @classmethod
    def _assignees(cls, v):
        if not isinstance(v, list):
            return []
        out = []
        for raw in v:
            a = normalize_assignee(raw)
            if a is None:
                log.warning("dropping unreadable assignee entry: %r", raw)
                continue
            out.append(a)
        return out

    @field_validator("visibility", mode="before")
    @classmethod
    def _visibility(cls, v):
        return RotaVisibility.INTERNAL if v == "internal" else RotaVisibility.PUBLIC

    @field_validator("notes", mode="before")
    @classmethod
    def _notes(cls, v):
        return v or ""

    @field_serializer("assignees")
    def _dump_assignees(self, assignees: list[Assignee]):
        return [a.to_record() for a in assignees]


class Contact(RecordModel):
    email: str | None = None
    first_name: str = ""
    last_name: str = ""
    reminder_email: bool = True
    reminder_timing: ReminderTiming = ReminderTiming.ONE_WEEK
    unavailability: dict[str, dict[str, bool]] = Field(default_factory=dict)

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        if not v:
            return None
        return str(v).strip().lower()

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _names(cls, v):
        return v or ""

    @field_validator("reminder_email", mode="before")
    @classmethod
    def _reminder_email(cls, v):
        # only an explicit opt-out disables reminders
        return v not in (False, "false", "off")

    @field_validator("reminder_timing", mode="before")
    @classmethod
    def _reminder_timing(cls, v):
        v = getattr(v, "value", v)
        return v if v in {t.value for t in ReminderTiming} else ReminderTiming.ONE_WEEK

    @field_validator("unavailability", mode="before")
    @classmethod
    def _unavailability(cls, v):
        if not isinstance(v, dict):
            return {}
        return {
            str(day).lower(): {str(part).lower(): bool(flag) for part, flag in (slots or {}).items()}
            for day, slots in v.items()
            if isinstance(slots, dict)
        }

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or (self.email or "")


class Holiday(RecordModel):
    contact_id: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    all_day: bool = True

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _day(cls, v):
        return _parse_day(v)

    @field_validator("all_day", mode="before")
    @classmethod
    def _all_day(cls, v):
        return True if v is None else v

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self


def parse(model: type[M], data: Any) -> M:
    """Validate input for a write. Raises :class:`rotahub.errors.ValidationError`."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(_describe(e)) from e


def load_many(model: type[M], rows: Iterable[dict]) -> list[M]:
    """Parse stored records, skipping (and logging) the ones that no longer validate."""
    out: list[M] = []
    for row in rows:
        try:
            out.append(model.model_validate(row))
        except pydantic.ValidationError as e:
            log.warning("skipping unreadable %s record id=%s: %s", model.__name__, row.get("id"), _describe(e))
    return out


def _describe(e: pydantic.ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "__root__")
        msg = err.get("msg", "invalid")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid input"
