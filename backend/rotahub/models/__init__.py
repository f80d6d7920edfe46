from .enums import (
    Collection,
    ConflictType,
    EventVisibility,
    ReminderTiming,
    RepeatEndType,
    RepeatType,
    RotaVisibility,
)
from .record import Record
from .reminder_log import ReminderLog

__all__ = [
    "Collection",
    "ConflictType",
    "EventVisibility",
    "ReminderTiming",
    "RepeatEndType",
    "RepeatType",
    "RotaVisibility",
    "Record",
    "ReminderLog",
]
