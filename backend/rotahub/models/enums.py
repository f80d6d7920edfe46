import enum


class Collection(str, enum.Enum):
    EVENTS = "events"
    OCCURRENCES = "occurrences"
    ROTAS = "rotas"
    CONTACTS = "contacts"
    HOLIDAYS = "holidays"


class RepeatType(str, enum.Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RepeatEndType(str, enum.Enum):
    NEVER = "never"
    AFTER = "after"
    ON = "on"


class ReminderTiming(str, enum.Enum):
    ONE_DAY = "1day"
    TWO_DAYS = "2days"
    ONE_WEEK = "1week"
    ONE_WEEK_AND_ONE_DAY = "1week-and-1day"


class EventVisibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


class RotaVisibility(str, enum.Enum):
    PUBLIC = "public"
    INTERNAL = "internal"


class ConflictType(str, enum.Enum):
    HOLIDAY = "holiday"
    DOUBLE_BOOKING = "double_booking"
    UNAVAILABLE = "unavailable"
