from datetime import datetime, timezone

import pytest

from rotahub.models.enums import ConflictType
from rotahub.schemas import Contact, Event, Holiday, Occurrence, Rota
from rotahub.services.assignments import ScheduleIndex
from rotahub.services.availability import find_conflicts, holiday_interval, part_of_day


def _occ(occ_id, event_id, start_hour, end_hour, day=7):
    return Occurrence.model_validate(
        {
            "id": occ_id,
            "eventId": event_id,
            "startsAt": datetime(2026, 6, day, start_hour, tzinfo=timezone.utc),
            "endsAt": datetime(2026, 6, day, end_hour, tzinfo=timezone.utc),
        }
    )


@pytest.fixture()
def index():
    # 2026-06-07 is a Sunday
    return ScheduleIndex.build(
        events=[
            Event.model_validate({"id": "E1", "title": "Morning Service"}),
            Event.model_validate({"id": "E2", "title": "Evening Prayer"}),
            Event.model_validate({"id": "E3", "title": "Breakfast Club"}),
        ],
        occurrences=[
            _occ("X", "E1", 9, 10),
            _occ("T", "E2", 18, 20),
            _occ("Y", "E3", 7, 8),
            _occ("Z", "E3", 7, 8, day=14),
        ],
        rotas=[
            Rota.model_validate({"id": "R1", "eventId": "E1", "occurrenceId": "X", "role": "Usher", "assignees": ["c1"]}),
            Rota.model_validate({"id": "R3", "eventId": "E3", "role": "Cook", "assignees": ["c3"]}),
        ],
        contacts=[
            Contact.model_validate({"id": "c1", "email": "a@example.org", "firstName": "Ann", "lastName": "Lee"}),
            Contact.model_validate(
                {"id": "c2", "email": "b@example.org", "firstName": "Ben", "unavailability": {"Sunday": {"Evening": True}}}
            ),
            Contact.model_validate({"id": "c3", "email": "c@example.org"}),
        ],
    )


def _holiday(start, end, all_day=True, contact_id="c1"):
    return Holiday.model_validate(
        {"id": "h1", "contactId": contact_id, "startDate": start, "endDate": end, "allDay": all_day}
    )


def test_same_date_counts_as_double_booking_without_time_overlap(index):
    conflicts = find_conflicts(index, [], ["c1"], "T")
    assert len(conflicts) == 1
    c = conflicts[0]
    assert c.type == ConflictType.DOUBLE_BOOKING
    assert (c.rota_id, c.rota_role, c.occurrence_id, c.event_name) == ("R1", "Usher", "X", "Morning Service")
    assert c.contact_name == "Ann Lee"


def test_current_rota_is_excluded(index):
    assert find_conflicts(index, [], ["c1"], "T", exclude_rota_id="R1") == []


def test_all_occurrence_assignee_books_each_event_day(index):
    conflicts = find_conflicts(index, [], ["c3"], "T")
    assert [(c.type, c.occurrence_id) for c in conflicts] == [(ConflictType.DOUBLE_BOOKING, "Y")]


def test_all_day_holiday_covers_the_whole_day(index):
    conflicts = find_conflicts(index, [_holiday("2026-06-07", "2026-06-07")], ["c1"], "T", exclude_rota_id="R1")
    assert [c.type for c in conflicts] == [ConflictType.HOLIDAY]
    assert conflicts[0].holiday_id == "h1"
    assert conflicts[0].as_dict()["type"] == ConflictType.HOLIDAY


def test_holiday_on_other_days_is_no_conflict(index):
    holidays = [_holiday("2026-06-08", "2026-06-10")]
    assert find_conflicts(index, holidays, ["c1"], "T", exclude_rota_id="R1") == []


def test_timed_holiday_touching_the_occurrence_is_no_conflict(index):
    holidays = [_holiday("2026-06-07T08:00:00+00:00", "2026-06-07T18:00:00+00:00", all_day=False)]
    assert find_conflicts(index, holidays, ["c1"], "T", exclude_rota_id="R1") == []

    holidays = [_holiday("2026-06-07T08:00:00+00:00", "2026-06-07T18:30:00+00:00", all_day=False)]
    assert len(find_conflicts(index, holidays, ["c1"], "T", exclude_rota_id="R1")) == 1


def test_other_contacts_holidays_are_ignored(index):
    holidays = [_holiday("2026-06-07", "2026-06-07", contact_id="c9")]
    assert find_conflicts(index, holidays, ["c1"], "T", exclude_rota_id="R1") == []


def test_declared_unavailability(index):
    conflicts = find_conflicts(index, [], ["c2"], "T")
    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.UNAVAILABLE
    assert (conflicts[0].weekday, conflicts[0].part_of_day) == ("sunday", "evening")

    assert find_conflicts(index, [], ["c2"], "X") == []


def test_missing_occurrence_yields_no_conflicts(index):
    assert find_conflicts(index, [], ["c1"], "nope") == []


def test_holiday_interval_is_half_open():
    start, end = holiday_interval(_holiday("2026-06-07", "2026-06-08"))
    assert start == datetime(2026, 6, 7, tzinfo=timezone.utc)
    assert end == datetime(2026, 6, 9, tzinfo=timezone.utc)


def test_part_of_day_boundaries():
    assert part_of_day(datetime(2026, 6, 7, 11, 59, tzinfo=timezone.utc)) == "morning"
    assert part_of_day(datetime(2026, 6, 7, 12, 0, tzinfo=timezone.utc)) == "afternoon"
    assert part_of_day(datetime(2026, 6, 7, 17, 0, tzinfo=timezone.utc)) == "evening"
