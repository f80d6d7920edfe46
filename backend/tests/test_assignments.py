from datetime import datetime, timezone

import pytest

from rotahub.schemas import Contact, Event, Occurrence, Rota, normalize_assignee
from rotahub.services.assignments import (
    ScheduleIndex,
    find_contacts_by_past_role,
    merge_rotas_by_role,
    resolve_assignees_for_occurrence,
    resolve_assignments_for_contact,
    resolve_scope,
)

NOW = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)


def _occ(occ_id, event_id, day, hour=10):
    return Occurrence.model_validate(
        {
            "id": occ_id,
            "eventId": event_id,
            "startsAt": datetime(2026, 5, day, hour, tzinfo=timezone.utc),
            "endsAt": datetime(2026, 5, day, hour + 1, tzinfo=timezone.utc),
        }
    )


@pytest.fixture()
def index():
    return ScheduleIndex.build(
        events=[
            Event.model_validate({"id": "E1", "title": "Sunday Service", "location": "Church"}),
            Event.model_validate({"id": "E2", "title": "Quiz Night"}),
        ],
        occurrences=[_occ("O1", "E1", 3), _occ("O2", "E1", 10), _occ("O3", "E1", 17)],
        rotas=[
            Rota.model_validate(
                {
                    "id": "R1",
                    "eventId": "E1",
                    "role": "Welcome",
                    "assignees": ["c1", {"contactId": "c2", "occurrenceId": "O2"}],
                }
            ),
            Rota.model_validate({"id": "R2", "eventId": "E1", "occurrenceId": "O3", "role": "Sound", "assignees": ["c2"]}),
            Rota.model_validate(
                {
                    "id": "R3",
                    "eventId": "E1",
                    "role": "Welcome",
                    "occurrenceId": "O1",
                    "assignees": [{"contactId": {"name": "Pat", "email": "Pat@Example.org"}, "occurrenceId": "O1"}],
                }
            ),
            Rota.model_validate({"id": "R4", "eventId": "E2", "role": "Bar", "assignees": ["c1"]}),
        ],
        contacts=[
            Contact.model_validate({"id": "c1", "email": "alex@example.org", "firstName": "Alex"}),
            Contact.model_validate({"id": "c2", "email": "sam@example.org", "firstName": "Sam"}),
        ],
    )


def test_legacy_and_object_assignees_resolve_alike():
    legacy = Rota.model_validate({"id": "R", "eventId": "E", "occurrenceId": "O9", "role": "Tea", "assignees": ["c1"]})
    current = Rota.model_validate(
        {"id": "R", "eventId": "E", "occurrenceId": "O9", "role": "Tea", "assignees": [{"contactId": "c1", "occurrenceId": None}]}
    )
    assert resolve_scope(legacy.assignees[0], legacy) == resolve_scope(current.assignees[0], current) == "O9"
    assert legacy.assignees[0].contact_id == current.assignees[0].contact_id == "c1"


def test_legacy_assignee_written_back_unchanged():
    rota = Rota.model_validate({"id": "R", "eventId": "E", "role": "Tea", "assignees": ["c1", {"contactId": "c2", "occurrenceId": "O1"}]})
    assert rota.to_record()["assignees"] == ["c1", {"contactId": "c2", "occurrenceId": "O1"}]


def test_unreadable_assignee_entries_are_dropped():
    rota = Rota.model_validate({"id": "R", "eventId": "E", "role": "Tea", "assignees": ["", 7, {"occurrenceId": "O1"}, "c1"]})
    assert [a.contact_id for a in rota.assignees] == ["c1"]
    assert normalize_assignee({"contact_id": "c5"}).contact_id == "c5"


def test_all_occurrence_assignee_expands_to_every_occurrence(index):
    items = resolve_assignments_for_contact(index, "c1", None, now=NOW)
    dated = [a for a in items if a.starts_at is not None]
    assert [(a.rota_id, a.occurrence_id) for a in dated] == [("R1", "O1"), ("R1", "O2"), ("R1", "O3")]
    assert dated[0].event_title == "Sunday Service"
    assert dated[0].location == "Church"


def test_scoped_assignments_only_cover_their_occurrence(index):
    items = resolve_assignments_for_contact(index, "c2", None, now=NOW)
    assert [(a.rota_id, a.occurrence_id, a.role) for a in items] == [("R1", "O2", "Welcome"), ("R2", "O3", "Sound")]


def test_match_by_email_for_public_signups(index):
    items = resolve_assignments_for_contact(index, None, "pat@example.org", now=NOW)
    assert [(a.rota_id, a.occurrence_id) for a in items] == [("R3", "O1")]


def test_match_by_contact_email(index):
    by_email = resolve_assignments_for_contact(index, None, "SAM@example.org", now=NOW)
    by_id = resolve_assignments_for_contact(index, "c2", None, now=NOW)
    assert by_email == by_id


def test_dateless_assignments_sort_last(index):
    items = resolve_assignments_for_contact(index, "c1", None, now=NOW)
    assert items[-1].rota_id == "R4"
    assert items[-1].starts_at is None
    assert items[-1].event_title == "Quiz Night"


def test_past_instances_are_dropped(index):
    later = datetime(2026, 5, 12, 9, 0, tzinfo=timezone.utc)
    items = resolve_assignments_for_contact(index, "c1", None, now=later)
    assert [a.occurrence_id for a in items] == ["O3", None]

    everything = resolve_assignments_for_contact(index, "c1", None, now=later, include_past=True)
    assert [a.occurrence_id for a in everything] == ["O1", "O2", "O3", None]


def test_no_identity_means_no_assignments(index):
    assert resolve_assignments_for_contact(index, None, "  ", now=NOW) == []


def test_missing_event_reads_as_unknown():
    index = ScheduleIndex.build(rotas=[Rota.model_validate({"id": "R", "eventId": "gone", "role": "Tea", "assignees": ["c1"]})])
    items = resolve_assignments_for_contact(index, "c1", None, now=NOW)
    assert [a.event_title for a in items] == ["Unknown Event"]


def test_assignees_for_occurrence(index):
    r1, r2 = index.rota("R1"), index.rota("R2")
    assert [a.contact_id for a in resolve_assignees_for_occurrence(r1, None)] == ["c1"]
    assert [a.contact_id for a in resolve_assignees_for_occurrence(r1, "O2")] == ["c2"]
    # neither the O2 assignee nor the all-occurrences one belongs to O3
    assert resolve_assignees_for_occurrence(r1, "O3") == []
    assert [a.contact_id for a in resolve_assignees_for_occurrence(r2, "O3")] == ["c2"]
    assert resolve_assignees_for_occurrence(r2, None) == []


def test_merge_by_role_keeps_each_assignee_scope(index):
    merged = merge_rotas_by_role(index.rotas)
    assert [(r.event_id, r.role) for r in merged] == [("E1", "Welcome"), ("E1", "Sound"), ("E2", "Bar")]

    welcome = merged[0]
    assert welcome.occurrence_id is None
    assert [(a.contact_id, a.email, a.occurrence_id) for a in welcome.assignees] == [
        ("c1", None, None),
        ("c2", None, "O2"),
        (None, "Pat@Example.org", "O1"),
    ]
    # the source rotas are left alone
    assert len(index.rota("R1").assignees) == 2


def test_merge_bakes_in_rota_level_scope():
    rotas = [
        Rota.model_validate({"id": "A", "eventId": "E", "role": "Tea", "assignees": ["c1"]}),
        Rota.model_validate({"id": "B", "eventId": "E", "role": "Tea", "occurrenceId": "O2", "assignees": ["c2"]}),
    ]
    (row,) = merge_rotas_by_role(rotas)
    assert [resolve_scope(a, row) for a in row.assignees] == [None, "O2"]


def test_find_contacts_by_past_role(index):
    assert find_contacts_by_past_role(index.rotas, " welcome ") == ["c1", "c2"]
    assert find_contacts_by_past_role(index.rotas, "Welcome", exclude_rota_id="R1") == []
    assert find_contacts_by_past_role(index.rotas, "") == []
