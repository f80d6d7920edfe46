from datetime import datetime, timezone

from rotahub.schemas import Event, Occurrence, Rota
from rotahub.services.assignments import ScheduleIndex
from rotahub.services.coverage import compute_coverage, rota_overview

NOW = datetime(2026, 5, 5, 12, 0, tzinfo=timezone.utc)


def _occ(occ_id, day, event_id="E1"):
    return Occurrence.model_validate(
        {
            "id": occ_id,
            "eventId": event_id,
            "startsAt": datetime(2026, 5, day, 10, tzinfo=timezone.utc),
            "endsAt": datetime(2026, 5, day, 11, tzinfo=timezone.utc),
        }
    )


OCCURRENCES = [_occ("O0", 3), _occ("O1", 10), _occ("O2", 17), _occ("O3", 24)]


def test_counts_upcoming_occurrences_with_a_scoped_assignee():
    rota = Rota.model_validate(
        {
            "id": "R1",
            "eventId": "E1",
            "role": "Welcome",
            "assignees": [
                {"contactId": "c1", "occurrenceId": "O1"},
                {"contactId": "c2", "occurrenceId": "O2"},
                {"contactId": "c4", "occurrenceId": "O2"},
                "c3",
            ],
        }
    )
    cov = compute_coverage(rota, OCCURRENCES, now=NOW)
    assert (cov.covered, cov.total) == (2, 3)
    assert round(cov.ratio, 2) == 0.67


def test_all_occurrence_assignees_do_not_count():
    rota = Rota.model_validate({"id": "R1", "eventId": "E1", "role": "Welcome", "assignees": ["c1", "c2"]})
    assert compute_coverage(rota, OCCURRENCES, now=NOW).covered == 0


def test_single_occurrence_rota():
    rota = Rota.model_validate({"id": "R2", "eventId": "E1", "occurrenceId": "O3", "role": "Sound", "assignees": ["c1"]})
    cov = compute_coverage(rota, OCCURRENCES, now=NOW)
    assert (cov.covered, cov.total) == (1, 1)


def test_past_occurrences_are_not_counted():
    rota = Rota.model_validate(
        {"id": "R1", "eventId": "E1", "role": "Welcome", "assignees": [{"contactId": "c1", "occurrenceId": "O0"}]}
    )
    cov = compute_coverage(rota, OCCURRENCES, now=NOW)
    assert (cov.covered, cov.total) == (0, 3)


def test_no_occurrences():
    rota = Rota.model_validate({"id": "R1", "eventId": "E9", "role": "Welcome"})
    cov = compute_coverage(rota, OCCURRENCES, now=NOW)
    assert (cov.covered, cov.total, cov.ratio) == (0, 0, 0.0)


def test_overview_merges_roles_and_hides_past_assignees():
    index = ScheduleIndex.build(
        events=[Event.model_validate({"id": "E1", "title": "Sunday Service"})],
        occurrences=OCCURRENCES,
        rotas=[
            Rota.model_validate(
                {
                    "id": "R1",
                    "eventId": "E1",
                    "role": "Welcome",
                    "assignees": [{"contactId": "c1", "occurrenceId": "O0"}, {"contactId": "c2", "occurrenceId": "O1"}],
                }
            ),
            Rota.model_validate({"id": "R2", "eventId": "E1", "occurrenceId": "O2", "role": "Welcome", "assignees": ["c3"]}),
            Rota.model_validate({"id": "R3", "eventId": "E1", "role": "Sound", "assignees": ["c4"]}),
        ],
    )
    rows = rota_overview(index, now=NOW)
    assert [r.rota.role for r in rows] == ["Welcome", "Sound"]

    welcome = rows[0]
    assert welcome.event_title == "Sunday Service"
    assert [a.contact_id for a in welcome.assignees] == ["c2", "c3"]
    assert (welcome.coverage.covered, welcome.coverage.total) == (2, 3)

    sound = rows[1]
    assert [a.contact_id for a in sound.assignees] == ["c4"]
    assert sound.coverage.covered == 0


def test_overview_search_matches_role_or_event():
    index = ScheduleIndex.build(
        events=[Event.model_validate({"id": "E1", "title": "Sunday Service"})],
        occurrences=OCCURRENCES,
        rotas=[
            Rota.model_validate({"id": "R1", "eventId": "E1", "role": "Welcome"}),
            Rota.model_validate({"id": "R3", "eventId": "E1", "role": "Sound"}),
        ],
    )
    assert [r.rota.role for r in rota_overview(index, search="SOUND", now=NOW)] == ["Sound"]
    assert len(rota_overview(index, search="sunday", now=NOW)) == 2
    assert rota_overview(index, search="bar", now=NOW) == []


def test_overview_of_a_single_occurrence_role_counts_only_that_occurrence():
    index = ScheduleIndex.build(
        events=[Event.model_validate({"id": "E1", "title": "Sunday Service"})],
        occurrences=OCCURRENCES,
        rotas=[Rota.model_validate({"id": "R2", "eventId": "E1", "occurrenceId": "O2", "role": "Sound", "assignees": ["c1"]})],
    )
    (row,) = rota_overview(index, now=NOW)
    assert (row.coverage.covered, row.coverage.total) == (1, 1)
    assert row.coverage == compute_coverage(index.rota("R2"), OCCURRENCES, now=NOW)


def test_overview_of_scoped_rotas_counts_the_union_of_their_occurrences():
    index = ScheduleIndex.build(
        events=[Event.model_validate({"id": "E1", "title": "Sunday Service"})],
        occurrences=OCCURRENCES,
        rotas=[
            Rota.model_validate({"id": "R1", "eventId": "E1", "occurrenceId": "O1", "role": "Tea", "assignees": ["c1"]}),
            Rota.model_validate({"id": "R2", "eventId": "E1", "occurrenceId": "O3", "role": "Tea"}),
        ],
    )
    (row,) = rota_overview(index, now=NOW)
    assert (row.coverage.covered, row.coverage.total) == (1, 2)
