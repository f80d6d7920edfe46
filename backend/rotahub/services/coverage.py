from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from rotahub.core.timezones import start_of_today, utcnow
from rotahub.schemas import Assignee, Occurrence, Rota
from rotahub.services.assignments import ScheduleIndex, merge_rotas_by_role, resolve_scope


@dataclass(frozen=True)
class Coverage:
    covered: int
    total: int

    @property
    def ratio(self) -> float:
        return self.covered / self.total if self.total else 0.0


def is_upcoming(occ: Occurrence, now: datetime) -> bool:
    return occ.starts_at >= start_of_today(now)


def applicable_occurrences(rota: Rota, occurrences: Iterable[Occurrence], now: datetime) -> list[Occurrence]:
    upcoming = [o for o in occurrences if o.event_id == rota.event_id and is_upcoming(o, now)]
    if rota.occurrence_id:
        return [o for o in upcoming if o.id == rota.occurrence_id]
    return upcoming


def _count(rota: Rota, applicable: list[Occurrence]) -> Coverage:
    # assignees scoped to "all occurrences" can't be attributed to one occurrence
    ids = {o.id for o in applicable}
    covered: set[str] = set()
    for a in rota.assignees:
        scope = resolve_scope(a, rota)
        if scope is not None and scope in ids:
            covered.add(scope)
    return Coverage(covered=len(covered), total=len(applicable))


def compute_coverage(rota: Rota, occurrences: Iterable[Occurrence], *, now: datetime | None = None) -> Coverage:
    """How many of the rota's upcoming occurrences have at least one assignee.

    Assignees scoped to "all occurrences" don't count towards ``covered``.
    """
    return _count(rota, applicable_occurrences(rota, occurrences, now or utcnow()))


def role_scopes(rotas: Iterable[Rota]) -> dict[tuple[str, str], set[str] | None]:
    """Occurrences each (event, role) applies to across its rotas; None means all of them."""
    scopes: dict[tuple[str, str], set[str] | None] = {}
    for rota in rotas:
        key = (rota.event_id, rota.role)
        if rota.occurrence_id is None:
            scopes[key] = None
        elif key not in scopes:
            scopes[key] = {rota.occurrence_id}
        elif scopes[key] is not None:
            scopes[key].add(rota.occurrence_id)
    return scopes


@dataclass
class RotaRow:
    rota: Rota
    event_title: str
    assignees: list[Assignee] = field(default_factory=list)
    coverage: Coverage = field(default_factory=lambda: Coverage(0, 0))


def rota_overview(index: ScheduleIndex, *, search: str | None = None, now: datetime | None = None) -> list[RotaRow]:
    """Coordinator list view: one row per (event, role) with upcoming assignees and coverage.

    A row's coverage is measured against the occurrences its rotas apply to: every
    upcoming occurrence if any of them is event-wide, else the union of their scopes.
    """
    now = now or utcnow()
    rotas = index.rotas
    if search:
        needle = search.strip().lower()
        rotas = [
            r for r in rotas
            if needle in r.role.lower() or needle in index.event_title(r.event_id).lower()
        ]

    scopes = role_scopes(rotas)
    upcoming_ids = {o.id for o in index.occurrences.values() if is_upcoming(o, now)}

    rows: list[RotaRow] = []
    for rota in merge_rotas_by_role(rotas):
        upcoming = [o for o in index.event_occurrences(rota.event_id) if o.id in upcoming_ids]
        scope = scopes[(rota.event_id, rota.role)]
        applicable = upcoming if scope is None else [o for o in upcoming if o.id in scope]

        assignees = []
        for a in rota.assignees:
            a_scope = resolve_scope(a, rota)
            if (a_scope is None and upcoming) or a_scope in upcoming_ids:
                assignees.append(a)
        rows.append(
            RotaRow(
                rota=rota,
                event_title=index.event_title(rota.event_id),
                assignees=assignees,
                coverage=_count(rota.model_copy(update={"assignees": assignees}), applicable),
            )
        )
    return rows
