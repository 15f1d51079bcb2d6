"""Roster entry persistence helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.models import AttendanceStatus, Occurrence, RosterEntry, RosterRole


def _initial_status(role: str, status: str | None) -> str | None:
    if role == RosterRole.COACH.value:
        return None
    return status or AttendanceStatus.EXPECTED.value


class RosterRepository:
    """Read and write the roster entries attached to occurrences."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Queries

    def entries_for(self, event_id: str) -> list[RosterEntry]:
        query = (
            select(RosterEntry)
            .where(RosterEntry.event_id == event_id)
            .order_by(RosterEntry.id.asc())
        )
        return list(self._session.execute(query).scalars().all())

    def role_map(self, event_id: str) -> dict[str, str]:
        return {entry.person_id: entry.role for entry in self.entries_for(event_id)}

    def get_entry(self, event_id: str, person_id: str) -> RosterEntry | None:
        query = select(RosterEntry).where(
            RosterEntry.event_id == event_id,
            RosterEntry.person_id == person_id,
        )
        return self._session.execute(query).scalar_one_or_none()

    def person_ids_for(self, event_ids: Sequence[str]) -> set[str]:
        if not event_ids:
            return set()
        query = select(RosterEntry.person_id).where(RosterEntry.event_id.in_(list(event_ids)))
        return set(self._session.execute(query).scalars().all())

    def existing_pairs(
        self, event_ids: Sequence[str], person_ids: Iterable[str]
    ) -> set[tuple[str, str]]:
        people = list(person_ids)
        if not event_ids or not people:
            return set()
        query = select(RosterEntry.event_id, RosterEntry.person_id).where(
            RosterEntry.event_id.in_(list(event_ids)),
            RosterEntry.person_id.in_(people),
        )
        return {(row.event_id, row.person_id) for row in self._session.execute(query)}

    # ------------------------------------------------------------------
    # Mutations

    def replace(
        self,
        occurrence: Occurrence,
        desired: Mapping[str, str],
        *,
        status: str | None = None,
    ) -> dict[str, str]:
        """Make the roster of ``occurrence`` match ``desired`` (person id -> role).

        Entries for people who stay keep their attendance status; returns the
        previous person -> role mapping.
        """

        current = {entry.person_id: entry for entry in occurrence.roster}
        previous = {person_id: entry.role for person_id, entry in current.items()}

        for person_id, entry in current.items():
            if person_id not in desired:
                occurrence.roster.remove(entry)
        self._session.flush()

        for person_id, role in desired.items():
            entry = current.get(person_id)
            if entry is not None:
                if entry.role != role:
                    entry.role = role
                    if role == RosterRole.COACH.value:
                        entry.status = None
                    elif entry.status is None:
                        entry.status = _initial_status(role, status)
                continue
            occurrence.roster.append(
                RosterEntry(
                    event_id=occurrence.id,
                    person_id=person_id,
                    role=role,
                    status=_initial_status(role, status),
                )
            )
        self._session.flush()
        return previous

    def add_many(
        self,
        event_ids: Sequence[str],
        entries: Mapping[str, str],
        *,
        status: str | None = None,
    ) -> int:
        """Insert entries that are absent; existing (event, person) pairs are left untouched."""

        if not event_ids or not entries:
            return 0
        existing = self.existing_pairs(event_ids, entries.keys())
        created = 0
        for event_id in event_ids:
            for person_id, role in entries.items():
                if (event_id, person_id) in existing:
                    continue
                self._session.add(
                    RosterEntry(
                        event_id=event_id,
                        person_id=person_id,
                        role=role,
                        status=_initial_status(role, status),
                    )
                )
                created += 1
        self._session.flush()
        return created

    def remove_persons(
        self,
        event_ids: Sequence[str],
        person_ids: Iterable[str],
        *,
        roles: Iterable[str] | None = None,
    ) -> int:
        people = list(person_ids)
        if not event_ids or not people:
            return 0
        statement = delete(RosterEntry).where(
            RosterEntry.event_id.in_(list(event_ids)),
            RosterEntry.person_id.in_(people),
        )
        if roles is not None:
            statement = statement.where(RosterEntry.role.in_(list(roles)))
        result = self._session.execute(statement)
        return result.rowcount or 0


__all__ = ["RosterRepository"]
