"""Forward roster changes made on one occurrence to sibling future occurrences."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import ScheduleValidationError
from app.domain.models import PropagationReport, PropagationScope, RosterDelta
from app.models import AttendanceStatus, Occurrence, RosterRole, utcnow
from app.repositories import OccurrenceRepository, RosterRepository

ATTENDEE_ROLES = (RosterRole.PLAYER.value, RosterRole.GUEST.value)


class RosterSyncEngine:
    """Fan roster additions and removals out to a group's upcoming occurrences.

    Targets are the scheduled occurrences starting at or after ``as_of``. With
    the default group scope this includes standalone occurrences and members of
    any series in the group; series scope narrows it to one rule.

    Each target is committed on its own. A failing target is rolled back and
    reported, and never undoes the edit that triggered the propagation nor the
    targets already updated.
    """

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
        default_scope: PropagationScope = PropagationScope.GROUP,
    ) -> None:
        self._session = session
        self._clock = clock
        self._default_scope = default_scope
        self._occurrences = OccurrenceRepository(session)
        self._roster = RosterRepository(session)

    def propagate(
        self,
        group_id: str,
        added_person_ids: Iterable[str],
        removed_person_ids: Iterable[str],
        exclude_occurrence_id: str | None = None,
        as_of: datetime | None = None,
        *,
        scope: PropagationScope | None = None,
        series_id: str | None = None,
        role: str = RosterRole.PLAYER.value,
        added_roles: Mapping[str, str] | None = None,
        removal_roles: Iterable[str] = ATTENDEE_ROLES,
        exclude: Iterable[str] = (),
    ) -> PropagationReport:
        scope = PropagationScope(scope or self._default_scope)
        as_of = as_of or self._clock()
        added = _unique(added_person_ids)
        removed = [person_id for person_id in _unique(removed_person_ids) if person_id not in added]
        report = PropagationReport(
            group_id=group_id,
            scope=scope,
            added=tuple(added),
            removed=tuple(removed),
        )
        if not added and not removed:
            return report

        if scope == PropagationScope.SERIES and not series_id:
            raise ScheduleValidationError("Series-scoped propagation requires a series id")

        excluded = [exclude_occurrence_id, *exclude]
        report.target_ids = self._occurrences.future_scheduled_ids(
            group_id,
            as_of,
            series_id=series_id if scope == PropagationScope.SERIES else None,
            exclude=[value for value in excluded if value],
        )
        if not report.target_ids:
            return report

        roles = dict(added_roles or {})
        additions = {person_id: roles.get(person_id, role) for person_id in added}
        removal_role_list = list(removal_roles)

        for target_id in report.target_ids:
            try:
                changed = self._roster.add_many(
                    [target_id], additions, status=AttendanceStatus.EXPECTED.value
                )
                changed += self._roster.remove_persons(
                    [target_id], removed, roles=removal_role_list
                )
                if changed:
                    occurrence = self._session.get(Occurrence, target_id)
                    if occurrence is not None:
                        self._occurrences.touch(occurrence)
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                report.failures[target_id] = str(exc)
                logger.warning(
                    "Roster propagation failed occurrence={} group={} error={}",
                    target_id,
                    group_id,
                    exc,
                )
                continue
            report.updated_ids.append(target_id)

        logger.info(
            "Propagated roster change group={} scope={} added={} removed={} updated={} failed={}",
            group_id,
            scope.value,
            len(added),
            len(removed),
            len(report.updated_ids),
            len(report.failures),
        )
        return report

    def propagate_delta(
        self,
        group_id: str,
        delta: RosterDelta,
        *,
        exclude: Iterable[str] = (),
        as_of: datetime | None = None,
        scope: PropagationScope | None = None,
        series_id: str | None = None,
    ) -> PropagationReport:
        return self.propagate(
            group_id,
            delta.added.keys(),
            delta.removed,
            as_of=as_of,
            scope=scope,
            series_id=series_id,
            added_roles=delta.added,
            exclude=exclude,
        )

    def transfer(
        self,
        person_id: str,
        *,
        role: str,
        from_group_id: str | None,
        to_group_id: str,
        as_of: datetime | None = None,
    ) -> tuple[PropagationReport | None, PropagationReport]:
        """Move a person's upcoming participation from one group to another."""

        as_of = as_of or self._clock()
        role_filter = [role] if role == RosterRole.COACH.value else list(ATTENDEE_ROLES)
        removal = None
        if from_group_id and from_group_id != to_group_id:
            removal = self.propagate(
                from_group_id,
                [],
                [person_id],
                as_of=as_of,
                scope=PropagationScope.GROUP,
                removal_roles=role_filter,
            )
        addition = self.propagate(
            to_group_id,
            [person_id],
            [],
            as_of=as_of,
            scope=PropagationScope.GROUP,
            role=role,
        )
        return removal, addition


def _unique(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        key = str(value or "").strip()
        if key and key not in seen:
            seen.append(key)
    return seen


__all__ = ["ATTENDEE_ROLES", "RosterSyncEngine"]
