"""Recurrence rule and occurrence persistence, including bulk series operations."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from app.domain.errors import RecordNotFoundError, VersionConflictError
from app.domain.models import RecurrenceSpec
from app.models import (
    Occurrence,
    OccurrenceStatus,
    RecurrenceRule,
    RosterEntry,
    StructureItem,
    utcnow,
)


class OccurrenceRepository:
    """Encapsulate rule and occurrence persistence concerns."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Rules

    def add_rule(self, spec: RecurrenceSpec) -> RecurrenceRule:
        rule = RecurrenceRule()
        self._assign_rule(rule, spec)
        rule.created_by = spec.created_by
        self._session.add(rule)
        self._session.flush()
        return rule

    def update_rule(self, rule: RecurrenceRule, spec: RecurrenceSpec) -> RecurrenceRule:
        self._assign_rule(rule, spec)
        rule.updated_at = utcnow()
        self._session.flush()
        return rule

    def get_rule(self, rule_id: str) -> RecurrenceRule | None:
        return self._session.get(RecurrenceRule, rule_id)

    def require_rule(self, rule_id: str, expected_version: int | None = None) -> RecurrenceRule:
        rule = self.get_rule(rule_id)
        if rule is None:
            raise RecordNotFoundError("recurrence rule", rule_id)
        _check_version("recurrence rule", rule_id, rule.version, expected_version)
        return rule

    def rules_for_group(self, group_id: str) -> list[RecurrenceRule]:
        query = select(RecurrenceRule).where(RecurrenceRule.group_id == group_id)
        return list(self._session.execute(query).scalars().all())

    @staticmethod
    def _assign_rule(rule: RecurrenceRule, spec: RecurrenceSpec) -> None:
        rule.group_id = spec.group_id
        rule.club_id = spec.club_id
        rule.event_type = spec.event_type
        rule.title = spec.title
        rule.location_text = spec.location_text
        rule.coach_note = spec.coach_note
        rule.duration_minutes = spec.duration_minutes
        rule.weekday = spec.weekday
        rule.time_of_day = spec.time_of_day
        rule.interval_weeks = spec.interval_weeks
        rule.start_date = spec.start_date
        rule.end_date = spec.end_date
        rule.timezone = spec.timezone
        rule.is_active = spec.is_active

    # ------------------------------------------------------------------
    # Single occurrences

    def get(self, occurrence_id: str) -> Occurrence | None:
        query = (
            select(Occurrence)
            .options(
                selectinload(Occurrence.roster),
                selectinload(Occurrence.structure_items),
            )
            .where(Occurrence.id == occurrence_id)
            # Sub-records are written through their own repositories, so refresh
            # collections already loaded in this session.
            .execution_options(populate_existing=True)
        )
        return self._session.execute(query).scalar_one_or_none()

    def require(self, occurrence_id: str, expected_version: int | None = None) -> Occurrence:
        occurrence = self.get(occurrence_id)
        if occurrence is None:
            raise RecordNotFoundError("occurrence", occurrence_id)
        _check_version("occurrence", occurrence_id, occurrence.version, expected_version)
        return occurrence

    def insert_one(self, occurrence: Occurrence) -> Occurrence:
        self._session.add(occurrence)
        self._session.flush()
        return occurrence

    def insert_batch(self, occurrences: Sequence[Occurrence]) -> list[str]:
        """Stage every occurrence in the current transaction and flush once.

        Nothing is visible to other sessions until the caller commits, so a
        failure anywhere in the batch leaves no partial series behind.
        """

        if not occurrences:
            return []
        self._session.add_all(list(occurrences))
        self._session.flush()
        return [occurrence.id for occurrence in occurrences]

    def delete_one(self, occurrence_id: str) -> bool:
        return self._delete_ids([occurrence_id]) > 0

    def touch(self, occurrence: Occurrence) -> None:
        """Mark an occurrence modified so its version advances on flush."""

        occurrence.updated_at = utcnow()

    # ------------------------------------------------------------------
    # Queries

    def list_for_group(
        self,
        group_id: str,
        *,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[Occurrence]:
        filters: list[Any] = [Occurrence.group_id == group_id]
        if starts_from is not None:
            filters.append(Occurrence.starts_at >= starts_from)
        if starts_before is not None:
            filters.append(Occurrence.starts_at < starts_before)
        if status:
            filters.append(Occurrence.status == status)

        query = (
            select(Occurrence)
            .options(selectinload(Occurrence.roster))
            .where(*filters)
            .order_by(Occurrence.starts_at.asc(), Occurrence.id.asc())
            .execution_options(populate_existing=True)
        )
        if limit:
            query = query.limit(limit)
        return list(self._session.execute(query).scalars().all())

    def list_for_rule(
        self,
        rule_id: str,
        *,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
    ) -> list[Occurrence]:
        filters: list[Any] = [Occurrence.series_id == rule_id]
        if starts_from is not None:
            filters.append(Occurrence.starts_at >= starts_from)
        if starts_before is not None:
            filters.append(Occurrence.starts_at < starts_before)
        query = (
            select(Occurrence)
            .options(
                selectinload(Occurrence.roster),
                selectinload(Occurrence.structure_items),
            )
            .where(*filters)
            .order_by(Occurrence.starts_at.asc(), Occurrence.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(self._session.execute(query).scalars().all())

    def future_scheduled_ids(
        self,
        group_id: str,
        as_of: datetime,
        *,
        series_id: str | None = None,
        exclude: Iterable[str] = (),
    ) -> list[str]:
        """Ids of scheduled occurrences of a group (optionally one series) starting at or after ``as_of``."""

        filters: list[Any] = [
            Occurrence.group_id == group_id,
            Occurrence.status == OccurrenceStatus.SCHEDULED.value,
            Occurrence.starts_at >= as_of,
        ]
        if series_id is not None:
            filters.append(Occurrence.series_id == series_id)
        excluded = [value for value in exclude if value]
        if excluded:
            filters.append(Occurrence.id.not_in(excluded))

        query = select(Occurrence.id).where(*filters).order_by(Occurrence.starts_at.asc())
        return list(self._session.execute(query).scalars().all())

    # ------------------------------------------------------------------
    # Bulk deletions

    def delete_future_for_rule(self, rule_id: str, as_of: datetime) -> int:
        query = select(Occurrence.id).where(
            Occurrence.series_id == rule_id,
            Occurrence.starts_at >= as_of,
        )
        ids = list(self._session.execute(query).scalars().all())
        return self._delete_ids(ids)

    def delete_all_for_rule(self, rule_id: str) -> int:
        """Delete every occurrence of a rule, past and future, then the rule itself."""

        rule = self.require_rule(rule_id)
        query = select(Occurrence.id).where(Occurrence.series_id == rule_id)
        ids = list(self._session.execute(query).scalars().all())
        deleted = self._delete_ids(ids)
        self._session.delete(rule)
        self._session.flush()
        return deleted

    def delete_future_for_group(self, group_id: str, as_of: datetime) -> list[str]:
        query = select(Occurrence.id).where(
            Occurrence.group_id == group_id,
            Occurrence.starts_at >= as_of,
        )
        ids = list(self._session.execute(query).scalars().all())
        self._delete_ids(ids)
        return ids

    def _delete_ids(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        id_list = list(ids)
        self._session.execute(delete(RosterEntry).where(RosterEntry.event_id.in_(id_list)))
        self._session.execute(delete(StructureItem).where(StructureItem.event_id.in_(id_list)))
        # Bulk statements synchronize the identity map, so loaded rows are evicted too.
        result = self._session.execute(delete(Occurrence).where(Occurrence.id.in_(id_list)))
        return result.rowcount or 0


def _check_version(kind: str, record_id: str, actual: int, expected: int | None) -> None:
    if expected is not None and actual != expected:
        raise VersionConflictError(kind, record_id, expected=expected, actual=actual)


__all__ = ["OccurrenceRepository"]
