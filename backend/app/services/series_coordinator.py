"""Create, edit and delete recurring series and their materialized occurrences.

Every public operation validates and generates before touching storage, then
performs its writes inside a single unit of work: the delete-future,
regenerate, insert and reapply steps of a series edit commit together or not
at all. Roster propagation to sibling occurrences runs afterwards and is
best-effort; its failures are reported on the result, never raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from loguru import logger
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import Settings, get_settings
from app.domain.errors import (
    RecordNotFoundError,
    ScheduleValidationError,
    SchedulingError,
    VersionConflictError,
)
from app.domain.models import (
    OccurrenceDraft,
    OccurrenceResult,
    OccurrenceUpdate,
    PropagationReport,
    PropagationScope,
    RecurrenceSpec,
    RosterDelta,
    RosterInput,
    SeriesResult,
    StructureItemInput,
    TimeSlot,
    attendee_entries,
    clean_text,
    normalize_structure,
    require_activity_type,
    require_title,
)
from app.models import (
    AttendanceStatus,
    Occurrence,
    OccurrenceStatus,
    RecurrenceRule,
    RosterEntry,
    RosterRole,
    utcnow,
)
from app.repositories import (
    OccurrenceRepository,
    OccurrenceSnapshot,
    RosterRepository,
    StructureRepository,
)

from .notifications import (
    FactKind,
    NotificationDispatcher,
    OutboxDispatcher,
    ScheduleFact,
    union_ids,
)
from .occurrence_generator import generate
from .roster_sync import RosterSyncEngine
from .structure_template import StructureTemplate


class SeriesEditCoordinator:
    """Top-level orchestrator for occurrence-scope and series-scope edits."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._clock = clock
        self._dispatcher = dispatcher or OutboxDispatcher(session)
        self._occurrences = OccurrenceRepository(session)
        self._roster = RosterRepository(session)
        self._structure_repo = StructureRepository(session)
        self._structure = StructureTemplate(session, self._structure_repo)
        self._sync = RosterSyncEngine(
            session,
            clock=clock,
            default_scope=PropagationScope(self._settings.roster_propagation_scope),
        )

    # ------------------------------------------------------------------
    # Series scope

    def create_series(
        self,
        spec: RecurrenceSpec,
        roster: RosterInput | None = None,
        structure_items: Sequence[StructureItemInput] | None = None,
        *,
        acting_user_id: str | None = None,
    ) -> SeriesResult:
        spec = self._prepare_spec(spec, acting_user_id)
        structure = normalize_structure(structure_items or [])
        generation = generate(
            spec, spec.start_date, spec.end_date, self._settings.occurrence_generation_cap
        )
        if not generation.ok:
            raise ScheduleValidationError(generation.reason or "No occurrence generated")

        entries = roster.entries() if roster is not None else {}
        with self._unit_of_work("create series"):
            rule = self._occurrences.add_rule(spec)
            occurrence_ids = self._materialize(rule, spec, generation.slots, entries, structure)
            self._emit(
                ScheduleFact(
                    kind=FactKind.OCCURRENCES_CREATED,
                    group_id=spec.group_id,
                    series_id=rule.id,
                    event_ids=occurrence_ids,
                    actor_user_id=acting_user_id,
                    recipient_ids=list(attendee_entries(entries)),
                    new_starts_at=generation.slots[0].starts_at,
                    new_ends_at=generation.slots[-1].ends_at,
                )
            )

        logger.info(
            "Created series rule={} group={} occurrences={} capped={}",
            rule.id,
            spec.group_id,
            len(occurrence_ids),
            generation.capped,
        )
        return SeriesResult(rule_id=rule.id, rule_version=rule.version, occurrence_ids=occurrence_ids)

    def edit_series(
        self,
        rule_id: str,
        spec: RecurrenceSpec,
        *,
        expected_version: int,
        structure_items: Sequence[StructureItemInput] | None = None,
        clear_structure: bool = False,
        roster: RosterInput | None = None,
        reference_occurrence_id: str | None = None,
        acting_user_id: str | None = None,
        as_of: datetime | None = None,
    ) -> SeriesResult:
        """Persist rule changes and rebuild every occurrence starting at or after ``as_of``.

        Occurrences that already started are kept as they are. Regenerated
        occurrences receive the roster and structure of a reference occurrence
        (by default the next upcoming one) unless new ones are supplied.
        """

        now = self._now(as_of)
        rule = self._occurrences.require_rule(rule_id, expected_version)
        if not spec.timezone and rule.timezone:
            spec = replace(spec, timezone=rule.timezone)
        spec = self._prepare_spec(spec, acting_user_id or rule.created_by)
        if spec.group_id != rule.group_id:
            raise ScheduleValidationError("A series cannot be moved to another group")

        baseline = self._baseline(rule, now, reference_occurrence_id)
        desired = roster.entries() if roster is not None else dict(baseline.roster)
        if structure_items:
            structure = normalize_structure(structure_items)
        elif clear_structure:
            structure = []
        else:
            structure = baseline.structure

        result = self._regenerate(
            rule,
            spec,
            now=now,
            desired_roster=desired,
            previous_roster=baseline.roster,
            structure=structure,
            acting_user_id=acting_user_id,
            persist_rule=True,
        )

        if roster is not None:
            delta = RosterDelta.between(baseline.roster, desired)
            if not delta.empty:
                result.propagation = self._sync.propagate_delta(
                    rule.group_id,
                    delta,
                    exclude=result.occurrence_ids,
                    as_of=now,
                    series_id=rule.id,
                )
        return result

    def regenerate_series(
        self,
        rule_id: str,
        *,
        as_of: datetime | None = None,
        acting_user_id: str | None = None,
    ) -> SeriesResult:
        """Rebuild future occurrences from the persisted rule.

        Generation is deterministic for a fixed ``as_of``, so running this again
        after a failure converges on the same occurrence set.
        """

        now = self._now(as_of)
        rule = self._occurrences.require_rule(rule_id)
        spec = RecurrenceSpec.from_record(
            rule, default_timezone=self._settings.schedule_timezone
        ).validated()
        baseline = self._baseline(rule, now, None)
        return self._regenerate(
            rule,
            spec,
            now=now,
            desired_roster=dict(baseline.roster),
            previous_roster=baseline.roster,
            structure=baseline.structure,
            acting_user_id=acting_user_id,
            persist_rule=False,
        )

    def delete_series(
        self,
        rule_id: str,
        *,
        expected_version: int | None = None,
        acting_user_id: str | None = None,
    ) -> int:
        """Delete a rule with all of its occurrences, past and future."""

        rule = self._occurrences.require_rule(rule_id, expected_version)
        now = self._now(None)
        upcoming_ids, old_start, old_end = _span(
            self._occurrences.list_for_rule(rule_id, starts_from=now)
        )
        recipients = self._roster.person_ids_for(upcoming_ids)
        group_id = rule.group_id

        with self._unit_of_work("delete series", kind="recurrence rule", record_id=rule_id):
            deleted = self._occurrences.delete_all_for_rule(rule_id)
            self._emit(
                ScheduleFact(
                    kind=FactKind.SERIES_DELETED,
                    group_id=group_id,
                    series_id=rule_id,
                    event_ids=upcoming_ids,
                    actor_user_id=acting_user_id,
                    recipient_ids=sorted(recipients),
                    old_starts_at=old_start,
                    old_ends_at=old_end,
                )
            )

        logger.info("Deleted series rule={} occurrences={}", rule_id, deleted)
        return deleted

    # ------------------------------------------------------------------
    # Occurrence scope

    def create_standalone_occurrence(
        self,
        draft: OccurrenceDraft,
        roster: RosterInput | None = None,
        structure_items: Sequence[StructureItemInput] | None = None,
        *,
        acting_user_id: str | None = None,
    ) -> OccurrenceResult:
        if not draft.group_id or not draft.club_id:
            raise ScheduleValidationError("An occurrence needs a group and a club")
        require_activity_type(draft.event_type)
        require_title(draft.event_type, draft.title)
        starts_at, ends_at, duration = self._resolve_timing(
            draft.event_type, draft.starts_at, draft.ends_at, draft.duration_minutes
        )
        structure = normalize_structure(structure_items or [])
        entries = roster.entries() if roster is not None else {}

        occurrence = Occurrence(
            series_id=None,
            group_id=draft.group_id,
            club_id=draft.club_id,
            event_type=draft.event_type,
            title=clean_text(draft.title),
            starts_at=starts_at,
            ends_at=ends_at,
            duration_minutes=duration,
            location_text=clean_text(draft.location_text),
            coach_note=clean_text(draft.coach_note),
            status=OccurrenceStatus.SCHEDULED.value,
            created_by=draft.created_by or acting_user_id,
        )
        with self._unit_of_work("create occurrence"):
            self._occurrences.insert_one(occurrence)
            self._roster.add_many([occurrence.id], entries, status=AttendanceStatus.EXPECTED.value)
            self._structure.apply(structure, [occurrence.id])
            self._emit(
                ScheduleFact(
                    kind=FactKind.OCCURRENCES_CREATED,
                    group_id=occurrence.group_id,
                    event_ids=[occurrence.id],
                    actor_user_id=acting_user_id,
                    recipient_ids=list(attendee_entries(entries)),
                    new_starts_at=starts_at,
                    new_ends_at=ends_at,
                )
            )

        logger.info("Created occurrence id={} group={}", occurrence.id, occurrence.group_id)
        return OccurrenceResult(occurrence_id=occurrence.id, version=occurrence.version)

    def edit_occurrence(
        self,
        occurrence_id: str,
        *,
        expected_version: int,
        fields: OccurrenceUpdate | None = None,
        roster: RosterInput | None = None,
        structure_items: Sequence[StructureItemInput] | None = None,
        clear_structure: bool = False,
        acting_user_id: str | None = None,
        as_of: datetime | None = None,
    ) -> OccurrenceResult:
        occurrence = self._occurrences.require(occurrence_id, expected_version)
        before = OccurrenceSnapshot.of(occurrence)
        fields = fields or OccurrenceUpdate()

        starts_at, ends_at, duration = occurrence.starts_at, occurrence.ends_at, occurrence.duration_minutes
        if fields.touches_schedule():
            starts_at, ends_at, duration = self._rescheduled_timing(occurrence, fields)
        if fields.status is not None and fields.status not in {s.value for s in OccurrenceStatus}:
            raise ScheduleValidationError(f"Unknown occurrence status '{fields.status}'")
        title = occurrence.title if fields.title is None else clean_text(fields.title)
        require_title(occurrence.event_type, title)
        structure = normalize_structure(structure_items or [])

        desired = roster.entries() if roster is not None else None
        delta = RosterDelta()
        with self._unit_of_work("edit occurrence", kind="occurrence", record_id=occurrence_id):
            occurrence.starts_at = starts_at
            occurrence.ends_at = ends_at
            occurrence.duration_minutes = duration
            occurrence.title = title
            if fields.location_text is not None:
                occurrence.location_text = clean_text(fields.location_text)
            if fields.coach_note is not None:
                occurrence.coach_note = clean_text(fields.coach_note)
            if fields.status is not None:
                occurrence.status = fields.status

            if desired is not None:
                previous = self._roster.replace(
                    occurrence, desired, status=AttendanceStatus.EXPECTED.value
                )
                delta = RosterDelta.between(previous, desired)
            self._structure.apply(structure, [occurrence.id], clear=clear_structure)
            self._occurrences.touch(occurrence)

            current_roster = desired if desired is not None else before.roster
            if (starts_at, ends_at) != (before.starts_at, before.ends_at) or (
                fields.status == OccurrenceStatus.CANCELLED.value
            ):
                self._emit(
                    ScheduleFact(
                        kind=FactKind.SCHEDULE_CHANGED,
                        group_id=occurrence.group_id,
                        series_id=occurrence.series_id,
                        event_ids=[occurrence.id],
                        actor_user_id=acting_user_id,
                        recipient_ids=list(attendee_entries(current_roster)),
                        old_starts_at=before.starts_at,
                        old_ends_at=before.ends_at,
                        new_starts_at=starts_at,
                        new_ends_at=ends_at,
                    )
                )
            if not delta.empty:
                self._emit(
                    ScheduleFact(
                        kind=FactKind.ROSTER_CHANGED,
                        group_id=occurrence.group_id,
                        series_id=occurrence.series_id,
                        event_ids=[occurrence.id],
                        actor_user_id=acting_user_id,
                        recipient_ids=union_ids(delta.added.keys(), sorted(delta.removed)),
                        new_starts_at=starts_at,
                        new_ends_at=ends_at,
                        added_person_ids=list(delta.added),
                        removed_person_ids=sorted(delta.removed),
                    )
                )

        result = OccurrenceResult(occurrence_id=occurrence.id, version=occurrence.version)
        logger.info("Edited occurrence id={} version={}", occurrence.id, occurrence.version)

        if not delta.empty:
            result.propagation = self._sync.propagate_delta(
                occurrence.group_id,
                delta,
                exclude=[occurrence.id],
                as_of=self._now(as_of),
                series_id=occurrence.series_id,
            )
        return result

    def delete_occurrence(
        self,
        occurrence_id: str,
        *,
        expected_version: int | None = None,
        acting_user_id: str | None = None,
    ) -> None:
        occurrence = self._occurrences.require(occurrence_id, expected_version)
        before = OccurrenceSnapshot.of(occurrence)
        group_id, series_id = occurrence.group_id, occurrence.series_id

        with self._unit_of_work("delete occurrence", kind="occurrence", record_id=occurrence_id):
            self._occurrences.delete_one(occurrence_id)
            self._emit(
                ScheduleFact(
                    kind=FactKind.OCCURRENCE_DELETED,
                    group_id=group_id,
                    series_id=series_id,
                    event_ids=[occurrence_id],
                    actor_user_id=acting_user_id,
                    recipient_ids=list(attendee_entries(before.roster)),
                    old_starts_at=before.starts_at,
                    old_ends_at=before.ends_at,
                )
            )
        logger.info("Deleted occurrence id={} group={}", occurrence_id, group_id)

    def set_attendance(
        self,
        occurrence_id: str,
        person_id: str,
        status: str,
    ) -> RosterEntry:
        if status not in {s.value for s in AttendanceStatus}:
            raise ScheduleValidationError(f"Unknown attendance status '{status}'")
        self._occurrences.require(occurrence_id)
        entry = self._roster.get_entry(occurrence_id, person_id)
        if entry is None:
            raise RecordNotFoundError("roster entry", f"{occurrence_id}:{person_id}")
        if entry.role == RosterRole.COACH.value:
            raise ScheduleValidationError("Attendance is only tracked for players and guests")
        with self._unit_of_work("set attendance"):
            entry.status = status
        return entry

    # ------------------------------------------------------------------
    # Group scope

    def delete_group_keep_history(
        self,
        group_id: str,
        *,
        as_of: datetime | None = None,
        acting_user_id: str | None = None,
    ) -> list[str]:
        """Remove a group's upcoming occurrences and stop its series; the past stays."""

        now = self._now(as_of)
        upcoming_ids, old_start, old_end = _span(
            self._occurrences.list_for_group(group_id, starts_from=now)
        )
        recipients = self._roster.person_ids_for(upcoming_ids)

        with self._unit_of_work("delete group future"):
            deleted_ids = self._occurrences.delete_future_for_group(group_id, now)
            for rule in self._occurrences.rules_for_group(group_id):
                if rule.is_active:
                    rule.is_active = False
                    rule.updated_at = now
            if deleted_ids:
                self._emit(
                    ScheduleFact(
                        kind=FactKind.OCCURRENCE_DELETED,
                        group_id=group_id,
                        event_ids=deleted_ids,
                        actor_user_id=acting_user_id,
                        recipient_ids=sorted(recipients),
                        old_starts_at=old_start,
                        old_ends_at=old_end,
                    )
                )

        logger.info("Removed {} future occurrences of group={}", len(deleted_ids), group_id)
        return deleted_ids

    def retry_propagation(
        self,
        group_id: str,
        added_person_ids: Sequence[str],
        removed_person_ids: Sequence[str],
        *,
        exclude_occurrence_id: str | None = None,
        as_of: datetime | None = None,
        scope: PropagationScope | None = None,
        series_id: str | None = None,
    ) -> PropagationReport:
        return self._sync.propagate(
            group_id,
            added_person_ids,
            removed_person_ids,
            exclude_occurrence_id,
            self._now(as_of),
            scope=scope,
            series_id=series_id,
        )

    def transfer_member(
        self,
        person_id: str,
        *,
        role: str,
        from_group_id: str | None,
        to_group_id: str,
        as_of: datetime | None = None,
    ) -> tuple[PropagationReport | None, PropagationReport]:
        if role not in {r.value for r in RosterRole}:
            raise ScheduleValidationError(f"Unknown roster role '{role}'")
        return self._sync.transfer(
            person_id,
            role=role,
            from_group_id=from_group_id,
            to_group_id=to_group_id,
            as_of=self._now(as_of),
        )

    # ------------------------------------------------------------------
    # Reads

    def get_rule(self, rule_id: str) -> RecurrenceRule:
        return self._occurrences.require_rule(rule_id)

    def get_occurrence(self, occurrence_id: str) -> Occurrence:
        return self._occurrences.require(occurrence_id)

    def list_group_occurrences(
        self,
        group_id: str,
        *,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[Occurrence]:
        return self._occurrences.list_for_group(
            group_id,
            starts_from=self._aware(starts_from) if starts_from else None,
            starts_before=self._aware(starts_before) if starts_before else None,
            status=status,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Internals

    def _regenerate(
        self,
        rule: RecurrenceRule,
        spec: RecurrenceSpec,
        *,
        now: datetime,
        desired_roster: dict[str, str],
        previous_roster: dict[str, str],
        structure: list[StructureItemInput],
        acting_user_id: str | None,
        persist_rule: bool,
    ) -> SeriesResult:
        generation = generate(spec, now, spec.end_date, self._settings.occurrence_generation_cap)
        if spec.is_active and not generation.ok:
            raise ScheduleValidationError(generation.reason or "No future occurrence generated")

        _, old_start, old_end = _span(self._occurrences.list_for_rule(rule.id, starts_from=now))
        with self._unit_of_work("regenerate series", kind="recurrence rule", record_id=rule.id):
            if persist_rule:
                self._occurrences.update_rule(rule, spec)
            deleted = self._occurrences.delete_future_for_rule(rule.id, now)
            occurrence_ids: list[str] = []
            if spec.is_active:
                occurrence_ids = self._materialize(
                    rule, spec, generation.slots, desired_roster, structure
                )
            self._emit(
                ScheduleFact(
                    kind=FactKind.SCHEDULE_CHANGED,
                    group_id=rule.group_id,
                    series_id=rule.id,
                    event_ids=occurrence_ids,
                    actor_user_id=acting_user_id,
                    recipient_ids=union_ids(
                        attendee_entries(desired_roster), attendee_entries(previous_roster)
                    ),
                    old_starts_at=old_start,
                    old_ends_at=old_end,
                    new_starts_at=generation.slots[0].starts_at if occurrence_ids else None,
                    new_ends_at=generation.slots[-1].ends_at if occurrence_ids else None,
                )
            )

        if not occurrence_ids:
            logger.warning("Series rule={} has no occurrence left after {}", rule.id, now.isoformat())
        logger.info(
            "Regenerated series rule={} deleted={} created={}",
            rule.id,
            deleted,
            len(occurrence_ids),
        )
        return SeriesResult(
            rule_id=rule.id,
            rule_version=rule.version,
            occurrence_ids=occurrence_ids,
            deleted_count=deleted,
        )

    def _materialize(
        self,
        rule: RecurrenceRule,
        spec: RecurrenceSpec,
        slots: Sequence[TimeSlot],
        roster: dict[str, str],
        structure: list[StructureItemInput],
    ) -> list[str]:
        stored_duration = min(spec.duration_minutes, self._settings.max_stored_duration_minutes)
        occurrences = [
            Occurrence(
                series_id=rule.id,
                group_id=spec.group_id,
                club_id=spec.club_id,
                event_type=spec.event_type,
                title=spec.title,
                starts_at=slot.starts_at,
                ends_at=slot.ends_at,
                duration_minutes=stored_duration,
                location_text=spec.location_text,
                coach_note=spec.coach_note,
                status=OccurrenceStatus.SCHEDULED.value,
                created_by=spec.created_by,
            )
            for slot in slots
        ]
        occurrence_ids = self._occurrences.insert_batch(occurrences)
        self._roster.add_many(occurrence_ids, roster, status=AttendanceStatus.EXPECTED.value)
        self._structure.apply(structure, occurrence_ids)
        return occurrence_ids

    def _baseline(
        self,
        rule: RecurrenceRule,
        now: datetime,
        reference_occurrence_id: str | None,
    ) -> OccurrenceSnapshot:
        if reference_occurrence_id:
            return OccurrenceSnapshot.of(self._occurrences.require(reference_occurrence_id))
        upcoming = self._occurrences.list_for_rule(rule.id, starts_from=now)
        if upcoming:
            return OccurrenceSnapshot.of(upcoming[0])
        past = self._occurrences.list_for_rule(rule.id, starts_before=now)
        if past:
            return OccurrenceSnapshot.of(past[-1])
        return OccurrenceSnapshot(occurrence_id=None)

    def _prepare_spec(self, spec: RecurrenceSpec, acting_user_id: str | None) -> RecurrenceSpec:
        spec = replace(
            spec,
            timezone=spec.timezone or self._settings.schedule_timezone,
            created_by=spec.created_by or acting_user_id,
        )
        return spec.validated()

    def _aware(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=ZoneInfo(self._settings.schedule_timezone))
        return value

    def _now(self, as_of: datetime | None) -> datetime:
        return self._aware(as_of if as_of is not None else self._clock())

    def _resolve_timing(
        self,
        event_type: str,
        starts_at: datetime,
        ends_at: datetime | None,
        duration_minutes: int | None,
    ) -> tuple[datetime, datetime, int]:
        starts = self._aware(starts_at)
        if event_type == "training" or ends_at is None:
            duration = duration_minutes or self._settings.default_duration_minutes
            if duration < 1:
                raise ScheduleValidationError("Duration must be at least one minute")
            ends = starts + timedelta(minutes=duration)
        else:
            ends = self._aware(ends_at)
            if ends <= starts:
                raise ScheduleValidationError("End must be after start")
            duration = max(1, round((ends - starts).total_seconds() / 60))
        return starts, ends, min(duration, self._settings.max_stored_duration_minutes)

    def _rescheduled_timing(
        self, occurrence: Occurrence, fields: OccurrenceUpdate
    ) -> tuple[datetime, datetime, int]:
        starts = self._aware(fields.starts_at) if fields.starts_at else occurrence.starts_at
        if fields.ends_at is not None:
            ends = self._aware(fields.ends_at)
            if ends <= starts:
                raise ScheduleValidationError("End must be after start")
            duration = max(1, round((ends - starts).total_seconds() / 60))
        elif fields.duration_minutes is not None:
            if fields.duration_minutes < 1:
                raise ScheduleValidationError("Duration must be at least one minute")
            duration = fields.duration_minutes
            ends = starts + timedelta(minutes=duration)
        else:
            length = occurrence.ends_at - occurrence.starts_at
            ends = starts + length
            duration = occurrence.duration_minutes
            return starts, ends, duration
        return starts, ends, min(duration, self._settings.max_stored_duration_minutes)

    def _emit(self, fact: ScheduleFact) -> None:
        self._dispatcher.emit(fact)

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        *,
        kind: str = "record",
        record_id: str = "",
    ) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except StaleDataError as exc:
            self._session.rollback()
            logger.warning("Concurrent modification during {} {}={}", operation, kind, record_id)
            raise VersionConflictError(kind, record_id) from exc
        except SchedulingError:
            self._session.rollback()
            raise
        except Exception:
            self._session.rollback()
            logger.exception("Rolled back {} {}={}", operation, kind, record_id)
            raise


def _span(
    occurrences: Sequence[Occurrence],
) -> tuple[list[str], datetime | None, datetime | None]:
    if not occurrences:
        return [], None, None
    return [o.id for o in occurrences], occurrences[0].starts_at, occurrences[-1].ends_at


__all__ = ["SeriesEditCoordinator"]
