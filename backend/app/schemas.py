from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .domain.models import (
    OccurrenceDraft,
    OccurrenceUpdate,
    PropagationReport,
    RecurrenceSpec,
    RosterInput,
    StructureItemInput,
    normalize_time_of_day,
)
from .domain.errors import ScheduleValidationError

ActivityTypeName = Literal["training", "interclub", "camp", "session", "event"]


class RosterPayload(BaseModel):
    players: list[str] = Field(default_factory=list)
    coaches: list[str] = Field(default_factory=list)
    guests: list[str] = Field(default_factory=list)

    def to_domain(self) -> RosterInput:
        return RosterInput(
            players=list(self.players), coaches=list(self.coaches), guests=list(self.guests)
        )


class StructureItemPayload(BaseModel):
    category: str = ""
    minutes: int = 0
    note: str | None = None
    position: int | None = None

    def to_domain(self) -> StructureItemInput:
        return StructureItemInput(
            category=self.category, minutes=self.minutes, note=self.note, position=self.position
        )


class SeriesFields(BaseModel):
    group_id: str
    club_id: str
    event_type: ActivityTypeName = "training"
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    weekday: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    time_of_day: str = Field(description="Local start time, HH:MM or HH:MM:SS")
    interval_weeks: int = Field(default=1, ge=1)
    start_date: date
    end_date: date
    duration_minutes: int = Field(default=60, ge=1)
    timezone: str | None = None
    is_active: bool = True

    @field_validator("time_of_day")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        try:
            return normalize_time_of_day(value)
        except ScheduleValidationError as exc:
            raise ValueError(str(exc)) from exc

    def to_spec(self, created_by: str | None = None) -> RecurrenceSpec:
        return RecurrenceSpec(
            group_id=self.group_id,
            club_id=self.club_id,
            weekday=self.weekday,
            time_of_day=self.time_of_day,
            start_date=self.start_date,
            end_date=self.end_date,
            duration_minutes=self.duration_minutes,
            interval_weeks=self.interval_weeks,
            event_type=self.event_type,
            title=self.title,
            location_text=self.location_text,
            coach_note=self.coach_note,
            is_active=self.is_active,
            timezone=self.timezone or "",
            created_by=created_by,
        )


class SeriesCreate(SeriesFields):
    roster: RosterPayload = Field(default_factory=RosterPayload)
    structure_items: list[StructureItemPayload] = Field(default_factory=list)


class SeriesUpdate(SeriesFields):
    expected_version: int
    roster: RosterPayload | None = None
    structure_items: list[StructureItemPayload] = Field(default_factory=list)
    clear_structure: bool = False
    reference_occurrence_id: str | None = None
    as_of: datetime | None = None


class OccurrenceCreate(BaseModel):
    group_id: str
    club_id: str
    event_type: ActivityTypeName = "training"
    title: str | None = None
    starts_at: datetime
    ends_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1)
    location_text: str | None = None
    coach_note: str | None = None
    roster: RosterPayload = Field(default_factory=RosterPayload)
    structure_items: list[StructureItemPayload] = Field(default_factory=list)

    def to_draft(self, created_by: str | None = None) -> OccurrenceDraft:
        return OccurrenceDraft(
            group_id=self.group_id,
            club_id=self.club_id,
            starts_at=self.starts_at,
            event_type=self.event_type,
            ends_at=self.ends_at,
            duration_minutes=self.duration_minutes,
            title=self.title,
            location_text=self.location_text,
            coach_note=self.coach_note,
            created_by=created_by,
        )


class OccurrencePatch(BaseModel):
    expected_version: int
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1)
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    status: Literal["scheduled", "cancelled"] | None = None
    roster: RosterPayload | None = None
    structure_items: list[StructureItemPayload] = Field(default_factory=list)
    clear_structure: bool = False
    as_of: datetime | None = None

    def to_update(self) -> OccurrenceUpdate:
        return OccurrenceUpdate(
            starts_at=self.starts_at,
            ends_at=self.ends_at,
            duration_minutes=self.duration_minutes,
            title=self.title,
            location_text=self.location_text,
            coach_note=self.coach_note,
            status=self.status,
        )


class AttendanceUpdate(BaseModel):
    status: Literal["expected", "present", "absent", "excused"]


class RosterSyncRequest(BaseModel):
    added_person_ids: list[str] = Field(default_factory=list)
    removed_person_ids: list[str] = Field(default_factory=list)
    exclude_occurrence_id: str | None = None
    as_of: datetime | None = None
    scope: Literal["group", "series"] | None = None
    series_id: str | None = None


class MemberTransfer(BaseModel):
    role: Literal["player", "coach", "guest"] = "player"
    from_group_id: str | None = None
    to_group_id: str
    as_of: datetime | None = None


class RegenerateRequest(BaseModel):
    as_of: datetime | None = None


# ----------------------------------------------------------------------
# Responses


class PropagationSummary(BaseModel):
    group_id: str
    scope: str
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    target_ids: list[str] = Field(default_factory=list)
    updated_ids: list[str] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)
    warning: str | None = None

    @classmethod
    def from_report(cls, report: PropagationReport | None) -> "PropagationSummary | None":
        if report is None:
            return None
        return cls(
            group_id=report.group_id,
            scope=report.scope.value,
            added=list(report.added),
            removed=list(report.removed),
            target_ids=list(report.target_ids),
            updated_ids=list(report.updated_ids),
            failures=dict(report.failures),
            warning=report.warning,
        )


class SeriesMutationResponse(BaseModel):
    rule_id: str
    rule_version: int
    occurrence_ids: list[str]
    deleted_count: int = 0
    series_empty_going_forward: bool = False
    warnings: list[str] = Field(default_factory=list)
    propagation: PropagationSummary | None = None


class OccurrenceMutationResponse(BaseModel):
    occurrence_id: str
    version: int
    warnings: list[str] = Field(default_factory=list)
    propagation: PropagationSummary | None = None


class RosterEntryOut(BaseModel):
    person_id: str
    role: str
    status: str | None = None

    model_config = {"from_attributes": True}


class StructureItemOut(BaseModel):
    category: str
    minutes: int
    note: str | None = None
    position: int

    model_config = {"from_attributes": True}


class OccurrenceOut(BaseModel):
    id: str
    series_id: str | None = None
    group_id: str
    club_id: str
    event_type: str
    title: str | None = None
    starts_at: datetime
    ends_at: datetime
    duration_minutes: int
    location_text: str | None = None
    coach_note: str | None = None
    status: str
    version: int
    roster: list[RosterEntryOut] = Field(default_factory=list)
    structure_items: list[StructureItemOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class OccurrenceSummary(BaseModel):
    id: str
    series_id: str | None = None
    event_type: str
    title: str | None = None
    starts_at: datetime
    ends_at: datetime
    status: str
    version: int
    roster: list[RosterEntryOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class OccurrenceList(BaseModel):
    total: int
    items: list[OccurrenceSummary]


class SeriesOut(BaseModel):
    id: str
    group_id: str
    club_id: str
    event_type: str
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    weekday: int
    time_of_day: str
    interval_weeks: int
    start_date: date
    end_date: date
    duration_minutes: int
    timezone: str | None = None
    is_active: bool
    version: int

    model_config = {"from_attributes": True}


class DeletionResponse(BaseModel):
    deleted_count: int
    occurrence_ids: list[str] = Field(default_factory=list)


class TransferResponse(BaseModel):
    removal: PropagationSummary | None = None
    addition: PropagationSummary
    warnings: list[str] = Field(default_factory=list)


def warnings_of(*reports: PropagationReport | None) -> list[str]:
    return [report.warning for report in reports if report is not None and report.warning]


def payload_items(items: list[StructureItemPayload]) -> list[StructureItemInput]:
    return [item.to_domain() for item in items]
