"""Typed domain representations used by the generator, repositories and services."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum, IntEnum
from typing import Any

from .errors import ScheduleValidationError


class Weekday(IntEnum):
    """Calendar weekday numbering used by stored rules (Sunday first)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday() is Monday=0; shift so Sunday=0.
        return cls((day.weekday() + 1) % 7)


class PropagationScope(str, Enum):
    GROUP = "group"
    SERIES = "series"


def parse_time_of_day(value: str | time) -> time:
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    candidate = (value or "").strip()
    if len(candidate) not in (5, 8):
        raise ScheduleValidationError(f"Invalid time of day '{value}' (expected HH:MM)")
    try:
        parsed = time.fromisoformat(candidate)
    except ValueError as exc:
        raise ScheduleValidationError(f"Invalid time of day '{value}' (expected HH:MM)") from exc
    return parsed


def normalize_time_of_day(value: str | time) -> str:
    """Return the canonical HH:MM:SS representation."""

    return parse_time_of_day(value).strftime("%H:%M:%S")


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True, slots=True)
class RecurrenceSpec:
    """Declarative recurrence template, independent of persistence."""

    group_id: str
    club_id: str
    weekday: int
    time_of_day: str
    start_date: date
    end_date: date
    duration_minutes: int
    interval_weeks: int = 1
    event_type: str = "training"
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    is_active: bool = True
    timezone: str = ""
    created_by: str | None = None

    @classmethod
    def from_record(cls, record: Any, *, default_timezone: str = "UTC") -> "RecurrenceSpec":
        return cls(
            group_id=record.group_id,
            club_id=record.club_id,
            weekday=record.weekday,
            time_of_day=record.time_of_day,
            start_date=record.start_date,
            end_date=record.end_date,
            duration_minutes=record.duration_minutes,
            interval_weeks=record.interval_weeks,
            event_type=record.event_type,
            title=record.title,
            location_text=record.location_text,
            coach_note=record.coach_note,
            is_active=record.is_active,
            timezone=record.timezone or default_timezone,
            created_by=record.created_by,
        )

    def validated(self) -> "RecurrenceSpec":
        """Return a normalized copy or raise :class:`ScheduleValidationError`."""

        if not self.group_id or not self.club_id:
            raise ScheduleValidationError("A recurrence needs a group and a club")
        if self.end_date < self.start_date:
            raise ScheduleValidationError("End date must be on or after start date")
        if self.interval_weeks < 1:
            raise ScheduleValidationError("Interval must be at least one week")
        if self.weekday not in range(7):
            raise ScheduleValidationError("Weekday must be between 0 (Sunday) and 6 (Saturday)")
        if self.duration_minutes < 1:
            raise ScheduleValidationError("Duration must be at least one minute")
        require_activity_type(self.event_type)
        require_title(self.event_type, self.title)
        return RecurrenceSpec(
            group_id=self.group_id,
            club_id=self.club_id,
            weekday=int(self.weekday),
            time_of_day=normalize_time_of_day(self.time_of_day),
            start_date=self.start_date,
            end_date=self.end_date,
            duration_minutes=self.duration_minutes,
            interval_weeks=self.interval_weeks,
            event_type=self.event_type,
            title=clean_text(self.title),
            location_text=clean_text(self.location_text),
            coach_note=clean_text(self.coach_note),
            is_active=self.is_active,
            timezone=self.timezone,
            created_by=self.created_by,
        )


ACTIVITY_TYPES = frozenset({"training", "interclub", "camp", "session", "event"})


def require_activity_type(event_type: str) -> None:
    if event_type not in ACTIVITY_TYPES:
        raise ScheduleValidationError(f"Unknown activity type '{event_type}'")


def require_title(event_type: str, title: str | None) -> None:
    if event_type in {"session", "event"} and not clean_text(title):
        raise ScheduleValidationError(f"A title is required for {event_type} activities")


@dataclass(frozen=True, slots=True)
class TimeSlot:
    starts_at: datetime
    ends_at: datetime


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Outcome of materializing a rule; empty results carry a reason instead of raising."""

    slots: tuple[TimeSlot, ...] = ()
    reason: str | None = None
    capped: bool = False

    @property
    def ok(self) -> bool:
        return bool(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[TimeSlot]:
        return iter(self.slots)


@dataclass(slots=True)
class OccurrenceDraft:
    """Fields for a standalone occurrence before timing rules are applied."""

    group_id: str
    club_id: str
    starts_at: datetime
    event_type: str = "training"
    ends_at: datetime | None = None
    duration_minutes: int | None = None
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    created_by: str | None = None


@dataclass(slots=True)
class OccurrenceUpdate:
    """Occurrence-scope field changes; ``None`` leaves a field untouched."""

    starts_at: datetime | None = None
    ends_at: datetime | None = None
    duration_minutes: int | None = None
    title: str | None = None
    location_text: str | None = None
    coach_note: str | None = None
    status: str | None = None

    def touches_schedule(self) -> bool:
        return any(
            value is not None
            for value in (self.starts_at, self.ends_at, self.duration_minutes)
        )


@dataclass(slots=True)
class RosterInput:
    """Desired roster of one occurrence."""

    players: list[str] = field(default_factory=list)
    coaches: list[str] = field(default_factory=list)
    guests: list[str] = field(default_factory=list)

    def entries(self) -> dict[str, str]:
        """Map person id to role; a person listed twice keeps the first role seen.

        Players take precedence over guests, and both over coaches, so that a
        coach who also attends keeps an attendance status.
        """

        mapping: dict[str, str] = {}
        for role, people in (("player", self.players), ("guest", self.guests), ("coach", self.coaches)):
            for person_id in people:
                key = str(person_id or "").strip()
                if key and key not in mapping:
                    mapping[key] = role
        return mapping


def attendee_entries(entries: Mapping[str, str]) -> dict[str, str]:
    return {person_id: role for person_id, role in entries.items() if role != "coach"}


@dataclass(frozen=True, slots=True)
class RosterDelta:
    added: Mapping[str, str] = field(default_factory=dict)
    removed: frozenset[str] = frozenset()

    @property
    def empty(self) -> bool:
        return not self.added and not self.removed

    @classmethod
    def between(cls, previous: Mapping[str, str], current: Mapping[str, str]) -> "RosterDelta":
        """Delta of attendee membership; coach assignments never propagate."""

        before = attendee_entries(previous)
        after = attendee_entries(current)
        added = {person_id: role for person_id, role in after.items() if person_id not in before}
        removed = frozenset(person_id for person_id in before if person_id not in after)
        return cls(added=added, removed=removed)


@dataclass(frozen=True, slots=True)
class StructureItemInput:
    category: str
    minutes: int
    note: str | None = None
    position: int | None = None


def normalize_structure(items: Iterable[StructureItemInput]) -> list[StructureItemInput]:
    """Drop incomplete lines and assign positions; duplicate positions are rejected."""

    normalized: list[StructureItemInput] = []
    seen: set[int] = set()
    for index, item in enumerate(items):
        category = (item.category or "").strip()
        if not category or item.minutes is None or item.minutes <= 0:
            continue
        position = index if item.position is None else item.position
        if position in seen:
            raise ScheduleValidationError(f"Duplicate structure position {position}")
        seen.add(position)
        normalized.append(
            StructureItemInput(
                category=category,
                minutes=int(item.minutes),
                note=clean_text(item.note),
                position=position,
            )
        )
    normalized.sort(key=lambda item: item.position)
    return normalized


@dataclass(slots=True)
class PropagationReport:
    """Best-effort fan-out outcome; failures never unwind the originating edit."""

    group_id: str
    scope: PropagationScope = PropagationScope.GROUP
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    target_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def warning(self) -> str | None:
        if not self.failures:
            return None
        count = len(self.failures)
        noun = "session" if count == 1 else "sessions"
        return f"roster updated; {count} other {noun} could not be updated, retry needed"


@dataclass(slots=True)
class SeriesResult:
    rule_id: str
    rule_version: int
    occurrence_ids: list[str]
    deleted_count: int = 0
    propagation: PropagationReport | None = None

    @property
    def series_empty_going_forward(self) -> bool:
        return not self.occurrence_ids

    @property
    def warnings(self) -> list[str]:
        if self.propagation and self.propagation.warning:
            return [self.propagation.warning]
        return []


@dataclass(slots=True)
class OccurrenceResult:
    occurrence_id: str
    version: int
    propagation: PropagationReport | None = None

    @property
    def warnings(self) -> list[str]:
        if self.propagation and self.propagation.warning:
            return [self.propagation.warning]
        return []
