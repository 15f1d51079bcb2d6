from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class ActivityType(str, Enum):
    TRAINING = "training"
    INTERCLUB = "interclub"
    CAMP = "camp"
    SESSION = "session"
    EVENT = "event"


class OccurrenceStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class RosterRole(str, Enum):
    PLAYER = "player"
    COACH = "coach"
    GUEST = "guest"


class AttendanceStatus(str, Enum):
    EXPECTED = "expected"
    PRESENT = "present"
    ABSENT = "absent"
    EXCUSED = "excused"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class UTCDateTime(TypeDecorator):
    """Store instants as UTC and always hand back timezone-aware values.

    SQLite has no timezone-aware column type, so values are normalised to UTC
    on the way in and re-tagged on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime values cannot be stored; attach a timezone")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class RecurrenceRule(Base):
    __tablename__ = "club_event_series"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    club_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(
        String, nullable=False, default=ActivityType.TRAINING.value
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    location_text: Mapped[str | None] = mapped_column(String, nullable=True)
    coach_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    time_of_day: Mapped[str] = mapped_column(String(8), nullable=False)
    interval_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    occurrences: Mapped[list["Occurrence"]] = relationship(
        "Occurrence", back_populates="rule", passive_deletes=True
    )

    __mapper_args__ = {"version_id_col": version}


class Occurrence(Base):
    __tablename__ = "club_events"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    series_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("club_event_series.id", ondelete="CASCADE"), nullable=True
    )
    group_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    club_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(
        String, nullable=False, default=ActivityType.TRAINING.value
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    starts_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    location_text: Mapped[str | None] = mapped_column(String, nullable=True)
    coach_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=OccurrenceStatus.SCHEDULED.value
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    rule: Mapped[RecurrenceRule | None] = relationship(
        "RecurrenceRule", back_populates="occurrences"
    )
    roster: Mapped[list["RosterEntry"]] = relationship(
        "RosterEntry",
        back_populates="occurrence",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RosterEntry.id",
    )
    structure_items: Mapped[list["StructureItem"]] = relationship(
        "StructureItem",
        back_populates="occurrence",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StructureItem.position",
    )

    __mapper_args__ = {"version_id_col": version}


class RosterEntry(Base):
    __tablename__ = "club_event_roster"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String, ForeignKey("club_events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    person_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default=RosterRole.PLAYER.value)
    status: Mapped[str | None] = mapped_column(
        String, nullable=True, default=AttendanceStatus.EXPECTED.value
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    occurrence: Mapped[Occurrence] = relationship("Occurrence", back_populates="roster")

    __table_args__ = (
        UniqueConstraint("event_id", "person_id", name="uq_roster_event_person"),
    )


class StructureItem(Base):
    __tablename__ = "club_event_structure_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(
        String, ForeignKey("club_events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    occurrence: Mapped[Occurrence] = relationship("Occurrence", back_populates="structure_items")

    __table_args__ = (
        UniqueConstraint("event_id", "position", name="uq_structure_event_position"),
    )


class NotificationOutbox(Base):
    __tablename__ = "notification_outbox"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    group_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    actor_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    dispatched_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
