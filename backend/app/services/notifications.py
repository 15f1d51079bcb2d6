"""Structured schedule facts handed to the external notification dispatcher.

The scheduling core never formats or delivers messages. It records what
happened (which occurrences, which group, old and new time range, who is
affected) and a dispatcher decides how to tell people.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from loguru import logger
from sqlalchemy.orm import Session

from app.models import NotificationOutbox


class FactKind(str, Enum):
    OCCURRENCES_CREATED = "occurrences_created"
    SCHEDULE_CHANGED = "schedule_changed"
    ROSTER_CHANGED = "roster_changed"
    OCCURRENCE_DELETED = "occurrence_deleted"
    SERIES_DELETED = "series_deleted"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(slots=True)
class ScheduleFact:
    kind: FactKind
    group_id: str
    event_ids: list[str] = field(default_factory=list)
    series_id: str | None = None
    actor_user_id: str | None = None
    recipient_ids: list[str] = field(default_factory=list)
    old_starts_at: datetime | None = None
    old_ends_at: datetime | None = None
    new_starts_at: datetime | None = None
    new_ends_at: datetime | None = None
    added_person_ids: list[str] = field(default_factory=list)
    removed_person_ids: list[str] = field(default_factory=list)

    def recipients(self) -> list[str]:
        """Unique recipients in first-seen order, never including the actor."""

        seen: list[str] = []
        for person_id in self.recipient_ids:
            if person_id and person_id != self.actor_user_id and person_id not in seen:
                seen.append(person_id)
        return seen

    def to_payload(self) -> dict[str, Any]:
        return {
            "event_ids": list(self.event_ids),
            "series_id": self.series_id,
            "recipient_ids": self.recipients(),
            "old_range": {"starts_at": _iso(self.old_starts_at), "ends_at": _iso(self.old_ends_at)},
            "new_range": {"starts_at": _iso(self.new_starts_at), "ends_at": _iso(self.new_ends_at)},
            "added_person_ids": list(self.added_person_ids),
            "removed_person_ids": list(self.removed_person_ids),
        }


class NotificationDispatcher(Protocol):
    """Interface implemented by notification sinks."""

    def emit(self, fact: ScheduleFact) -> None:
        """Accept a fact for later rendering and delivery."""
        raise NotImplementedError


class OutboxDispatcher:
    """Write facts to ``notification_outbox`` inside the caller's transaction.

    Facts therefore commit or roll back together with the change they describe.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def emit(self, fact: ScheduleFact) -> None:
        recipients = fact.recipients()
        if not recipients:
            logger.debug("Skipping {} fact without recipients group={}", fact.kind.value, fact.group_id)
            return
        self._session.add(
            NotificationOutbox(
                kind=fact.kind.value,
                group_id=fact.group_id,
                actor_user_id=fact.actor_user_id,
                payload=fact.to_payload(),
            )
        )


def union_ids(*groups: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for value in group:
            if value and value not in merged:
                merged.append(value)
    return merged


__all__ = [
    "FactKind",
    "NotificationDispatcher",
    "OutboxDispatcher",
    "ScheduleFact",
    "union_ids",
]
