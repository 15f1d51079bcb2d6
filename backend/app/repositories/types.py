"""Shared repository result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.models import StructureItemInput
from app.models import Occurrence


@dataclass(slots=True)
class OccurrenceSnapshot:
    """Roster and structure of one occurrence captured before it is replaced."""

    occurrence_id: str | None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    roster: dict[str, str] = field(default_factory=dict)
    structure: list[StructureItemInput] = field(default_factory=list)

    @classmethod
    def of(cls, occurrence: Occurrence) -> "OccurrenceSnapshot":
        return cls(
            occurrence_id=occurrence.id,
            starts_at=occurrence.starts_at,
            ends_at=occurrence.ends_at,
            roster={entry.person_id: entry.role for entry in occurrence.roster},
            structure=[
                StructureItemInput(
                    category=item.category,
                    minutes=item.minutes,
                    note=item.note,
                    position=item.position,
                )
                for item in occurrence.structure_items
            ],
        )


__all__ = ["OccurrenceSnapshot"]
