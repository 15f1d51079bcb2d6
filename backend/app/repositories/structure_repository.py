"""Structure item persistence helpers."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.domain.models import StructureItemInput
from app.models import StructureItem


class StructureRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def items_for(self, event_id: str) -> list[StructureItem]:
        query = (
            select(StructureItem)
            .where(StructureItem.event_id == event_id)
            .order_by(StructureItem.position.asc())
        )
        return list(self._session.execute(query).scalars().all())

    def clear(self, event_ids: Sequence[str]) -> int:
        if not event_ids:
            return 0
        result = self._session.execute(
            delete(StructureItem).where(StructureItem.event_id.in_(list(event_ids)))
        )
        return result.rowcount or 0

    def replace(self, event_ids: Sequence[str], items: Sequence[StructureItemInput]) -> int:
        """Swap the items of every event for fresh copies of ``items``."""

        if not event_ids:
            return 0
        self.clear(event_ids)
        created = 0
        for event_id in event_ids:
            for item in items:
                self._session.add(
                    StructureItem(
                        event_id=event_id,
                        category=item.category,
                        minutes=item.minutes,
                        note=item.note,
                        position=item.position,
                    )
                )
                created += 1
        self._session.flush()
        return created


__all__ = ["StructureRepository"]
