"""Copy an ordered training structure onto one or many occurrences."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from sqlalchemy.orm import Session

from app.domain.models import StructureItemInput, normalize_structure
from app.repositories import StructureRepository


class StructureTemplate:
    """Apply structure segments (category, minutes, note) to occurrences.

    An empty ``items`` list means "no change requested" and leaves existing
    segments alone. Clearing requires ``clear=True``; with ``clear=True`` the
    existing segments are removed and ``items`` (possibly empty) written.
    """

    def __init__(self, session: Session, repository: StructureRepository | None = None) -> None:
        self._session = session
        self._repo = repository or StructureRepository(session)

    def apply(
        self,
        items: Sequence[StructureItemInput] | None,
        occurrence_ids: Sequence[str],
        *,
        clear: bool = False,
    ) -> int:
        if not occurrence_ids:
            return 0
        normalized = normalize_structure(items or [])
        if not normalized and not clear:
            return 0
        if not normalized:
            removed = self._repo.clear(occurrence_ids)
            logger.debug("Cleared {} structure items over {} occurrences", removed, len(occurrence_ids))
            return 0
        created = self._repo.replace(occurrence_ids, normalized)
        logger.debug(
            "Applied {} structure items to {} occurrences", len(normalized), len(occurrence_ids)
        )
        return created


__all__ = ["StructureTemplate"]
