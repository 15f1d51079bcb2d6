"""Repository abstractions for database interactions."""

from .occurrence_repository import OccurrenceRepository
from .roster_repository import RosterRepository
from .structure_repository import StructureRepository
from .types import OccurrenceSnapshot

__all__ = [
    "OccurrenceRepository",
    "OccurrenceSnapshot",
    "RosterRepository",
    "StructureRepository",
]
