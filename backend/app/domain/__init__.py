"""Domain models and errors for recurring club activities."""

from .errors import (
    RecordNotFoundError,
    ScheduleValidationError,
    SchedulingError,
    VersionConflictError,
)
from .models import (
    GenerationResult,
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
    Weekday,
)

__all__ = [
    "GenerationResult",
    "OccurrenceDraft",
    "OccurrenceResult",
    "OccurrenceUpdate",
    "PropagationReport",
    "PropagationScope",
    "RecordNotFoundError",
    "RecurrenceSpec",
    "RosterDelta",
    "RosterInput",
    "ScheduleValidationError",
    "SchedulingError",
    "SeriesResult",
    "StructureItemInput",
    "TimeSlot",
    "VersionConflictError",
    "Weekday",
]
