"""Error taxonomy shared by the scheduling services and the HTTP layer."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for failures raised by the scheduling core."""


class ScheduleValidationError(SchedulingError):
    """Raised before any mutation when a rule or occurrence is malformed."""


class RecordNotFoundError(SchedulingError):
    """Raised when a rule or occurrence id no longer exists."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class VersionConflictError(SchedulingError):
    """Raised when an edit was prepared against a stale version of a record."""

    def __init__(
        self,
        kind: str,
        record_id: str,
        *,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        if expected is not None and actual is not None:
            message = (
                f"{kind} {record_id} was modified concurrently "
                f"(expected version {expected}, found {actual})"
            )
        else:
            message = f"{kind} {record_id} was modified concurrently"
        super().__init__(message)
        self.kind = kind
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "RecordNotFoundError",
    "ScheduleValidationError",
    "SchedulingError",
    "VersionConflictError",
]
