from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .domain.errors import RecordNotFoundError, ScheduleValidationError, VersionConflictError
from .domain.models import PropagationScope
from .services.series_coordinator import SeriesEditCoordinator

app = FastAPI(title="Club Planner Scheduling API", version="0.1.0", debug=settings.debug)

ActingUser = Annotated[str | None, Header(alias="X-User-Id", description="Acting user id")]


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(ScheduleValidationError)
def _validation_error(_: Request, exc: ScheduleValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RecordNotFoundError)
def _not_found(_: Request, exc: RecordNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(VersionConflictError)
def _conflict(_: Request, exc: VersionConflictError) -> JSONResponse:
    logger.warning("Rejected stale write: {}", exc)
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "expected": exc.expected, "actual": exc.actual},
    )


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _coordinator(db=Depends(get_db)) -> SeriesEditCoordinator:
    """Provide the scheduling coordinator wired with a SQLAlchemy session."""

    return SeriesEditCoordinator(db)


def _series_response(result) -> schemas.SeriesMutationResponse:
    return schemas.SeriesMutationResponse(
        rule_id=result.rule_id,
        rule_version=result.rule_version,
        occurrence_ids=list(result.occurrence_ids),
        deleted_count=result.deleted_count,
        series_empty_going_forward=result.series_empty_going_forward,
        warnings=result.warnings,
        propagation=schemas.PropagationSummary.from_report(result.propagation),
    )


def _occurrence_response(result) -> schemas.OccurrenceMutationResponse:
    return schemas.OccurrenceMutationResponse(
        occurrence_id=result.occurrence_id,
        version=result.version,
        warnings=result.warnings,
        propagation=schemas.PropagationSummary.from_report(result.propagation),
    )


# ----------------------------------------------------------------------
# Series


@app.post("/series", response_model=schemas.SeriesMutationResponse, status_code=201, tags=["series"])
def create_series(
    payload: schemas.SeriesCreate,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Create a recurrence rule and materialize its occurrences."""

    result = coordinator.create_series(
        payload.to_spec(created_by=acting_user),
        payload.roster.to_domain(),
        schemas.payload_items(payload.structure_items),
        acting_user_id=acting_user,
    )
    return _series_response(result)


@app.get("/series/{rule_id}", response_model=schemas.SeriesOut, tags=["series"])
def get_series(rule_id: str, coordinator: SeriesEditCoordinator = Depends(_coordinator)):
    """Retrieve a recurrence rule."""

    return coordinator.get_rule(rule_id)


@app.put("/series/{rule_id}", response_model=schemas.SeriesMutationResponse, tags=["series"])
def edit_series(
    rule_id: str,
    payload: schemas.SeriesUpdate,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Apply a series-scope edit and regenerate every upcoming occurrence."""

    result = coordinator.edit_series(
        rule_id,
        payload.to_spec(),
        expected_version=payload.expected_version,
        structure_items=schemas.payload_items(payload.structure_items),
        clear_structure=payload.clear_structure,
        roster=payload.roster.to_domain() if payload.roster is not None else None,
        reference_occurrence_id=payload.reference_occurrence_id,
        acting_user_id=acting_user,
        as_of=payload.as_of,
    )
    return _series_response(result)


@app.delete("/series/{rule_id}", response_model=schemas.DeletionResponse, tags=["series"])
def delete_series(
    rule_id: str,
    expected_version: Annotated[int | None, Query()] = None,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Delete a rule together with all of its occurrences."""

    deleted = coordinator.delete_series(
        rule_id, expected_version=expected_version, acting_user_id=acting_user
    )
    return schemas.DeletionResponse(deleted_count=deleted)


@app.post(
    "/series/{rule_id}/regenerate",
    response_model=schemas.SeriesMutationResponse,
    tags=["series"],
)
def regenerate_series(
    rule_id: str,
    payload: schemas.RegenerateRequest | None = None,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Rebuild upcoming occurrences from the stored rule."""

    as_of = payload.as_of if payload is not None else None
    result = coordinator.regenerate_series(rule_id, as_of=as_of, acting_user_id=acting_user)
    return _series_response(result)


# ----------------------------------------------------------------------
# Occurrences


@app.post(
    "/occurrences",
    response_model=schemas.OccurrenceMutationResponse,
    status_code=201,
    tags=["occurrences"],
)
def create_occurrence(
    payload: schemas.OccurrenceCreate,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Create a one-off occurrence outside any series."""

    result = coordinator.create_standalone_occurrence(
        payload.to_draft(created_by=acting_user),
        payload.roster.to_domain(),
        schemas.payload_items(payload.structure_items),
        acting_user_id=acting_user,
    )
    return _occurrence_response(result)


@app.get("/occurrences/{occurrence_id}", response_model=schemas.OccurrenceOut, tags=["occurrences"])
def get_occurrence(occurrence_id: str, coordinator: SeriesEditCoordinator = Depends(_coordinator)):
    """Retrieve one occurrence with its roster and structure."""

    return coordinator.get_occurrence(occurrence_id)


@app.patch(
    "/occurrences/{occurrence_id}",
    response_model=schemas.OccurrenceMutationResponse,
    tags=["occurrences"],
)
def edit_occurrence(
    occurrence_id: str,
    payload: schemas.OccurrencePatch,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Edit a single occurrence; roster changes are forwarded to later sessions."""

    result = coordinator.edit_occurrence(
        occurrence_id,
        expected_version=payload.expected_version,
        fields=payload.to_update(),
        roster=payload.roster.to_domain() if payload.roster is not None else None,
        structure_items=schemas.payload_items(payload.structure_items),
        clear_structure=payload.clear_structure,
        acting_user_id=acting_user,
        as_of=payload.as_of,
    )
    return _occurrence_response(result)


@app.delete("/occurrences/{occurrence_id}", status_code=204, tags=["occurrences"])
def delete_occurrence(
    occurrence_id: str,
    expected_version: Annotated[int | None, Query()] = None,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
) -> None:
    """Delete one occurrence; its series and siblings are untouched."""

    coordinator.delete_occurrence(
        occurrence_id, expected_version=expected_version, acting_user_id=acting_user
    )


@app.put(
    "/occurrences/{occurrence_id}/attendance/{person_id}",
    response_model=schemas.RosterEntryOut,
    tags=["occurrences"],
)
def set_attendance(
    occurrence_id: str,
    person_id: str,
    payload: schemas.AttendanceUpdate,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Record a player's or guest's attendance status."""

    return coordinator.set_attendance(occurrence_id, person_id, payload.status)


# ----------------------------------------------------------------------
# Groups and members


@app.get("/groups/{group_id}/occurrences", response_model=schemas.OccurrenceList, tags=["groups"])
def list_group_occurrences(
    group_id: str,
    starts_from: Annotated[datetime | None, Query(description="Inclusive lower bound")] = None,
    starts_before: Annotated[datetime | None, Query(description="Exclusive upper bound")] = None,
    status: Annotated[str | None, Query(pattern="^(scheduled|cancelled)$")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 200,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """List a group's occurrences in chronological order."""

    items = coordinator.list_group_occurrences(
        group_id,
        starts_from=starts_from,
        starts_before=starts_before,
        status=status,
        limit=limit,
    )
    return schemas.OccurrenceList(total=len(items), items=items)


@app.delete(
    "/groups/{group_id}/future-occurrences",
    response_model=schemas.DeletionResponse,
    tags=["groups"],
)
def delete_group_future(
    group_id: str,
    as_of: Annotated[datetime | None, Query()] = None,
    acting_user: ActingUser = None,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Remove a group's upcoming occurrences while keeping its history."""

    deleted_ids = coordinator.delete_group_keep_history(
        group_id, as_of=as_of, acting_user_id=acting_user
    )
    return schemas.DeletionResponse(deleted_count=len(deleted_ids), occurrence_ids=deleted_ids)


@app.post("/groups/{group_id}/roster-sync", response_model=schemas.PropagationSummary, tags=["groups"])
def sync_group_roster(
    group_id: str,
    payload: schemas.RosterSyncRequest,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Forward roster additions and removals to the group's upcoming occurrences."""

    report = coordinator.retry_propagation(
        group_id,
        payload.added_person_ids,
        payload.removed_person_ids,
        exclude_occurrence_id=payload.exclude_occurrence_id,
        as_of=payload.as_of,
        scope=PropagationScope(payload.scope) if payload.scope else None,
        series_id=payload.series_id,
    )
    return schemas.PropagationSummary.from_report(report)


@app.post(
    "/members/{person_id}/transfer",
    response_model=schemas.TransferResponse,
    tags=["members"],
)
def transfer_member(
    person_id: str,
    payload: schemas.MemberTransfer,
    coordinator: SeriesEditCoordinator = Depends(_coordinator),
):
    """Move a member's upcoming participation to another group."""

    removal, addition = coordinator.transfer_member(
        person_id,
        role=payload.role,
        from_group_id=payload.from_group_id,
        to_group_id=payload.to_group_id,
        as_of=payload.as_of,
    )
    return schemas.TransferResponse(
        removal=schemas.PropagationSummary.from_report(removal),
        addition=schemas.PropagationSummary.from_report(addition),
        warnings=schemas.warnings_of(removal, addition),
    )
