from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.domain.errors import RecordNotFoundError, ScheduleValidationError, VersionConflictError
from app.domain.models import (
    OccurrenceResult,
    PropagationReport,
    PropagationScope,
    SeriesResult,
)
from app.main import _coordinator, app
from app.services.series_coordinator import SeriesEditCoordinator

SERIES_PAYLOAD = {
    "group_id": "group-u12",
    "club_id": "club-1",
    "weekday": 2,
    "time_of_day": "18:00",
    "start_date": "2025-03-01",
    "end_date": "2025-03-31",
    "duration_minutes": 90,
    "roster": {"players": ["p1"], "coaches": ["coach-a"]},
    "structure_items": [{"category": "warm-up", "minutes": 15}],
}


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_coordinator():
    coordinator = MagicMock(spec=SeriesEditCoordinator)
    app.dependency_overrides[_coordinator] = lambda: coordinator
    return coordinator


def test_healthcheck(client):
    """Verify the healthcheck endpoint returns a successful response."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_series(client, mock_coordinator):
    """Verify POST /series forwards a normalized rule and returns created ids."""
    mock_coordinator.create_series.return_value = SeriesResult(
        rule_id="rule-1", rule_version=1, occurrence_ids=["o1", "o2"]
    )

    response = client.post("/series", json=SERIES_PAYLOAD, headers={"X-User-Id": "coach-a"})

    assert response.status_code == 201
    body = response.json()
    assert body["rule_id"] == "rule-1"
    assert body["occurrence_ids"] == ["o1", "o2"]
    assert body["warnings"] == []
    spec, roster, items = mock_coordinator.create_series.call_args.args
    assert spec.time_of_day == "18:00:00"
    assert spec.created_by == "coach-a"
    assert roster.players == ["p1"]
    assert items[0].category == "warm-up"
    assert mock_coordinator.create_series.call_args.kwargs["acting_user_id"] == "coach-a"


def test_create_series_validation_error_maps_to_400(client, mock_coordinator):
    """Verify scheduling validation failures are reported as 400."""
    mock_coordinator.create_series.side_effect = ScheduleValidationError("No occurrence generated")

    response = client.post("/series", json=SERIES_PAYLOAD)

    assert response.status_code == 400
    assert response.json() == {"detail": "No occurrence generated"}


def test_create_series_rejects_bad_time_of_day(client, mock_coordinator):
    """Verify an unparsable time of day fails request validation."""
    response = client.post("/series", json={**SERIES_PAYLOAD, "time_of_day": "25h"})

    assert response.status_code == 422
    mock_coordinator.create_series.assert_not_called()


def test_edit_series_conflict_maps_to_409(client, mock_coordinator):
    """Verify a stale version is reported as 409."""
    mock_coordinator.edit_series.side_effect = VersionConflictError(
        "recurrence rule", "rule-1", expected=1, actual=2
    )

    response = client.put("/series/rule-1", json={**SERIES_PAYLOAD, "expected_version": 1})

    assert response.status_code == 409
    assert response.json()["actual"] == 2


def test_edit_series_returns_propagation_warning(client, mock_coordinator):
    """Verify propagation failures come back as warnings with a 200."""
    report = PropagationReport(
        group_id="group-u12",
        scope=PropagationScope.GROUP,
        added=("p3",),
        target_ids=["s1", "s2"],
        updated_ids=["s1"],
        failures={"s2": "connection reset"},
    )
    mock_coordinator.edit_series.return_value = SeriesResult(
        rule_id="rule-1",
        rule_version=2,
        occurrence_ids=["o3"],
        deleted_count=1,
        propagation=report,
    )

    response = client.put("/series/rule-1", json={**SERIES_PAYLOAD, "expected_version": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["warnings"] == ["roster updated; 1 other session could not be updated, retry needed"]
    assert body["propagation"]["failures"] == {"s2": "connection reset"}
    assert mock_coordinator.edit_series.call_args.kwargs["expected_version"] == 1


def test_get_series_not_found(client, mock_coordinator):
    """Verify an unknown rule id returns 404."""
    mock_coordinator.get_rule.side_effect = RecordNotFoundError("recurrence rule", "missing")

    response = client.get("/series/missing")

    assert response.status_code == 404


def test_delete_series(client, mock_coordinator):
    """Verify DELETE /series returns the number of removed occurrences."""
    mock_coordinator.delete_series.return_value = 8

    response = client.delete("/series/rule-1", params={"expected_version": 3})

    assert response.status_code == 200
    assert response.json() == {"deleted_count": 8, "occurrence_ids": []}
    mock_coordinator.delete_series.assert_called_once_with(
        "rule-1", expected_version=3, acting_user_id=None
    )


def test_patch_occurrence(client, mock_coordinator):
    """Verify PATCH /occurrences forwards roster changes and returns the new version."""
    mock_coordinator.edit_occurrence.return_value = OccurrenceResult(occurrence_id="o1", version=4)

    response = client.patch(
        "/occurrences/o1",
        json={"expected_version": 3, "roster": {"players": ["p1", "p2"]}, "status": "cancelled"},
    )

    assert response.status_code == 200
    assert response.json()["version"] == 4
    kwargs = mock_coordinator.edit_occurrence.call_args.kwargs
    assert kwargs["roster"].players == ["p1", "p2"]
    assert kwargs["fields"].status == "cancelled"


def test_get_occurrence(client, mock_coordinator):
    """Verify GET /occurrences/{id} serializes roster and structure."""
    starts = datetime(2025, 3, 4, 18, 0, tzinfo=timezone.utc)
    mock_coordinator.get_occurrence.return_value = SimpleNamespace(
        id="o1",
        series_id="rule-1",
        group_id="group-u12",
        club_id="club-1",
        event_type="training",
        title=None,
        starts_at=starts,
        ends_at=starts.replace(hour=19),
        duration_minutes=60,
        location_text=None,
        coach_note=None,
        status="scheduled",
        version=1,
        roster=[SimpleNamespace(person_id="p1", role="player", status="expected")],
        structure_items=[SimpleNamespace(category="warm-up", minutes=10, note=None, position=0)],
    )

    response = client.get("/occurrences/o1")

    assert response.status_code == 200
    body = response.json()
    assert body["roster"] == [{"person_id": "p1", "role": "player", "status": "expected"}]
    assert body["structure_items"][0]["category"] == "warm-up"


def test_set_attendance(client, mock_coordinator):
    """Verify attendance updates return the roster entry."""
    mock_coordinator.set_attendance.return_value = SimpleNamespace(
        person_id="p1", role="player", status="present"
    )

    response = client.put("/occurrences/o1/attendance/p1", json={"status": "present"})

    assert response.status_code == 200
    assert response.json()["status"] == "present"
    mock_coordinator.set_attendance.assert_called_once_with("o1", "p1", "present")


def test_delete_group_future(client, mock_coordinator):
    """Verify the group history endpoint reports removed ids."""
    mock_coordinator.delete_group_keep_history.return_value = ["o3", "o4"]

    response = client.delete("/groups/group-u12/future-occurrences")

    assert response.status_code == 200
    assert response.json() == {"deleted_count": 2, "occurrence_ids": ["o3", "o4"]}


def test_roster_sync_endpoint(client, mock_coordinator):
    """Verify propagation can be retried on its own."""
    mock_coordinator.retry_propagation.return_value = PropagationReport(
        group_id="group-u12", added=("p3",), target_ids=["s1"], updated_ids=["s1"]
    )

    response = client.post(
        "/groups/group-u12/roster-sync",
        json={"added_person_ids": ["p3"], "exclude_occurrence_id": "o1"},
    )

    assert response.status_code == 200
    assert response.json()["updated_ids"] == ["s1"]
    assert response.json()["warning"] is None


def test_transfer_member(client, mock_coordinator):
    """Verify member transfer reports both sides of the move."""
    mock_coordinator.transfer_member.return_value = (
        PropagationReport(group_id="group-u12", removed=("p1",)),
        PropagationReport(group_id="group-u14", added=("p1",)),
    )

    response = client.post(
        "/members/p1/transfer",
        json={"from_group_id": "group-u12", "to_group_id": "group-u14"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["removal"]["group_id"] == "group-u12"
    assert body["addition"]["group_id"] == "group-u14"
    assert body["warnings"] == []


def test_list_group_occurrences(client, mock_coordinator):
    """Verify the group listing wraps results with a total."""
    mock_coordinator.list_group_occurrences.return_value = []

    response = client.get("/groups/group-u12/occurrences", params={"starts_from": "2025-03-01T00:00:00Z"})

    assert response.status_code == 200
    assert response.json() == {"total": 0, "items": []}
    kwargs = mock_coordinator.list_group_occurrences.call_args.kwargs
    assert kwargs["starts_from"] == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_series_payload_dates_are_parsed(client, mock_coordinator):
    """Verify ISO dates in the payload become date objects."""
    mock_coordinator.create_series.return_value = SeriesResult(
        rule_id="rule-1", rule_version=1, occurrence_ids=["o1"]
    )

    client.post("/series", json=SERIES_PAYLOAD)

    spec = mock_coordinator.create_series.call_args.args[0]
    assert spec.start_date == date(2025, 3, 1)


def test_delete_group_future_reads_naive_as_of(client, coordinator, tuesday_spec):
    """Verify a naive as_of query parameter is served rather than failing on storage."""
    created = coordinator.create_series(
        replace(tuesday_spec, start_date=date(2025, 2, 1), end_date=date(2025, 3, 31))
    )
    app.dependency_overrides[_coordinator] = lambda: coordinator

    response = client.delete(
        "/groups/group-u12/future-occurrences", params={"as_of": "2025-03-10T12:00:00"}
    )

    assert response.status_code == 200
    assert response.json()["deleted_count"] == 3
    assert sorted(response.json()["occurrence_ids"]) == sorted(created.occurrence_ids[5:])
