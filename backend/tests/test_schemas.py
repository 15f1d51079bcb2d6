from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from app.domain.models import PropagationReport
from app.schemas import OccurrencePatch, PropagationSummary, RosterPayload, SeriesCreate


def _series(**overrides) -> SeriesCreate:
    values = {
        "group_id": "g",
        "club_id": "c",
        "weekday": 2,
        "time_of_day": "07:05",
        "start_date": date(2025, 3, 1),
        "end_date": date(2025, 3, 31),
    }
    values.update(overrides)
    return SeriesCreate(**values)


def test_series_time_of_day_is_normalized():
    """Verify HH:MM input is stored as HH:MM:SS."""
    assert _series().time_of_day == "07:05:00"


def test_series_rejects_weekday_out_of_range():
    """Verify weekdays are limited to 0 (Sunday) through 6 (Saturday)."""
    with pytest.raises(ValidationError):
        _series(weekday=7)


def test_series_rejects_unknown_activity_type():
    """Verify only known activity types are accepted."""
    with pytest.raises(ValidationError):
        _series(event_type="party")


def test_to_spec_leaves_timezone_for_settings_default():
    """Verify a missing timezone is left for the coordinator to resolve."""
    spec = _series().to_spec(created_by="u1")

    assert spec.timezone == ""
    assert spec.created_by == "u1"
    assert spec.duration_minutes == 60


def test_roster_payload_to_domain_preserves_roles():
    """Verify players, coaches and guests map to their roles."""
    roster = RosterPayload(players=["a"], coaches=["b"], guests=["c"]).to_domain()

    assert roster.entries() == {"a": "player", "c": "guest", "b": "coach"}


def test_occurrence_patch_requires_expected_version():
    """Verify edits must carry the version they were prepared against."""
    with pytest.raises(ValidationError):
        OccurrencePatch(title="No version")


def test_propagation_summary_from_report():
    """Verify a report with failures exposes its warning."""
    report = PropagationReport(group_id="g", updated_ids=["a"], failures={"b": "x", "c": "y"})

    summary = PropagationSummary.from_report(report)

    assert summary.scope == "group"
    assert summary.warning == "roster updated; 2 other sessions could not be updated, retry needed"
    assert PropagationSummary.from_report(None) is None
