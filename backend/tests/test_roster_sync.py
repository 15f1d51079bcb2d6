from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.domain.errors import ScheduleValidationError
from app.domain.models import OccurrenceDraft, OccurrenceUpdate, PropagationScope, RosterInput
from app.models import OccurrenceStatus, RosterEntry
from app.repositories import RosterRepository
from app.services.roster_sync import RosterSyncEngine

GROUP = "group-u12"


def _standalone(coordinator, starts_at: datetime, players=(), group_id: str = GROUP) -> str:
    draft = OccurrenceDraft(
        group_id=group_id,
        club_id="club-1",
        starts_at=starts_at,
        duration_minutes=60,
    )
    result = coordinator.create_standalone_occurrence(draft, RosterInput(players=list(players)))
    return result.occurrence_id


@pytest.fixture
def group_occurrences(coordinator, now):
    base = now + timedelta(days=2)
    future = [_standalone(coordinator, base + timedelta(days=7 * i), ["p1"]) for i in range(3)]
    past = _standalone(coordinator, now - timedelta(days=5), ["p1"])
    return future, past


def test_edit_propagates_added_player_to_future_group_occurrences(coordinator, session, group_occurrences):
    """Verify a player added on one occurrence appears on later ones but not on past ones."""
    (first, second, third), past = group_occurrences
    version = coordinator.get_occurrence(first).version

    result = coordinator.edit_occurrence(
        first,
        expected_version=version,
        roster=RosterInput(players=["p1", "x"]),
    )

    assert result.propagation is not None
    assert result.propagation.ok
    assert sorted(result.propagation.updated_ids) == sorted([second, third])
    roster = RosterRepository(session)
    for occurrence_id in (first, second, third):
        entry = roster.get_entry(occurrence_id, "x")
        assert entry is not None
        assert entry.status == "expected"
    assert roster.get_entry(past, "x") is None


def test_edit_propagates_removed_player(coordinator, session, group_occurrences):
    """Verify a player removed on one occurrence disappears from later ones only."""
    (first, second, third), past = group_occurrences
    version = coordinator.get_occurrence(first).version

    coordinator.edit_occurrence(first, expected_version=version, roster=RosterInput(players=[]))

    roster = RosterRepository(session)
    assert roster.person_ids_for([first, second, third]) == set()
    assert roster.person_ids_for([past]) == {"p1"}


def test_propagation_is_idempotent(session, clock, group_occurrences, now):
    """Verify adding an already-present person twice keeps a single roster entry."""
    (first, second, third), _ = group_occurrences
    engine = RosterSyncEngine(session, clock=clock)

    engine.propagate(GROUP, ["x"], [], exclude_occurrence_id=first, as_of=now)
    engine.propagate(GROUP, ["x"], [], exclude_occurrence_id=first, as_of=now)

    for occurrence_id in (second, third):
        count = session.execute(
            select(func.count(RosterEntry.id)).where(
                RosterEntry.event_id == occurrence_id,
                RosterEntry.person_id == "x",
            )
        ).scalar_one()
        assert count == 1


def test_propagation_skips_cancelled_occurrences(coordinator, session, clock, group_occurrences, now):
    """Verify cancelled occurrences are not propagation targets."""
    (first, second, third), _ = group_occurrences
    coordinator.edit_occurrence(
        third,
        expected_version=coordinator.get_occurrence(third).version,
        fields=OccurrenceUpdate(status=OccurrenceStatus.CANCELLED.value),
    )
    engine = RosterSyncEngine(session, clock=clock)

    report = engine.propagate(GROUP, ["x"], [], exclude_occurrence_id=first, as_of=now)

    assert report.target_ids == [second]


def test_propagation_failure_is_reported_not_raised(coordinator, session, clock, group_occurrences, monkeypatch, now):
    """Verify a failing sibling is reported while the others are still updated."""
    (first, second, third), _ = group_occurrences
    engine = RosterSyncEngine(session, clock=clock)
    original_add_many = engine._roster.add_many

    def flaky_add_many(event_ids, entries, *, status=None):
        if third in event_ids:
            raise SQLAlchemyError("connection reset")
        return original_add_many(event_ids, entries, status=status)

    monkeypatch.setattr(engine._roster, "add_many", flaky_add_many)

    report = engine.propagate(GROUP, ["x"], [], exclude_occurrence_id=first, as_of=now)

    assert report.updated_ids == [second]
    assert list(report.failures) == [third]
    assert report.warning == "roster updated; 1 other session could not be updated, retry needed"
    roster = RosterRepository(session)
    assert roster.get_entry(second, "x") is not None
    assert roster.get_entry(third, "x") is None


def test_coach_changes_do_not_propagate(coordinator, session, group_occurrences):
    """Verify coach assignments stay on the edited occurrence."""
    (first, second, _), _ = group_occurrences
    version = coordinator.get_occurrence(first).version

    result = coordinator.edit_occurrence(
        first,
        expected_version=version,
        roster=RosterInput(players=["p1"], coaches=["coach-a"]),
    )

    assert result.propagation is None
    roster = RosterRepository(session)
    assert roster.get_entry(first, "coach-a").role == "coach"
    assert roster.get_entry(second, "coach-a") is None


def test_series_scope_requires_series_id(session, clock, now):
    """Verify series-scoped propagation without a series id is rejected."""
    engine = RosterSyncEngine(session, clock=clock)

    with pytest.raises(ScheduleValidationError):
        engine.propagate(GROUP, ["x"], [], as_of=now, scope=PropagationScope.SERIES)


def test_transfer_moves_member_between_groups(coordinator, session, clock, group_occurrences, now):
    """Verify a transfer removes the member upstream and adds them downstream."""
    (first, second, third), past = group_occurrences
    target = _standalone(coordinator, now + timedelta(days=3), group_id="group-u14")
    engine = RosterSyncEngine(session, clock=clock)

    removal, addition = engine.transfer(
        "p1",
        role="player",
        from_group_id=GROUP,
        to_group_id="group-u14",
        as_of=now,
    )

    roster = RosterRepository(session)
    assert removal is not None and removal.ok
    assert addition.updated_ids == [target]
    assert roster.person_ids_for([first, second, third]) == set()
    assert roster.person_ids_for([past]) == {"p1"}
    assert roster.get_entry(target, "p1").status == "expected"


def test_propagation_advances_target_versions(coordinator, session, clock, group_occurrences, now):
    """Verify a propagated roster change bumps the sibling's version."""
    (first, second, _), _ = group_occurrences
    before = coordinator.get_occurrence(second).version
    engine = RosterSyncEngine(session, clock=clock)

    engine.propagate(GROUP, ["x"], [], exclude_occurrence_id=first, as_of=now)

    assert coordinator.get_occurrence(second).version == before + 1

