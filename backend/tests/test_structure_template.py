from __future__ import annotations

from datetime import timedelta

import pytest

from app.domain.errors import ScheduleValidationError
from app.domain.models import OccurrenceDraft, StructureItemInput, normalize_structure
from app.repositories import StructureRepository
from app.services.structure_template import StructureTemplate


@pytest.fixture
def occurrence_ids(coordinator, now):
    ids = []
    for offset in (1, 8):
        result = coordinator.create_standalone_occurrence(
            OccurrenceDraft(group_id="g", club_id="c", starts_at=now + timedelta(days=offset)),
            structure_items=[StructureItemInput(category="warm-up", minutes=10)],
        )
        ids.append(result.occurrence_id)
    return ids


def test_apply_copies_items_to_every_occurrence(session, occurrence_ids):
    """Verify each target receives its own copy with positions preserved."""
    template = StructureTemplate(session)

    created = template.apply(
        [
            StructureItemInput(category="technique", minutes=30, note="serves"),
            StructureItemInput(category="match play", minutes=40),
        ],
        occurrence_ids,
    )
    session.commit()

    assert created == 4
    repo = StructureRepository(session)
    first, second = (repo.items_for(occurrence_id) for occurrence_id in occurrence_ids)
    assert [(i.category, i.position, i.note) for i in first] == [
        ("technique", 0, "serves"),
        ("match play", 1, None),
    ]
    assert [i.category for i in second] == ["technique", "match play"]
    assert {i.id for i in first}.isdisjoint({i.id for i in second})


def test_empty_list_leaves_existing_items(session, occurrence_ids):
    """Verify an empty item list is not treated as a request to clear."""
    StructureTemplate(session).apply([], occurrence_ids)
    session.commit()

    repo = StructureRepository(session)
    assert all(len(repo.items_for(occurrence_id)) == 1 for occurrence_id in occurrence_ids)


def test_clear_flag_removes_items(session, occurrence_ids):
    """Verify clearing requires the explicit flag."""
    StructureTemplate(session).apply([], occurrence_ids, clear=True)
    session.commit()

    repo = StructureRepository(session)
    assert all(repo.items_for(occurrence_id) == [] for occurrence_id in occurrence_ids)


def test_normalize_structure_skips_incomplete_lines():
    """Verify blank categories and non-positive minutes are dropped."""
    items = normalize_structure(
        [
            StructureItemInput(category=" ", minutes=10),
            StructureItemInput(category="drills", minutes=0),
            StructureItemInput(category=" cool-down ", minutes=5, note="  "),
        ]
    )

    assert items == [StructureItemInput(category="cool-down", minutes=5, note=None, position=2)]


def test_normalize_structure_rejects_duplicate_positions():
    """Verify two items cannot share a position."""
    with pytest.raises(ScheduleValidationError):
        normalize_structure(
            [
                StructureItemInput(category="a", minutes=5, position=1),
                StructureItemInput(category="b", minutes=5, position=1),
            ]
        )
