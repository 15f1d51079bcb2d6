from __future__ import annotations

import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"

import pytest
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db import create_db_engine, create_session_factory, init_db
from app.domain.models import RecurrenceSpec
from app.services.notifications import OutboxDispatcher
from app.services.series_coordinator import SeriesEditCoordinator

# Saturday; the first Tuesday after it is 2025-03-04.
FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        occurrence_generation_cap=80,
        max_stored_duration_minutes=240,
        schedule_timezone="UTC",
        roster_propagation_scope="group",
    )


@pytest.fixture
def engine():
    db_engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    db_session = session_factory()
    yield db_session
    db_session.close()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def coordinator(session, test_settings, clock) -> SeriesEditCoordinator:
    return SeriesEditCoordinator(
        session,
        settings=test_settings,
        clock=clock,
        dispatcher=OutboxDispatcher(session),
    )


@pytest.fixture
def tuesday_spec() -> RecurrenceSpec:
    return RecurrenceSpec(
        group_id="group-u12",
        club_id="club-1",
        weekday=2,
        time_of_day="18:00",
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 31),
        duration_minutes=90,
        event_type="training",
        timezone="UTC",
    )
