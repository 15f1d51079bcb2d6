from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from app.domain.models import RecurrenceSpec, Weekday
from app.services.occurrence_generator import first_weekday_on_or_after, generate


def _spec(**overrides) -> RecurrenceSpec:
    values = dict(
        group_id="g1",
        club_id="c1",
        weekday=Weekday.TUESDAY,
        time_of_day="18:00:00",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
        duration_minutes=90,
        timezone="UTC",
    )
    values.update(overrides)
    return RecurrenceSpec(**values)


def test_generate_returns_only_tuesdays_in_window():
    """Verify a weekly Tuesday rule yields exactly the Tuesdays of January 2024."""
    result = generate(_spec(), date(2024, 1, 1), date(2024, 1, 31))

    assert result.ok
    assert [slot.starts_at.date() for slot in result] == [
        date(2024, 1, 2),
        date(2024, 1, 9),
        date(2024, 1, 16),
        date(2024, 1, 23),
        date(2024, 1, 30),
    ]
    assert all(Weekday.of(slot.starts_at.date()) == Weekday.TUESDAY for slot in result)
    first = result.slots[0]
    assert first.starts_at == datetime(2024, 1, 2, 18, 0, tzinfo=timezone.utc)
    assert first.ends_at - first.starts_at == timedelta(minutes=90)


def test_generate_never_exceeds_cap():
    """Verify a two-year weekly rule is cut at the cap in chronological order."""
    spec = _spec(end_date=date(2025, 12, 31))
    uncapped = generate(spec, spec.start_date, spec.end_date, cap=500)
    capped = generate(spec, spec.start_date, spec.end_date, cap=80)

    assert len(uncapped) > 80
    assert len(capped) == 80
    assert capped.capped
    assert list(capped.slots) == list(uncapped.slots[:80])
    assert capped.slots[-1].starts_at < uncapped.slots[80].starts_at


def test_generate_is_deterministic():
    """Verify identical arguments produce identical output."""
    spec = _spec(interval_weeks=2, end_date=date(2024, 6, 30))

    first = generate(spec, date(2024, 2, 1), date(2024, 6, 30))
    second = generate(spec, date(2024, 2, 1), date(2024, 6, 30))

    assert first == second


def test_generate_keeps_interval_phase_when_window_starts_mid_series():
    """Verify a fortnightly rule stays aligned with its start date."""
    spec = _spec(interval_weeks=2, end_date=date(2024, 3, 31))

    full = generate(spec, spec.start_date, spec.end_date)
    later = generate(spec, date(2024, 1, 10), spec.end_date)

    assert [slot.starts_at.date() for slot in full][:3] == [
        date(2024, 1, 2),
        date(2024, 1, 16),
        date(2024, 1, 30),
    ]
    assert later.slots == full.slots[1:]


def test_generate_with_instant_skips_slots_already_started():
    """Verify a datetime lower bound drops the same-day slot once it has begun."""
    spec = _spec()

    before = generate(spec, datetime(2024, 1, 9, 17, 0, tzinfo=timezone.utc), spec.end_date)
    after = generate(spec, datetime(2024, 1, 9, 18, 30, tzinfo=timezone.utc), spec.end_date)

    assert before.slots[0].starts_at.date() == date(2024, 1, 9)
    assert after.slots[0].starts_at.date() == date(2024, 1, 16)


def test_generate_reads_naive_instant_in_rule_timezone():
    """Verify a naive lower bound is wall-clock time in the rule's zone, not UTC."""
    spec = _spec(timezone="Europe/Paris")

    result = generate(spec, datetime(2024, 1, 9, 17, 30), spec.end_date)

    assert result.slots[0].starts_at == datetime(2024, 1, 9, 17, 0, tzinfo=timezone.utc)


def test_generate_reports_empty_window_instead_of_raising():
    """Verify an inverted window yields an empty result with a reason."""
    result = generate(_spec(), date(2024, 2, 1), date(2024, 1, 31))

    assert not result.ok
    assert len(result) == 0
    assert "empty" in result.reason


def test_generate_reports_window_without_target_weekday():
    """Verify a one-day window on the wrong weekday yields no slot."""
    spec = _spec(start_date=date(2024, 1, 3), end_date=date(2024, 1, 3))

    result = generate(spec, spec.start_date, spec.end_date)

    assert not result.ok
    assert result.reason


def test_generate_interprets_time_of_day_in_rule_timezone():
    """Verify local wall-clock times are converted to UTC instants across DST."""
    spec = _spec(
        timezone="Europe/Paris",
        start_date=date(2024, 3, 19),
        end_date=date(2024, 4, 2),
    )

    result = generate(spec, spec.start_date, spec.end_date)

    assert [slot.starts_at.hour for slot in result] == [17, 17, 16]


def test_first_weekday_uses_sunday_first_numbering():
    """Verify weekday 0 is Sunday and 2 is Tuesday."""
    monday = date(2024, 1, 1)

    assert first_weekday_on_or_after(monday, 0) == date(2024, 1, 7)
    assert first_weekday_on_or_after(monday, 2) == date(2024, 1, 2)
    assert first_weekday_on_or_after(monday, 1) == monday
