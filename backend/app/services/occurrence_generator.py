"""Pure expansion of a recurrence rule into concrete time slots."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from loguru import logger

from app.domain.models import (
    GenerationResult,
    RecurrenceSpec,
    TimeSlot,
    Weekday,
    parse_time_of_day,
)

DEFAULT_CAP = 80


def first_weekday_on_or_after(start: date, weekday: int) -> date:
    offset = (int(weekday) - Weekday.of(start) + 7) % 7
    return start + timedelta(days=offset)


def _first_aligned_on_or_after(anchor: date, lower: date, step_days: int) -> date:
    """Advance ``anchor`` by whole steps until it reaches ``lower``.

    Keeps multi-week series in phase with their start date when the window
    begins part-way through the series.
    """

    if anchor >= lower:
        return anchor
    steps = -(-(lower - anchor).days // step_days)
    return anchor + timedelta(days=steps * step_days)


def generate(
    rule: RecurrenceSpec,
    range_start: date | datetime,
    range_end: date,
    cap: int = DEFAULT_CAP,
) -> GenerationResult:
    """Return the ordered slots of ``rule`` inside ``[range_start, range_end]``.

    ``range_start`` may be a calendar date or an instant; with an instant, slots
    of that day that already started are skipped, and a naive instant is read
    in the rule's timezone. At most ``cap`` slots are produced. An empty
    result carries a ``reason`` rather than raising.
    """

    if cap < 1:
        return GenerationResult(reason="Generation cap must be at least 1")
    if rule.interval_weeks < 1:
        return GenerationResult(reason="Interval must be at least one week")
    if rule.weekday not in range(7):
        return GenerationResult(reason="Weekday must be between 0 and 6")

    tz = ZoneInfo(rule.timezone or "UTC")
    time_of_day = parse_time_of_day(rule.time_of_day)

    lower_instant: datetime | None = None
    if isinstance(range_start, datetime):
        if range_start.tzinfo is None:
            range_start = range_start.replace(tzinfo=tz)
        lower_instant = range_start
        lower_date = range_start.astimezone(tz).date()
    else:
        lower_date = range_start
    lower_date = max(rule.start_date, lower_date)
    upper_date = min(rule.end_date, range_end)

    if upper_date < lower_date:
        return GenerationResult(reason="No occurrence generated: the date window is empty")

    step_days = rule.interval_weeks * 7
    anchor = first_weekday_on_or_after(rule.start_date, rule.weekday)
    cursor = _first_aligned_on_or_after(anchor, lower_date, step_days)
    step = timedelta(days=step_days)
    duration = timedelta(minutes=rule.duration_minutes)

    slots: list[TimeSlot] = []
    capped = False
    while cursor <= upper_date:
        if len(slots) >= cap:
            capped = True
            break
        starts_at = datetime.combine(cursor, time_of_day, tzinfo=tz).astimezone(timezone.utc)
        if lower_instant is None or starts_at >= lower_instant:
            slots.append(TimeSlot(starts_at=starts_at, ends_at=starts_at + duration))
        cursor += step

    if capped:
        logger.debug(
            "Generation cap reached cap={} first={} last={}",
            cap,
            slots[0].starts_at.isoformat(),
            slots[-1].starts_at.isoformat(),
        )

    if not slots:
        return GenerationResult(
            reason="No occurrence generated (check dates, weekday and time of day)"
        )
    return GenerationResult(slots=tuple(slots), capped=capped)


__all__ = ["DEFAULT_CAP", "first_weekday_on_or_after", "generate"]
