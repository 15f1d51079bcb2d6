import argparse
from datetime import datetime, timezone

from dateutil import parser as date_parser
from loguru import logger

from app.db import init_db, session_scope
from app.domain.errors import SchedulingError
from app.services.series_coordinator import SeriesEditCoordinator


def _parse_datetime(value: str) -> datetime:
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError) as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO timestamp: {value}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rebuild the upcoming occurrences of a series from its stored rule"
    )
    parser.add_argument("rule_id", help="Identifier of the recurrence rule")
    parser.add_argument(
        "--as-of",
        type=_parse_datetime,
        default=None,
        help="Regenerate occurrences starting at or after this instant (default: now)",
    )
    parser.add_argument("--actor", default=None, help="User id recorded on notification facts")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_db()

    try:
        with session_scope() as session:
            coordinator = SeriesEditCoordinator(session)
            result = coordinator.regenerate_series(
                args.rule_id, as_of=args.as_of, acting_user_id=args.actor
            )
    except SchedulingError as exc:
        logger.error("Regeneration of rule {} failed: {}", args.rule_id, exc)
        return 1

    logger.info(
        "Rule {} regenerated: {} removed, {} created",
        result.rule_id,
        result.deleted_count,
        len(result.occurrence_ids),
    )
    if result.series_empty_going_forward:
        logger.warning("Rule {} has no upcoming occurrences", result.rule_id)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
