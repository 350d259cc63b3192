"""Command-line interface for the QDue scheduling engine."""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta
from typing import Optional

from qdue.domain.assignments import AssignmentPriority, UserScheduleAssignment
from qdue.domain.exceptions import ExceptionType, ShiftException
from qdue.domain.models import ScheduleEvent, WorkScheduleTemplate
from qdue.domain.presets import (
    STANDARD_TEAM_IDS,
    create_quattrodue_template,
    create_sample_custom_template,
    create_standard_teams,
    create_team_rule,
)
from qdue.domain.repositories import (
    InMemoryAssignmentRepository,
    InMemoryExceptionRepository,
    InMemoryRecurrenceRuleRepository,
    InMemoryTemplateRepository,
)
from qdue.output.pdf_generator import PDFGenerator
from qdue.output.text_report import RosterTextGenerator, days_from_events
from qdue.scheduling.engine import DaySchedule, EngineConfig, ScheduleEngine
from qdue.validation.validator import TemplateValidator, ValidationResult

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int = logging.WARNING) -> None:
    """Configure console logging for the CLI."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}; expected YYYY-MM-DD")


def create_standard_engine(max_workers: int = 1) -> ScheduleEngine:
    """Engine holding the standard QuattroDue template, rules and teams."""
    teams = create_standard_teams()
    return ScheduleEngine(
        templates=InMemoryTemplateRepository([create_quattrodue_template()]),
        rules=InMemoryRecurrenceRuleRepository(create_team_rule(t) for t in teams),
        assignments=InMemoryAssignmentRepository(),
        exceptions=InMemoryExceptionRepository(),
        teams=teams,
        config=EngineConfig(max_workers=max_workers),
    )


def create_demo_engine(start: date, max_workers: int = 1) -> tuple[ScheduleEngine, list[str]]:
    """Engine with sample users, assignments and exceptions.

    Returns:
        The engine and the ids of the sample users.
    """
    engine = create_standard_engine(max_workers)
    assignments = engine.resolver.repository
    exceptions = engine.exceptions
    created = datetime.combine(start, datetime.min.time())

    for user_id, team_id in (("alice", "A"), ("bob", "B"), ("carol", "C")):
        assignments.add(UserScheduleAssignment(
            id=f"{user_id}-permanent",
            user_id=user_id,
            team_id=team_id,
            recurrence_rule_id=f"quattrodue_standard_{team_id.lower()}",
            start_date=start - timedelta(days=365),
            created_at=created,
            user_name=user_id.title(),
            team_name=f"Team {team_id}",
        ))

    # Carol covers team D for a week
    assignments.add(UserScheduleAssignment(
        id="carol-cover-d",
        user_id="carol",
        team_id="D",
        recurrence_rule_id="quattrodue_standard_d",
        start_date=start + timedelta(days=7),
        end_date=start + timedelta(days=13),
        priority=AssignmentPriority.OVERRIDE,
        created_at=created,
    ))

    exceptions.add(ShiftException.vacation(
        "alice-vacation", "alice", start + timedelta(days=1)
    ).approve("manager", start))
    exceptions.add(ShiftException.sick_leave("bob-sick", "bob", start + timedelta(days=5)))
    exceptions.add(ShiftException.time_reduction(
        "carol-rol", "carol", start + timedelta(days=2), duration_minutes=240,
        type=ExceptionType.REDUCTION_ROL,
    ))
    exceptions.add(ShiftException.shift_swap(
        "alice-bob-swap", "alice", "bob", start + timedelta(days=3),
    ).submit())
    return engine, ["alice", "bob", "carol"]


def events_to_json(events: list[ScheduleEvent]) -> list[dict]:
    return [
        {
            "date": e.event_date.isoformat(),
            "shift": e.shift_type.id,
            "name": e.shift_type.name,
            "start": e.start_time.strftime("%H:%M") if e.start_time else None,
            "end": e.end_time.strftime("%H:%M") if e.end_time else None,
            "teams": list(e.teams),
            "cycle_day": e.cycle_day,
            "user": e.user_id,
            "flags": e.flags,
            "title": e.title,
        }
        for e in events
    ]


def print_validation(label: str, result: ValidationResult) -> None:
    status = "PASSED" if result.is_valid else f"FAILED ({len(result.errors)} errors)"
    print(f"{label}: {status}")
    for error in result.errors[:10]:
        print(f"    - {error}")
    if len(result.errors) > 10:
        print(f"    ... and {len(result.errors) - 10} more errors")
    for warning in result.warnings:
        print(f"    ! {warning}")


def output_days(
    days: list[DaySchedule],
    title: str,
    output_format: str,
    pdf_path: Optional[str],
) -> None:
    if output_format == "json":
        events = [e for day in days for e in day.events]
        print(json.dumps(events_to_json(events), indent=2))
    else:
        print(RosterTextGenerator().generate_to_string(days, title=title))

    if pdf_path:
        print(f"\nGenerating PDF: {pdf_path}")
        PDFGenerator().generate(days, pdf_path, title=title)
        print("  PDF created successfully!")


def run_team(
    team: str,
    start: date,
    days: int,
    output_format: str = "text",
    pdf_path: Optional[str] = None,
) -> int:
    """Print a team's base QuattroDue schedule."""
    engine = create_standard_engine()
    end = start + timedelta(days=days - 1)
    events = engine.generate_team_schedule(team, start, end)
    logger.debug("Team %s: %d events between %s and %s", team, len(events), start, end)
    output_days(days_from_events(events, start, end, owner=team), f"Team {team}",
                output_format, pdf_path)
    return 0


def run_demo(
    start: date,
    days: int,
    workers: int = 1,
    output_format: str = "text",
    pdf_path: Optional[str] = None,
) -> int:
    """Run the full pipeline for sample users."""
    engine, users = create_demo_engine(start, workers)
    end = start + timedelta(days=days - 1)
    all_days: list[DaySchedule] = []
    for user_id in users:
        user_days = engine.generate_user_schedule(user_id, start, end)
        all_days.extend(user_days)
        if output_format == "text":
            print(RosterTextGenerator().generate_to_string(user_days, title=f"User {user_id}"))

    if output_format == "json":
        events = [e for day in all_days for e in day.events]
        print(json.dumps(events_to_json(events), indent=2))
    if pdf_path:
        print(f"\nGenerating PDF: {pdf_path}")
        PDFGenerator().generate(all_days, pdf_path, title="Demo roster")
        print("  PDF created successfully!")
    return 0


def run_validate() -> int:
    """Validate the built-in templates."""
    validator = TemplateValidator()
    templates: list[WorkScheduleTemplate] = [
        create_quattrodue_template(),
        create_sample_custom_template(),
    ]
    all_valid = True
    for template in templates:
        result = validator.validate(template)
        print_validation(template.name, result)
        all_valid = all_valid and result.is_valid
    return 0 if all_valid else 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="QDue - QuattroDue shift scheduling engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s team --team A                    18 days of team A from today
  %(prog)s team --team c --start 2025-01-01 --days 36
  %(prog)s team --team A --format json      Events as JSON
  %(prog)s team --team A --pdf roster.pdf   Also write a PDF roster

  %(prog)s demo --days 14                   Sample users with exceptions
  %(prog)s validate                         Validate built-in templates
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    team_parser = subparsers.add_parser("team", help="Print a team's QuattroDue schedule")
    team_parser.add_argument(
        "--team", "-t",
        type=str,
        default="A",
        help=f"Team id, one of {', '.join(STANDARD_TEAM_IDS)} (default: A)",
    )
    demo_parser = subparsers.add_parser("demo", help="Run the pipeline for sample users")
    demo_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Worker threads for multi-day generation (default: 1)",
    )
    for sub in (team_parser, demo_parser):
        sub.add_argument(
            "--start", "-s",
            type=parse_date,
            default=date.today(),
            help="First date, YYYY-MM-DD (default: today)",
        )
        sub.add_argument(
            "--days", "-d",
            type=int,
            default=18,
            help="Number of days (default: 18)",
        )
        sub.add_argument(
            "--format", "-f",
            dest="output_format",
            choices=["text", "json"],
            default="text",
            help="Output format (default: text)",
        )
        sub.add_argument(
            "--pdf",
            type=str,
            help="Also write a PDF roster to this path",
        )

    subparsers.add_parser("validate", help="Validate the built-in templates")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.command in ("team", "demo") and args.days < 1:
        parser.error("--days must be at least 1")

    if args.command == "team":
        return run_team(args.team, args.start, args.days, args.output_format, args.pdf)
    elif args.command == "demo":
        return run_demo(args.start, args.days, args.workers, args.output_format, args.pdf)
    elif args.command == "validate":
        return run_validate()
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
