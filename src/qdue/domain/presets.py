"""Built-in shift types, teams and the standard QuattroDue template.

QuattroDue rotates nine half-teams (A-I) through three daily shifts over an
18-day cycle. Each half-team works four days and rests two; the scheme
below lists which pair of half-teams covers each shift on every cycle day.
"""

from datetime import date, time, timedelta
from typing import Optional

from qdue.domain.models import (
    ShiftType,
    Team,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkScheduleType,
    WorkShiftAssignment,
)
from qdue.domain.recurrence import RecurrenceRule

QUATTRODUE_REFERENCE_DATE = date(2018, 11, 7)
QUATTRODUE_CYCLE_DAYS = 18
QUATTRODUE_TEMPLATE_ID = "quattrodue_standard"
CUSTOM_FALLBACK_EPOCH = date(2025, 1, 1)

STANDARD_TEAM_IDS = ("A", "B", "C", "D", "E", "F", "G", "H", "I")

MORNING = ShiftType(
    id="morning",
    name="Morning",
    start_time=time(5, 0),
    end_time=time(13, 0),
    color_hex="#2196F3",
    description="Morning shift",
    is_user_defined=False,
)
AFTERNOON = ShiftType(
    id="afternoon",
    name="Afternoon",
    start_time=time(13, 0),
    end_time=time(21, 0),
    color_hex="#FF9800",
    description="Afternoon shift",
    is_user_defined=False,
)
NIGHT = ShiftType(
    id="night",
    name="Night",
    start_time=time(21, 0),
    end_time=time(5, 0),
    color_hex="#9C27B0",
    description="Night shift",
    is_user_defined=False,
)
REST = ShiftType(
    id="rest",
    name="Rest",
    is_rest_period=True,
    color_hex="#9E9E9E",
    description="Rest period",
    is_user_defined=False,
)

# Day-by-day (morning, afternoon, night) half-team pairs; each row repeats
# for two consecutive cycle days.
_SCHEME_ROWS = (
    ("AB", "CD", "EF"),
    ("AH", "DI", "GF"),
    ("CH", "EI", "GB"),
    ("CD", "EF", "AB"),
    ("DI", "GF", "AH"),
    ("EI", "GB", "CH"),
    ("EF", "AB", "CD"),
    ("GF", "AH", "DI"),
    ("GB", "CH", "EI"),
)

QUATTRODUE_SCHEME: tuple[tuple[str, str, str], ...] = tuple(
    row for row in _SCHEME_ROWS for _ in range(2)
)


def standard_shift_types() -> list[ShiftType]:
    """The built-in shift catalogue (morning, afternoon, night, rest)."""
    return [MORNING, AFTERNOON, NIGHT, REST]


def shift_catalog(extra: Optional[list[ShiftType]] = None) -> dict[str, ShiftType]:
    """Map shift type ids to shift types, standard types first."""
    catalog = {s.id: s for s in standard_shift_types()}
    for shift_type in extra or []:
        catalog[shift_type.id] = shift_type
    return catalog


def create_quattrodue_template(created_at: Optional[date] = None) -> WorkScheduleTemplate:
    """Build the standard 18-day QuattroDue template."""
    template = WorkScheduleTemplate(
        id=QUATTRODUE_TEMPLATE_ID,
        name="QuattroDue Standard",
        type=WorkScheduleType.FIXED_4_2,
        cycle_days=QUATTRODUE_CYCLE_DAYS,
        description="Four days on, two days off; nine half-teams over an 18-day cycle",
        is_user_defined=False,
        created_at=created_at or QUATTRODUE_REFERENCE_DATE,
        min_teams_per_shift=2,
        max_teams_per_shift=2,
        supported_teams=list(STANDARD_TEAM_IDS),
    )
    for day, teams_by_shift in enumerate(QUATTRODUE_SCHEME):
        pattern = WorkSchedulePattern(day_in_cycle=day)
        for shift_type, pair in zip((MORNING, AFTERNOON, NIGHT), teams_by_shift):
            pattern.add_assignment(WorkShiftAssignment(shift_type=shift_type, teams=list(pair)))
        template.patterns.append(pattern)
    return template


def create_standard_teams() -> list[Team]:
    return [Team(id=team_id, name=f"Team {team_id}") for team_id in STANDARD_TEAM_IDS]


def team_work_positions(team_id: str) -> list[int]:
    """Cycle positions on which a half-team works in the standard scheme."""
    key = team_id.strip().upper()
    return [
        day for day, shifts in enumerate(QUATTRODUE_SCHEME)
        if any(key in pair for pair in shifts)
    ]


def team_cycle_start(team_id: str) -> int:
    """First cycle position of a half-team's four-day work run.

    Raises:
        ValueError: If the team never works in the standard scheme.
    """
    positions = set(team_work_positions(team_id))
    if not positions:
        raise ValueError(f"Team {team_id!r} is not part of the QuattroDue scheme")
    for day in range(QUATTRODUE_CYCLE_DAYS):
        if day in positions and (day - 1) % QUATTRODUE_CYCLE_DAYS not in positions:
            return day
    return 0


def create_team_rule(
    team: Team,
    reference_date: date = QUATTRODUE_REFERENCE_DATE,
) -> RecurrenceRule:
    """QuattroDue rule whose work cadence lines up with the team's shifts."""
    start = reference_date + timedelta(days=team_cycle_start(team.id) + team.qdue_offset)
    return RecurrenceRule.quattrodue(
        start_date=start,
        id=f"{QUATTRODUE_TEMPLATE_ID}_{team.id.lower()}",
        name=f"QuattroDue {team.name or team.id}",
    )


def create_sample_custom_template(
    template_id: str = "office_week",
    team: str = "Office",
    created_at: date = date(2025, 1, 6),
) -> WorkScheduleTemplate:
    """A 7-day user template: day shifts Monday to Friday, weekend rest.

    ``created_at`` defaults to a Monday so that cycle day 0 is a Monday.
    """
    day_shift = ShiftType(
        id="office_day",
        name="Day",
        start_time=time(8, 0),
        end_time=time(16, 30),
        break_start=time(12, 0),
        break_end=time(12, 30),
        color_hex="#4CAF50",
    )
    template = WorkScheduleTemplate(
        id=template_id,
        name="Office Week",
        type=WorkScheduleType.CUSTOM,
        cycle_days=7,
        created_at=created_at,
        supported_teams=[team],
    )
    names = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
    for day, name in enumerate(names):
        pattern = WorkSchedulePattern(day_in_cycle=day, day_name=name)
        if day < 5:
            pattern.add_assignment(WorkShiftAssignment(shift_type=day_shift, teams=[team]))
        else:
            pattern.add_assignment(WorkShiftAssignment(shift_type=REST))
        template.set_pattern_for_day(day, pattern)
    return template
