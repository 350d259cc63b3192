"""Domain models for the shift scheduling engine.

This module contains the core data structures used throughout the engine:
shift types, team assignments, daily patterns, schedule templates, teams and
the schedule events produced by generation.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

MINUTES_PER_DAY = 24 * 60

_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


def time_to_minutes(value: time) -> int:
    """Convert a time of day to minutes after midnight."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """Convert minutes after midnight to a time, wrapping past 24h."""
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    return time(hours, mins)


def normalize_team(team: Optional[str]) -> str:
    """Normalize a team identifier for comparison (trimmed, case-folded)."""
    return (team or "").strip().casefold()


def windows_overlap(a: tuple[int, int], b: tuple[int, int]) -> bool:
    """Check if two half-open minute windows overlap."""
    return a[0] < b[1] and b[0] < a[1]


@dataclass(frozen=True)
class ShiftType:
    """A named kind of shift with a time window.

    Rest periods have no time window and never count as work.

    Attributes:
        id: Stable identifier referenced by exceptions (``new_shift_id``).
        name: Display name (e.g. "Morning").
        start_time: Shift start; None for rest periods.
        end_time: Shift end; earlier than start when the shift crosses midnight.
        is_rest_period: True for rest (non-work) entries.
        color_hex: Display colour as ``#RRGGBB`` or ``#RGB``.
        description: Optional free text.
        break_start: Optional break start within the shift.
        break_end: Optional break end within the shift.
        is_user_defined: False for the built-in standard shifts.
        is_active: Soft-delete flag.
    """

    id: str
    name: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_rest_period: bool = False
    color_hex: str = "#2196F3"
    description: str = ""
    break_start: Optional[time] = None
    break_end: Optional[time] = None
    is_user_defined: bool = True
    is_active: bool = True

    @classmethod
    def rest(
        cls,
        id: str = "rest",
        name: str = "Rest",
        color_hex: str = "#9E9E9E",
        description: str = "Rest period",
    ) -> "ShiftType":
        """Create a rest-period shift type."""
        return cls(
            id=id,
            name=name,
            is_rest_period=True,
            color_hex=color_hex,
            description=description,
        )

    @property
    def crosses_midnight(self) -> bool:
        """Whether the shift ends on the calendar day after it starts."""
        if self.is_rest_period or self.start_time is None or self.end_time is None:
            return False
        return self.end_time < self.start_time

    @property
    def has_break_time(self) -> bool:
        """Whether a break window is configured."""
        return self.break_start is not None and self.break_end is not None

    @property
    def duration_minutes(self) -> int:
        """Total shift length in minutes, including any break."""
        window = self.time_window()
        if window is None:
            return 0
        return window[1] - window[0]

    @property
    def break_minutes(self) -> int:
        """Length of the break in minutes."""
        if not self.has_break_time:
            return 0
        minutes = time_to_minutes(self.break_end) - time_to_minutes(self.break_start)
        if minutes < 0:
            minutes += MINUTES_PER_DAY
        return minutes

    @property
    def work_duration_minutes(self) -> int:
        """Shift length minus the break."""
        return max(0, self.duration_minutes - self.break_minutes)

    @property
    def work_hours(self) -> float:
        return self.work_duration_minutes / 60

    def time_window(self) -> Optional[tuple[int, int]]:
        """Half-open minute window on the nominal start day.

        Returns:
            ``(start, end)`` minutes after midnight, where ``end`` exceeds
            1440 for shifts that cross midnight; None for rest periods.
        """
        if self.is_rest_period or self.start_time is None or self.end_time is None:
            return None
        start = time_to_minutes(self.start_time)
        end = time_to_minutes(self.end_time)
        if end <= start:
            end += MINUTES_PER_DAY
        return (start, end)

    def has_valid_color(self) -> bool:
        return bool(_COLOR_PATTERN.match(self.color_hex or ""))

    def time_range_label(self) -> str:
        """Human readable time window (e.g. ``05:00-13:00``)."""
        if self.is_rest_period or self.start_time is None or self.end_time is None:
            return "rest"
        return f"{self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def __str__(self) -> str:
        return f"{self.name} ({self.time_range_label()})"


@dataclass
class WorkShiftAssignment:
    """A shift type staffed by one or more teams on a pattern day.

    Team names are trimmed and deduplicated case-insensitively; the first
    spelling seen is kept.
    """

    shift_type: Optional[ShiftType]
    teams: list[str] = field(default_factory=list)
    is_overtime: bool = False
    is_mandatory: bool = False
    is_temporary: bool = False
    is_modified: bool = False
    modification_reason: Optional[str] = None
    original_assignment_id: Optional[str] = None
    notes: str = ""
    id: Optional[str] = None

    def __post_init__(self):
        cleaned: list[str] = []
        for team in self.teams:
            self._append_team(cleaned, team)
        self.teams = cleaned
        if self.modification_reason or self.original_assignment_id:
            self.is_modified = True

    @staticmethod
    def _append_team(teams: list[str], team: Optional[str]) -> bool:
        name = (team or "").strip()
        if not name:
            return False
        key = name.casefold()
        if any(existing.casefold() == key for existing in teams):
            return False
        teams.append(name)
        return True

    def add_team(self, team: str) -> bool:
        """Add a team if not already present. Returns True when added."""
        return self._append_team(self.teams, team)

    def remove_team(self, team: str) -> bool:
        """Remove a team (case-insensitive). Returns True when removed."""
        key = normalize_team(team)
        for existing in self.teams:
            if existing.casefold() == key:
                self.teams.remove(existing)
                return True
        return False

    def has_team(self, team: Optional[str]) -> bool:
        key = normalize_team(team)
        if not key:
            return False
        return any(existing.casefold() == key for existing in self.teams)

    def has_common_teams(self, other: "WorkShiftAssignment") -> bool:
        mine = {t.casefold() for t in self.teams}
        return any(t.casefold() in mine for t in other.teams)

    @property
    def is_work_assignment(self) -> bool:
        return self.shift_type is not None and not self.shift_type.is_rest_period

    @property
    def is_rest_assignment(self) -> bool:
        return self.shift_type is not None and self.shift_type.is_rest_period

    @property
    def has_special_flags(self) -> bool:
        return self.is_overtime or self.is_mandatory or self.is_temporary or self.is_modified

    @property
    def work_hours(self) -> float:
        if self.shift_type is None:
            return 0.0
        return self.shift_type.work_hours

    @property
    def flags(self) -> list[str]:
        """Short flag labels (OT, REQ, TEMP, MOD) in display order."""
        labels = []
        if self.is_overtime:
            labels.append("OT")
        if self.is_mandatory:
            labels.append("REQ")
        if self.is_temporary:
            labels.append("TEMP")
        if self.is_modified:
            labels.append("MOD")
        return labels

    def mark_modified(self, reason: str) -> None:
        self.is_modified = True
        self.modification_reason = reason

    def conflicts_with(self, other: "WorkShiftAssignment") -> bool:
        """Check if two assignments put the same team in overlapping work shifts."""
        if not (self.is_work_assignment and other.is_work_assignment):
            return False
        if not self.has_common_teams(other):
            return False
        mine = self.shift_type.time_window()
        theirs = other.shift_type.time_window()
        if mine is None or theirs is None:
            return False
        if windows_overlap(mine, theirs):
            return True
        # A midnight-crossing window also occupies the early hours of the same day
        shifted = (mine[0] - MINUTES_PER_DAY, mine[1] - MINUTES_PER_DAY)
        if windows_overlap(shifted, theirs):
            return True
        shifted = (theirs[0] - MINUTES_PER_DAY, theirs[1] - MINUTES_PER_DAY)
        return windows_overlap(mine, shifted)

    def is_valid(self) -> bool:
        """Check structural validity.

        An assignment needs a shift type, at least one team unless it is a
        rest period, and no duplicate teams.
        """
        if self.shift_type is None:
            return False
        if not self.teams and not self.shift_type.is_rest_period:
            return False
        keys = [t.casefold() for t in self.teams]
        return len(keys) == len(set(keys))

    def summary(self) -> str:
        name = self.shift_type.name if self.shift_type else "Unknown"
        parts = [name]
        if self.teams:
            parts.append(f"[{', '.join(self.teams)}]")
        if self.flags:
            parts.append(f"({', '.join(self.flags)})")
        return " ".join(parts)

    def copy(self) -> "WorkShiftAssignment":
        return replace(self, teams=list(self.teams))


@dataclass
class WorkSchedulePattern:
    """The ordered list of shift assignments for one day of a cycle."""

    day_in_cycle: int
    assignments: list[WorkShiftAssignment] = field(default_factory=list)
    day_name: str = ""
    notes: str = ""

    def __post_init__(self):
        if not self.day_name:
            self.day_name = f"Day {self.day_in_cycle + 1}"

    def add_assignment(self, assignment: WorkShiftAssignment) -> None:
        self.assignments.append(assignment)

    @property
    def work_assignments(self) -> list[WorkShiftAssignment]:
        return [a for a in self.assignments if a.is_work_assignment]

    @property
    def is_rest_day(self) -> bool:
        """A day with no work assignments."""
        return not self.work_assignments

    @property
    def work_shift_count(self) -> int:
        return len(self.work_assignments)

    @property
    def rest_period_count(self) -> int:
        return sum(1 for a in self.assignments if a.is_rest_assignment)

    @property
    def has_overtime_shifts(self) -> bool:
        return any(a.is_overtime for a in self.assignments)

    @property
    def unique_teams(self) -> list[str]:
        teams: list[str] = []
        for assignment in self.assignments:
            for team in assignment.teams:
                if team.casefold() not in (t.casefold() for t in teams):
                    teams.append(team)
        return teams

    def assignments_for_team(self, team: str) -> list[WorkShiftAssignment]:
        return [a for a in self.assignments if a.has_team(team)]

    def assignments_for_shift_type(self, shift_type_id: str) -> list[WorkShiftAssignment]:
        return [
            a for a in self.assignments
            if a.shift_type is not None and a.shift_type.id == shift_type_id
        ]

    def has_work_for_team(self, team: str) -> bool:
        return any(a.is_work_assignment and a.has_team(team) for a in self.assignments)

    def conflicting_pairs(self) -> list[tuple[int, int]]:
        """Index pairs of assignments that conflict with each other."""
        pairs = []
        for i, first in enumerate(self.assignments):
            for j in range(i + 1, len(self.assignments)):
                if first.conflicts_with(self.assignments[j]):
                    pairs.append((i, j))
        return pairs

    def is_valid(self) -> bool:
        if self.day_in_cycle < 0:
            return False
        if not all(a.is_valid() for a in self.assignments):
            return False
        return not self.conflicting_pairs()

    def summary(self) -> str:
        if self.is_rest_day:
            return f"{self.day_name}: rest"
        shifts = "; ".join(a.summary() for a in self.work_assignments)
        return f"{self.day_name}: {shifts}"

    def copy(self) -> "WorkSchedulePattern":
        return replace(self, assignments=[a.copy() for a in self.assignments])


class WorkScheduleType(Enum):
    """Kinds of schedule templates.

    Predefined types have a fixed cycle length and are generated by the
    fixed provider; CUSTOM and IMPORT templates are authored by users.
    """

    FIXED_4_2 = "fixed_4_2"  # QuattroDue: 4 on, 2 off, 18-day team cycle
    FIXED_3_2 = "fixed_3_2"  # 3 on, 2 off
    FIXED_5_2 = "fixed_5_2"  # Classic working week
    CUSTOM = "custom"
    IMPORT = "import"

    @property
    def display_name(self) -> str:
        return _TYPE_INFO[self][0]

    @property
    def default_cycle_days(self) -> int:
        """Default cycle length; 0 for variable-length types."""
        return _TYPE_INFO[self][1]

    @property
    def is_predefined(self) -> bool:
        return self in (
            WorkScheduleType.FIXED_4_2,
            WorkScheduleType.FIXED_3_2,
            WorkScheduleType.FIXED_5_2,
        )

    @property
    def allows_customization(self) -> bool:
        return not self.is_predefined

    @property
    def has_fixed_cycle(self) -> bool:
        return self.default_cycle_days > 0

    def is_valid_cycle_length(self, cycle_days: int) -> bool:
        if self.has_fixed_cycle:
            return cycle_days == self.default_cycle_days
        return 0 < cycle_days <= 365

    @classmethod
    def best_match_for_cycle(cls, cycle_days: int) -> "WorkScheduleType":
        """Pick the predefined type with this cycle length, else CUSTOM."""
        for schedule_type in cls:
            if schedule_type.is_predefined and schedule_type.default_cycle_days == cycle_days:
                return schedule_type
        return cls.CUSTOM


_TYPE_INFO = {
    WorkScheduleType.FIXED_4_2: ("QuattroDue 4-2", 18),
    WorkScheduleType.FIXED_3_2: ("Fixed 3-2", 15),
    WorkScheduleType.FIXED_5_2: ("Fixed 5-2", 7),
    WorkScheduleType.CUSTOM: ("Custom", 0),
    WorkScheduleType.IMPORT: ("Imported", 0),
}


@dataclass
class WorkScheduleTemplate:
    """A named, cyclic schedule of daily patterns.

    ``patterns`` is indexed by cycle day. Slots may hold None to mark a day
    that has no pattern yet; generation treats such days as empty and
    validation reports them.

    Attributes:
        id: Template identifier referenced by recurrence rules.
        name: Display name.
        type: Template kind, used to select a provider.
        cycle_days: Length of the cycle in days.
        patterns: Per-day patterns (index = cycle day).
        created_at: Reference date for user-defined templates.
        min_teams_per_shift: Minimum teams on each work assignment.
        max_teams_per_shift: Maximum teams on each work assignment.
        supported_teams: Teams allowed in this template (empty = any).
        requires_team_assignment: Whether assignments must name teams.
    """

    id: str
    name: str
    type: Optional[WorkScheduleType] = WorkScheduleType.CUSTOM
    cycle_days: int = 7
    patterns: list[Optional[WorkSchedulePattern]] = field(default_factory=list)
    description: str = ""
    is_active: bool = True
    is_user_defined: bool = True
    created_at: Optional[date] = None
    last_modified: Optional[datetime] = None
    created_by: Optional[str] = None
    usage_count: int = 0
    requires_team_assignment: bool = True
    min_teams_per_shift: int = 1
    max_teams_per_shift: int = 10
    supported_teams: list[str] = field(default_factory=list)

    def pattern_for_day(self, day_in_cycle: int) -> Optional[WorkSchedulePattern]:
        """Pattern at a cycle position, or None when absent."""
        if 0 <= day_in_cycle < len(self.patterns):
            return self.patterns[day_in_cycle]
        return None

    def set_pattern_for_day(self, day_in_cycle: int, pattern: WorkSchedulePattern) -> None:
        """Place a pattern into its fixed cycle slot.

        Raises:
            IndexError: If the day is outside ``[0, cycle_days)``.
        """
        if not 0 <= day_in_cycle < self.cycle_days:
            raise IndexError(
                f"Day {day_in_cycle} is outside cycle of {self.cycle_days} days"
            )
        if len(self.patterns) < self.cycle_days:
            self.patterns.extend([None] * (self.cycle_days - len(self.patterns)))
        pattern.day_in_cycle = day_in_cycle
        self.patterns[day_in_cycle] = pattern

    def add_pattern(self, pattern: WorkSchedulePattern) -> None:
        """Append a pattern at the next cycle position."""
        pattern.day_in_cycle = len(self.patterns)
        self.patterns.append(pattern)

    @property
    def defined_pattern_count(self) -> int:
        return sum(1 for p in self.patterns if p is not None)

    def supports_team(self, team: str) -> bool:
        if not self.supported_teams:
            return True
        key = normalize_team(team)
        return any(t.casefold() == key for t in self.supported_teams)

    @property
    def total_work_shifts(self) -> int:
        return sum(p.work_shift_count for p in self.patterns if p is not None)

    @property
    def total_rest_periods(self) -> int:
        return sum(p.rest_period_count for p in self.patterns if p is not None)

    def deactivate(self) -> None:
        """Soft-delete the template."""
        self.is_active = False
        self.last_modified = datetime.now()

    def increment_usage(self) -> None:
        self.usage_count += 1

    def copy(self, new_name: str, new_id: Optional[str] = None) -> "WorkScheduleTemplate":
        """Create an editable user-defined copy of this template."""
        return replace(
            self,
            id=new_id or f"{self.id}_copy",
            name=new_name,
            type=WorkScheduleType.CUSTOM,
            patterns=[p.copy() if p is not None else None for p in self.patterns],
            is_user_defined=True,
            is_active=True,
            created_at=date.today(),
            last_modified=None,
            usage_count=0,
            supported_teams=list(self.supported_teams),
        )


@dataclass(frozen=True)
class Team:
    """A team (half-team in QuattroDue terms) staffing shifts.

    Attributes:
        id: Team identifier matched against assignment team lists.
        name: Display name.
        qdue_offset: Days by which the team's cycle lags the base cycle.
        color_hex: Display colour.
        is_active: Soft-delete flag.
    """

    id: str
    name: str = ""
    qdue_offset: int = 0
    color_hex: str = "#607D8B"
    is_active: bool = True


@dataclass(frozen=True)
class ScheduleEvent:
    """A generated calendar entry for one shift on one date.

    Events are immutable; overlays produce modified copies.
    """

    event_date: date
    shift_type: ShiftType
    teams: tuple[str, ...] = ()
    title: str = ""
    description: str = ""
    cycle_day: int = 0
    cycle_days: int = 0
    source_template_id: str = ""
    provider_name: str = ""
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_overtime: bool = False
    is_mandatory: bool = False
    is_temporary: bool = False
    is_modified: bool = False
    modification_reason: Optional[str] = None
    user_id: Optional[str] = None
    exception_id: Optional[str] = None
    segment: int = 0

    @property
    def event_id(self) -> str:
        """Deterministic identifier for this event.

        Segments of a split shift get a numbered suffix.
        """
        event_id = (
            f"{self.source_template_id}:{self.event_date.isoformat()}:"
            f"{self.cycle_day}:{self.shift_type.id}"
        )
        if self.segment:
            event_id += f":{self.segment}"
        return event_id

    @property
    def shift_id(self) -> str:
        return self.shift_type.id

    @property
    def is_rest_period(self) -> bool:
        return self.shift_type.is_rest_period

    @property
    def is_work(self) -> bool:
        return not self.shift_type.is_rest_period

    @property
    def crosses_midnight(self) -> bool:
        if self.start_time is None or self.end_time is None:
            return False
        return self.end_time < self.start_time

    def time_window(self) -> Optional[tuple[int, int]]:
        """Half-open minute window on the nominal start day."""
        if self.is_rest_period or self.start_time is None or self.end_time is None:
            return None
        start = time_to_minutes(self.start_time)
        end = time_to_minutes(self.end_time)
        if end <= start:
            end += MINUTES_PER_DAY
        return (start, end)

    @property
    def duration_minutes(self) -> int:
        window = self.time_window()
        return 0 if window is None else window[1] - window[0]

    @property
    def flags(self) -> list[str]:
        labels = []
        if self.is_overtime:
            labels.append("OT")
        if self.is_mandatory:
            labels.append("REQ")
        if self.is_temporary:
            labels.append("TEMP")
        if self.is_modified:
            labels.append("MOD")
        return labels

    def has_team(self, team: Optional[str]) -> bool:
        key = normalize_team(team)
        return bool(key) and any(t.casefold() == key for t in self.teams)
