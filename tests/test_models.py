"""Tests for domain models."""

from datetime import date, time

import pytest

from qdue.domain.models import (
    ShiftType,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkScheduleType,
    WorkShiftAssignment,
)
from qdue.domain.presets import AFTERNOON, MORNING, NIGHT, REST


class TestShiftType:
    """Tests for ShiftType."""

    def test_day_shift_duration(self):
        """Morning shift lasts eight hours and does not cross midnight."""
        assert MORNING.duration_minutes == 480
        assert not MORNING.crosses_midnight

    def test_night_shift_crosses_midnight(self):
        """Night shift 21:00-05:00 wraps past midnight."""
        assert NIGHT.crosses_midnight
        assert NIGHT.duration_minutes == 480
        assert NIGHT.time_window() == (21 * 60, 29 * 60)

    def test_rest_period_has_no_window(self):
        assert REST.time_window() is None
        assert REST.duration_minutes == 0
        assert not REST.crosses_midnight

    def test_break_reduces_work_duration(self):
        """Work duration excludes the break."""
        shift = ShiftType(
            id="day",
            name="Day",
            start_time=time(8, 0),
            end_time=time(16, 30),
            break_start=time(12, 0),
            break_end=time(12, 30),
        )
        assert shift.duration_minutes == 510
        assert shift.work_duration_minutes == 480
        assert shift.work_hours == 8.0

    def test_color_validation(self):
        assert MORNING.has_valid_color()
        assert ShiftType(id="x", name="X", color_hex="#abc").has_valid_color()
        assert not ShiftType(id="x", name="X", color_hex="blue").has_valid_color()


class TestWorkShiftAssignment:
    """Tests for WorkShiftAssignment."""

    def test_teams_are_trimmed_and_deduplicated(self):
        """Duplicate teams (ignoring case) are dropped, first spelling kept."""
        assignment = WorkShiftAssignment(MORNING, teams=[" a ", "A", "B", ""])
        assert assignment.teams == ["a", "B"]

    def test_has_team_is_case_insensitive(self):
        assignment = WorkShiftAssignment(MORNING, teams=["A", "B"])
        assert assignment.has_team("a")
        assert assignment.has_team(" b ")
        assert not assignment.has_team("C")
        assert not assignment.has_team("")

    def test_add_and_remove_team(self):
        assignment = WorkShiftAssignment(MORNING, teams=["A"])
        assert assignment.add_team("B")
        assert not assignment.add_team("b")
        assert assignment.remove_team("a")
        assert assignment.teams == ["B"]

    def test_work_assignment_needs_teams(self):
        """A work shift without teams is invalid, a rest period is not."""
        assert not WorkShiftAssignment(MORNING).is_valid()
        assert WorkShiftAssignment(REST).is_valid()
        assert not WorkShiftAssignment(None, teams=["A"]).is_valid()

    def test_modification_reason_marks_modified(self):
        assignment = WorkShiftAssignment(MORNING, teams=["A"], modification_reason="cover")
        assert assignment.is_modified
        assert assignment.flags == ["MOD"]

    def test_flags_in_display_order(self):
        assignment = WorkShiftAssignment(
            MORNING, teams=["A"], is_overtime=True, is_mandatory=True, is_temporary=True,
        )
        assert assignment.flags == ["OT", "REQ", "TEMP"]
        assert assignment.has_special_flags

    def test_overlapping_shifts_with_common_team_conflict(self):
        """Same team in overlapping windows is a conflict."""
        long_day = ShiftType(id="long", name="Long", start_time=time(9), end_time=time(17))
        first = WorkShiftAssignment(MORNING, teams=["A"])
        second = WorkShiftAssignment(long_day, teams=["a"])
        assert first.conflicts_with(second)

    def test_adjacent_shifts_do_not_conflict(self):
        """Morning and afternoon touch at 13:00 but do not overlap."""
        first = WorkShiftAssignment(MORNING, teams=["A"])
        second = WorkShiftAssignment(AFTERNOON, teams=["A"])
        assert not first.conflicts_with(second)

    def test_night_and_next_morning_do_not_conflict(self):
        """Night ends at 05:00 when the morning starts."""
        first = WorkShiftAssignment(NIGHT, teams=["A"])
        second = WorkShiftAssignment(MORNING, teams=["A"])
        assert not first.conflicts_with(second)

    def test_early_shift_conflicts_with_night_tail(self):
        """A shift before 05:00 overlaps the night shift's early hours."""
        early = ShiftType(id="early", name="Early", start_time=time(3), end_time=time(7))
        assert WorkShiftAssignment(NIGHT, teams=["A"]).conflicts_with(
            WorkShiftAssignment(early, teams=["A"])
        )

    def test_different_teams_never_conflict(self):
        first = WorkShiftAssignment(MORNING, teams=["A"])
        second = WorkShiftAssignment(MORNING, teams=["B"])
        assert not first.conflicts_with(second)


class TestWorkSchedulePattern:
    """Tests for WorkSchedulePattern."""

    def test_rest_day(self):
        pattern = WorkSchedulePattern(0, [WorkShiftAssignment(REST)])
        assert pattern.is_rest_day
        assert pattern.rest_period_count == 1
        assert pattern.is_valid()

    def test_counts_and_teams(self):
        pattern = WorkSchedulePattern(2, [
            WorkShiftAssignment(MORNING, teams=["A", "B"]),
            WorkShiftAssignment(AFTERNOON, teams=["C", "D"]),
        ])
        assert pattern.work_shift_count == 2
        assert pattern.unique_teams == ["A", "B", "C", "D"]
        assert pattern.has_work_for_team("c")
        assert not pattern.has_work_for_team("E")
        assert pattern.day_name == "Day 3"

    def test_conflicting_pattern_is_invalid(self):
        pattern = WorkSchedulePattern(0, [
            WorkShiftAssignment(MORNING, teams=["A"]),
            WorkShiftAssignment(MORNING, teams=["A", "B"]),
        ])
        assert pattern.conflicting_pairs() == [(0, 1)]
        assert not pattern.is_valid()

    def test_negative_day_is_invalid(self):
        assert not WorkSchedulePattern(-1).is_valid()


class TestWorkScheduleTemplate:
    """Tests for WorkScheduleTemplate."""

    @pytest.fixture
    def template(self):
        return WorkScheduleTemplate(id="t", name="Test", cycle_days=4)

    def test_set_pattern_uses_fixed_slots(self, template):
        """Setting day 2 first leaves explicit empty slots."""
        template.set_pattern_for_day(2, WorkSchedulePattern(0))
        assert len(template.patterns) == 4
        assert template.pattern_for_day(0) is None
        assert template.pattern_for_day(2).day_in_cycle == 2
        assert template.defined_pattern_count == 1

    def test_set_pattern_outside_cycle_raises(self, template):
        with pytest.raises(IndexError):
            template.set_pattern_for_day(4, WorkSchedulePattern(0))

    def test_pattern_for_day_out_of_range(self, template):
        assert template.pattern_for_day(10) is None
        assert template.pattern_for_day(-1) is None

    def test_supports_team(self, template):
        assert template.supports_team("anything")
        template.supported_teams = ["A", "B"]
        assert template.supports_team("a")
        assert not template.supports_team("C")

    def test_copy_is_custom_and_independent(self, template):
        template.type = WorkScheduleType.FIXED_4_2
        template.is_user_defined = False
        template.add_pattern(WorkSchedulePattern(0, [WorkShiftAssignment(MORNING, teams=["A"])]))
        copy = template.copy("Mine")
        assert copy.type is WorkScheduleType.CUSTOM
        assert copy.is_user_defined
        assert copy.created_at == date.today()
        copy.patterns[0].assignments[0].add_team("B")
        assert template.patterns[0].assignments[0].teams == ["A"]

    def test_deactivate_and_usage(self, template):
        template.increment_usage()
        template.deactivate()
        assert template.usage_count == 1
        assert not template.is_active


class TestWorkScheduleType:
    """Tests for WorkScheduleType."""

    def test_fixed_cycle_lengths(self):
        assert WorkScheduleType.FIXED_4_2.default_cycle_days == 18
        assert WorkScheduleType.FIXED_3_2.default_cycle_days == 15
        assert WorkScheduleType.FIXED_5_2.default_cycle_days == 7

    def test_predefined_types(self):
        assert WorkScheduleType.FIXED_4_2.is_predefined
        assert not WorkScheduleType.CUSTOM.is_predefined
        assert WorkScheduleType.IMPORT.allows_customization

    def test_best_match_for_cycle(self):
        assert WorkScheduleType.best_match_for_cycle(18) is WorkScheduleType.FIXED_4_2
        assert WorkScheduleType.best_match_for_cycle(10) is WorkScheduleType.CUSTOM
