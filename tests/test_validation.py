"""Tests for template, rule, exception and assignment validation."""

from datetime import date, time

import pytest

from qdue.domain.assignments import AssignmentPriority, UserScheduleAssignment
from qdue.domain.exceptions import ApprovalStatus, ExceptionType, ShiftException
from qdue.domain.models import (
    ShiftType,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkScheduleType,
    WorkShiftAssignment,
)
from qdue.domain.presets import (
    MORNING,
    REST,
    create_quattrodue_template,
    create_sample_custom_template,
)
from qdue.domain.recurrence import Frequency, RecurrenceRule
from qdue.validation.validator import (
    AssignmentValidator,
    ExceptionValidator,
    RuleValidator,
    TemplateValidator,
    ValidationErrorType,
    validate_shift_type,
)

DAY = date(2025, 1, 6)


def error_types(result):
    return {e.error_type for e in result.errors}


class TestTemplateValidator:
    """Tests for TemplateValidator."""

    @pytest.fixture
    def validator(self):
        return TemplateValidator()

    def test_standard_template_is_valid(self, validator):
        result = validator.validate(create_quattrodue_template())
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_sample_custom_template_is_valid(self, validator):
        assert validator.validate(create_sample_custom_template()).is_valid

    def test_not_enough_patterns(self, validator):
        """Seventeen patterns for an 18-day cycle is an error."""
        template = create_quattrodue_template()
        template.patterns.pop()
        result = validator.validate(template)
        assert not result.is_valid
        assert "Not enough patterns for cycle length: 17/18" in result.error_messages

    def test_missing_slot(self, validator):
        template = create_sample_custom_template()
        template.patterns[3] = None
        result = validator.validate(template)
        missing = [e for e in result.errors if e.error_type is ValidationErrorType.MISSING_PATTERN]
        assert len(missing) == 1
        assert missing[0].day_in_cycle == 3
        assert ValidationErrorType.NOT_ENOUGH_PATTERNS in error_types(result)

    def test_conflicting_assignments(self, validator):
        template = create_sample_custom_template()
        template.patterns[0].add_assignment(WorkShiftAssignment(
            ShiftType(id="late", name="Late", start_time=time(15), end_time=time(20)),
            teams=["Office"],
        ))
        result = validator.validate(template)
        conflicts = [e for e in result.errors if e.error_type is ValidationErrorType.SHIFT_CONFLICT]
        assert len(conflicts) == 1
        assert conflicts[0].day_in_cycle == 0
        assert "Invalid pattern at day 0" in conflicts[0].message

    def test_team_count_outside_limits(self, validator):
        template = create_quattrodue_template()
        template.patterns[0].assignments[0].add_team("C")
        result = validator.validate(template)
        assert error_types(result) == {ValidationErrorType.TEAM_COUNT}

    def test_unsupported_team(self, validator):
        template = create_quattrodue_template()
        morning = template.patterns[0].assignments[0]
        morning.remove_team("B")
        morning.add_team("Z")
        result = validator.validate(template)
        assert error_types(result) == {ValidationErrorType.UNSUPPORTED_TEAM}
        assert "Team Z" in result.errors[0].message

    def test_min_teams_above_max(self, validator):
        template = create_sample_custom_template()
        template.min_teams_per_shift = 5
        template.max_teams_per_shift = 2
        assert ValidationErrorType.INVALID_TEAM_LIMITS in error_types(validator.validate(template))

    def test_custom_template_without_patterns(self, validator):
        template = WorkScheduleTemplate(id="empty", name="Empty", cycle_days=7)
        result = validator.validate(template)
        assert ValidationErrorType.NO_PATTERNS in error_types(result)
        assert ValidationErrorType.NOT_ENOUGH_PATTERNS in error_types(result)
        assert any("supported teams" in w for w in result.warnings)

    def test_missing_name_and_bad_cycle(self, validator):
        template = WorkScheduleTemplate(id="bad", name="  ", cycle_days=0)
        result = validator.validate(template)
        assert error_types(result) == {
            ValidationErrorType.MISSING_NAME,
            ValidationErrorType.INVALID_CYCLE_LENGTH,
        }

    def test_short_fixed_cycle_only_warns(self, validator):
        """A six-day QuattroDue-type template is usable but unusual."""
        template = WorkScheduleTemplate(
            id="six", name="Six", type=WorkScheduleType.FIXED_4_2, cycle_days=6,
            is_user_defined=False, supported_teams=["A"],
        )
        for day in range(6):
            assignment = WorkShiftAssignment(REST) if day >= 4 else WorkShiftAssignment(MORNING, teams=["A"])
            template.add_pattern(WorkSchedulePattern(day, [assignment]))
        result = validator.validate(template)
        assert result.is_valid
        assert result.warnings == ["QuattroDue 4-2 templates normally span 18 days, not 6"]

    def test_long_cycle_warns(self):
        template = create_sample_custom_template()
        result = TemplateValidator(max_cycle_days=5).validate(template)
        assert result.is_valid
        assert any("longer than 5 days" in w for w in result.warnings)


class TestValidateShiftType:
    """Tests for validate_shift_type."""

    def test_standard_shift_is_clean(self):
        assert validate_shift_type(MORNING) == []
        assert validate_shift_type(REST) == []

    def test_zero_length_shift(self):
        shift = ShiftType(id="z", name="Zero", start_time=time(8), end_time=time(8))
        assert validate_shift_type(shift) == ["Work shift Zero has zero length"]

    def test_break_outside_shift(self):
        shift = ShiftType(
            id="b", name="Day", start_time=time(8), end_time=time(12),
            break_start=time(12, 30), break_end=time(13),
        )
        assert validate_shift_type(shift) == ["Break of Day lies outside the shift"]

    def test_work_shift_without_times(self):
        problems = validate_shift_type(ShiftType(id="n", name="Open", color_hex="red"))
        assert len(problems) == 2


class TestRuleValidator:
    """Tests for RuleValidator."""

    def test_standard_rule(self):
        rule = RecurrenceRule.quattrodue(date(2025, 1, 1))
        result = RuleValidator().validate(rule, create_quattrodue_template())
        assert result.is_valid
        assert result.warnings == []

    def test_cycle_not_multiple_of_cadence(self):
        rule = RecurrenceRule.quattrodue(date(2025, 1, 1), cycle_length=16)
        result = RuleValidator().validate(rule)
        assert error_types(result) == {ValidationErrorType.INVALID_RULE}

    def test_template_mismatch_warns(self):
        rule = RecurrenceRule.quattrodue(date(2025, 1, 1), template_id="office_week")
        result = RuleValidator().validate(rule, create_sample_custom_template())
        assert result.is_valid
        assert len(result.warnings) == 1
        assert "differs from template" in result.warnings[0]

    def test_ignored_by_day_warns(self):
        rule = RecurrenceRule(id="d", frequency=Frequency.DAILY, start_date=DAY, by_day=(0,))
        result = RuleValidator().validate(rule)
        assert result.warnings == ["by_day is ignored for daily rules"]


class TestExceptionValidator:
    """Tests for ExceptionValidator."""

    @pytest.fixture
    def validator(self):
        return ExceptionValidator()

    def test_vacation_is_valid(self, validator):
        result = validator.validate(ShiftException.vacation("v", "alice", DAY))
        assert result.is_valid
        assert result.warnings == []

    def test_swap_needs_counterpart(self, validator):
        missing = ShiftException(id="s", type=ExceptionType.CHANGE_SWAP, user_id="alice", target_date=DAY)
        with_self = ShiftException.shift_swap("s", "alice", "alice", DAY)
        assert error_types(validator.validate(missing)) == {ValidationErrorType.MISSING_COUNTERPART}
        assert error_types(validator.validate(with_self)) == {ValidationErrorType.MISSING_COUNTERPART}

    def test_change_needs_replacement(self, validator):
        change = ShiftException(id="c", type=ExceptionType.CHANGE_COMPANY, user_id="alice", target_date=DAY)
        assert error_types(validator.validate(change)) == {ValidationErrorType.MISSING_REPLACEMENT}

    def test_reduction_needs_end_or_duration(self, validator):
        reduction = ShiftException.time_reduction("r", "alice", DAY)
        assert error_types(validator.validate(reduction)) == {ValidationErrorType.MISSING_REPLACEMENT}
        zero = ShiftException.time_reduction("r", "alice", DAY, 0)
        assert error_types(validator.validate(zero)) == {ValidationErrorType.INVALID_DURATION}

    def test_equal_times(self, validator):
        change = ShiftException(
            id="c", type=ExceptionType.CHANGE_COMPANY, user_id="alice", target_date=DAY,
            new_start_time=time(8), new_end_time=time(8),
        )
        assert error_types(validator.validate(change)) == {ValidationErrorType.INVALID_TIME_WINDOW}

    def test_workflow_fields(self, validator):
        rejected = ShiftException(
            id="x", type=ExceptionType.CHANGE_SWAP, user_id="alice", swap_with_user_id="bob",
            target_date=DAY, status=ApprovalStatus.REJECTED,
        )
        approved = ShiftException(
            id="y", type=ExceptionType.ABSENCE_SPECIAL, user_id="alice",
            target_date=DAY, status=ApprovalStatus.APPROVED,
        )
        assert error_types(validator.validate(rejected)) == {ValidationErrorType.MISSING_REASON}
        assert error_types(validator.validate(approved)) == {ValidationErrorType.MISSING_APPROVER}

    def test_warnings(self, validator):
        partial = ShiftException.vacation("v", "alice", DAY, is_full_day=False)
        custom = ShiftException(id="c", type=ExceptionType.CUSTOM, user_id="alice", target_date=DAY)
        night = ShiftException(
            id="n", type=ExceptionType.CHANGE_COMPANY, user_id="alice", target_date=DAY,
            new_start_time=time(22), new_end_time=time(6),
        )
        for exception in (partial, custom, night):
            result = validator.validate(exception)
            assert result.is_valid
            assert len(result.warnings) == 1


class TestAssignmentValidator:
    """Tests for AssignmentValidator."""

    def make(self, id, priority=AssignmentPriority.NORMAL, team_id="A"):
        return UserScheduleAssignment(
            id=id, user_id="alice", team_id=team_id,
            recurrence_rule_id="quattrodue_standard_a", start_date=DAY, priority=priority,
        )

    def test_missing_team(self):
        result = AssignmentValidator().validate(self.make("a", team_id=""))
        assert error_types(result) == {ValidationErrorType.MISSING_REFERENCE}
        assert result.errors[0].message == "Assignment needs team id"

    def test_equal_priority_overlap_warns(self):
        result = AssignmentValidator().validate_many([self.make("a"), self.make("b")])
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_override_overlap_is_silent(self):
        result = AssignmentValidator().validate_many([
            self.make("a"), self.make("b", AssignmentPriority.OVERRIDE),
        ])
        assert result.warnings == []
