"""Validation of templates, rules, exceptions and assignments.

Validators never raise for structural problems; they return a
ValidationResult listing errors (which make the object unusable) and
warnings (which do not).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from qdue.domain.assignments import UserScheduleAssignment
from qdue.domain.exceptions import ApprovalStatus, ExceptionType, ShiftException
from qdue.domain.models import (
    ShiftType,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkScheduleType,
    time_to_minutes,
)
from qdue.domain.recurrence import Frequency, RecurrenceRule
from qdue.scheduling.assignments import find_overlaps

MAX_CYCLE_DAYS = 365


class ValidationErrorType(Enum):
    """Types of validation errors."""

    MISSING_NAME = "missing_name"
    MISSING_TYPE = "missing_type"
    INVALID_CYCLE_LENGTH = "invalid_cycle_length"
    NO_PATTERNS = "no_patterns"
    NOT_ENOUGH_PATTERNS = "not_enough_patterns"
    MISSING_PATTERN = "missing_pattern"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_ASSIGNMENT = "invalid_assignment"
    SHIFT_CONFLICT = "shift_conflict"
    TEAM_COUNT = "team_count"
    UNSUPPORTED_TEAM = "unsupported_team"
    INVALID_TEAM_LIMITS = "invalid_team_limits"
    INVALID_SHIFT_TYPE = "invalid_shift_type"
    INVALID_RULE = "invalid_rule"
    MISSING_COUNTERPART = "missing_counterpart"
    MISSING_REASON = "missing_reason"
    MISSING_APPROVER = "missing_approver"
    MISSING_REPLACEMENT = "missing_replacement"
    INVALID_TIME_WINDOW = "invalid_time_window"
    INVALID_DURATION = "invalid_duration"
    MISSING_REFERENCE = "missing_reference"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    day_in_cycle: Optional[int] = None
    subject_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.subject_id:
            parts.append(f"{self.subject_id}:")
        parts.append(self.message)
        if self.day_in_cycle is not None:
            parts.append(f"(day {self.day_in_cycle})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of a validation."""

    is_valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> None:
        for error in other.errors:
            self.add_error(error)
        self.warnings.extend(other.warnings)

    @property
    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]


TemplateValidationResult = ValidationResult


def validate_shift_type(shift_type: ShiftType) -> list[str]:
    """Problems with a shift type definition, as messages."""
    problems = []
    if not shift_type.name or not shift_type.name.strip():
        problems.append("Shift type name is required")
    if not shift_type.has_valid_color():
        problems.append(f"Invalid colour {shift_type.color_hex!r} for {shift_type.name}")
    if shift_type.is_rest_period:
        return problems
    if shift_type.start_time is None or shift_type.end_time is None:
        problems.append(f"Work shift {shift_type.name} needs start and end times")
        return problems
    if shift_type.start_time == shift_type.end_time:
        problems.append(f"Work shift {shift_type.name} has zero length")
    if shift_type.break_start is not None or shift_type.break_end is not None:
        if not shift_type.has_break_time:
            problems.append(f"Break of {shift_type.name} needs both start and end")
        elif not shift_type.crosses_midnight:
            start = time_to_minutes(shift_type.start_time)
            end = time_to_minutes(shift_type.end_time)
            b_start = time_to_minutes(shift_type.break_start)
            b_end = time_to_minutes(shift_type.break_end)
            if not (start <= b_start < b_end <= end):
                problems.append(f"Break of {shift_type.name} lies outside the shift")
    return problems


class TemplateValidator:
    """Validates schedule templates before use.

    The validator is used both when templates are authored and before
    generation, so every structural rule lives here.
    """

    def __init__(self, max_cycle_days: int = MAX_CYCLE_DAYS):
        self.max_cycle_days = max_cycle_days

    def validate(self, template: WorkScheduleTemplate) -> ValidationResult:
        """Validate a template.

        Args:
            template: Template to check.

        Returns:
            ValidationResult with errors and warnings.
        """
        result = ValidationResult()
        subject = template.id

        if not template.name or not template.name.strip():
            result.add_error(ValidationError(
                ValidationErrorType.MISSING_NAME, "Template name is required", subject_id=subject,
            ))
        if template.type is None:
            result.add_error(ValidationError(
                ValidationErrorType.MISSING_TYPE, "Template type is required", subject_id=subject,
            ))
        if template.min_teams_per_shift > template.max_teams_per_shift:
            result.add_error(ValidationError(
                ValidationErrorType.INVALID_TEAM_LIMITS,
                f"Minimum teams per shift ({template.min_teams_per_shift}) exceeds "
                f"maximum ({template.max_teams_per_shift})",
                subject_id=subject,
            ))
        if template.requires_team_assignment and not template.supported_teams:
            result.add_warning("Template requires team assignment but lists no supported teams")

        if template.cycle_days <= 0:
            result.add_error(ValidationError(
                ValidationErrorType.INVALID_CYCLE_LENGTH,
                f"Cycle length must be positive, got {template.cycle_days}",
                subject_id=subject,
            ))
            return result
        if template.cycle_days > self.max_cycle_days:
            result.add_warning(
                f"Cycle of {template.cycle_days} days is longer than {self.max_cycle_days} days"
            )
        if (
            template.type is not None
            and template.type.has_fixed_cycle
            and not template.type.is_valid_cycle_length(template.cycle_days)
        ):
            result.add_warning(
                f"{template.type.display_name} templates normally span "
                f"{template.type.default_cycle_days} days, not {template.cycle_days}"
            )

        if template.type is WorkScheduleType.CUSTOM and template.defined_pattern_count == 0:
            result.add_error(ValidationError(
                ValidationErrorType.NO_PATTERNS,
                "Custom templates need at least one pattern",
                subject_id=subject,
            ))
        if template.defined_pattern_count < template.cycle_days:
            result.add_error(ValidationError(
                ValidationErrorType.NOT_ENOUGH_PATTERNS,
                f"Not enough patterns for cycle length: "
                f"{template.defined_pattern_count}/{template.cycle_days}",
                subject_id=subject,
            ))

        for day in range(template.cycle_days):
            pattern = template.pattern_for_day(day)
            if pattern is None:
                if day < len(template.patterns):
                    result.add_error(ValidationError(
                        ValidationErrorType.MISSING_PATTERN,
                        f"No pattern defined for day {day + 1}",
                        day_in_cycle=day,
                        subject_id=subject,
                    ))
                continue
            result.merge(self.validate_pattern(pattern, template, day))
        return result

    def validate_pattern(
        self,
        pattern: WorkSchedulePattern,
        template: Optional[WorkScheduleTemplate] = None,
        day: Optional[int] = None,
    ) -> ValidationResult:
        """Validate one daily pattern, optionally against template limits."""
        result = ValidationResult()
        day = pattern.day_in_cycle if day is None else day
        subject = template.id if template else None

        if pattern.day_in_cycle < 0:
            result.add_error(ValidationError(
                ValidationErrorType.INVALID_PATTERN,
                f"Invalid pattern at day {day}: negative cycle day",
                day_in_cycle=day,
                subject_id=subject,
            ))

        for assignment in pattern.assignments:
            if not assignment.is_valid():
                result.add_error(ValidationError(
                    ValidationErrorType.INVALID_ASSIGNMENT,
                    f"Invalid pattern at day {day}: invalid assignment {assignment.summary()}",
                    day_in_cycle=day,
                    subject_id=subject,
                ))
                continue
            for problem in validate_shift_type(assignment.shift_type):
                result.add_error(ValidationError(
                    ValidationErrorType.INVALID_SHIFT_TYPE, problem,
                    day_in_cycle=day, subject_id=subject,
                ))
            if template is None or not assignment.is_work_assignment:
                continue
            count = len(assignment.teams)
            if not template.min_teams_per_shift <= count <= template.max_teams_per_shift:
                result.add_error(ValidationError(
                    ValidationErrorType.TEAM_COUNT,
                    f"{assignment.shift_type.name} has {count} teams; expected "
                    f"{template.min_teams_per_shift}-{template.max_teams_per_shift}",
                    day_in_cycle=day,
                    subject_id=subject,
                ))
            for team in assignment.teams:
                if not template.supports_team(team):
                    result.add_error(ValidationError(
                        ValidationErrorType.UNSUPPORTED_TEAM,
                        f"Team {team} is not supported by this template",
                        day_in_cycle=day,
                        subject_id=subject,
                    ))

        for i, j in pattern.conflicting_pairs():
            first, second = pattern.assignments[i], pattern.assignments[j]
            result.add_error(ValidationError(
                ValidationErrorType.SHIFT_CONFLICT,
                f"Invalid pattern at day {day}: {first.summary()} overlaps {second.summary()}",
                day_in_cycle=day,
                subject_id=subject,
            ))
        return result


class RuleValidator:
    """Soft checks for recurrence rules.

    Hard invariants are enforced when a rule is constructed; this validator
    reports combinations that are legal but probably unintended.
    """

    def validate(
        self,
        rule: RecurrenceRule,
        template: Optional[WorkScheduleTemplate] = None,
    ) -> ValidationResult:
        result = ValidationResult()
        if not rule.is_active:
            result.add_warning(f"Rule {rule.id} is inactive and never matches")

        if rule.frequency is Frequency.QUATTRODUE_CYCLE:
            period = rule.cadence_period
            if rule.cycle_length % period != 0:
                result.add_error(ValidationError(
                    ValidationErrorType.INVALID_RULE,
                    f"Cycle of {rule.cycle_length} days is not a multiple of the "
                    f"{period}-day work/rest period",
                    subject_id=rule.id,
                ))
            if rule.interval != 1 or rule.by_day or rule.by_month_day or rule.by_month:
                result.add_warning("Calendar fields are ignored by QuattroDue cycle rules")
            if template is not None and template.cycle_days != rule.cycle_length:
                result.add_warning(
                    f"Rule cycle ({rule.cycle_length}) differs from template "
                    f"{template.id} cycle ({template.cycle_days})"
                )
        elif rule.frequency is not Frequency.WEEKLY and rule.by_day:
            result.add_warning(f"by_day is ignored for {rule.frequency.value} rules")

        if template is not None and rule.template_id and rule.template_id != template.id:
            result.add_warning(f"Rule {rule.id} is paired with template {rule.template_id}")
        return result


class ExceptionValidator:
    """Validates shift exceptions before submission or approval."""

    def validate(self, exception: ShiftException) -> ValidationResult:
        result = ValidationResult()
        subject = exception.id

        def error(error_type: ValidationErrorType, message: str) -> None:
            result.add_error(ValidationError(error_type, message, subject_id=subject))

        if not exception.user_id:
            error(ValidationErrorType.MISSING_REFERENCE, "Exception needs a user")

        if exception.is_swap:
            if not exception.swap_with_user_id:
                error(ValidationErrorType.MISSING_COUNTERPART, "Swap needs a colleague to swap with")
            elif exception.swap_with_user_id == exception.user_id:
                error(ValidationErrorType.MISSING_COUNTERPART, "Cannot swap a shift with yourself")
        elif exception.type in (ExceptionType.CHANGE_COMPANY, ExceptionType.CHANGE_SPECIAL):
            if not exception.new_shift_id and exception.new_start_time is None:
                error(
                    ValidationErrorType.MISSING_REPLACEMENT,
                    "Shift change needs a new shift or new times",
                )

        if exception.is_time_reduction:
            if exception.new_end_time is None and exception.duration_minutes is None:
                error(
                    ValidationErrorType.MISSING_REPLACEMENT,
                    "Time reduction needs a new end time or a duration",
                )
        if exception.duration_minutes is not None and exception.duration_minutes <= 0:
            error(ValidationErrorType.INVALID_DURATION, "Duration must be positive")

        if (
            exception.new_start_time is not None
            and exception.new_end_time is not None
            and exception.new_start_time == exception.new_end_time
        ):
            error(ValidationErrorType.INVALID_TIME_WINDOW, "Start and end times are equal")

        if exception.is_absence and not exception.is_full_day:
            if exception.new_start_time is None or exception.new_end_time is None:
                result.add_warning("Partial absence without a time window removes the whole day")

        if exception.status is ApprovalStatus.REJECTED and not exception.rejection_reason:
            error(ValidationErrorType.MISSING_REASON, "Rejected exceptions need a reason")
        if (
            exception.status is ApprovalStatus.APPROVED
            and exception.requires_approval
            and not exception.approved_by
        ):
            error(ValidationErrorType.MISSING_APPROVER, "Approved exceptions need an approver")

        if exception.type is ExceptionType.CUSTOM and not exception.custom_type:
            result.add_warning("Custom exception has no custom_type and will not change schedules")
        if exception.crosses_midnight:
            result.add_warning("Exception window crosses midnight; it binds to its start date")
        return result


class AssignmentValidator:
    """Validates user schedule assignments."""

    def validate(self, assignment: UserScheduleAssignment) -> ValidationResult:
        result = ValidationResult()
        for field_name in ("user_id", "team_id", "recurrence_rule_id"):
            if not getattr(assignment, field_name):
                result.add_error(ValidationError(
                    ValidationErrorType.MISSING_REFERENCE,
                    f"Assignment needs {field_name.replace('_', ' ')}",
                    subject_id=assignment.id,
                ))
        return result

    def validate_many(self, assignments: Iterable[UserScheduleAssignment]) -> ValidationResult:
        """Validate assignments individually and check for ambiguous overlaps.

        Overlaps are legal (priority decides), but overlaps between
        assignments of equal priority fall back to creation order and are
        reported as warnings.
        """
        assignments = list(assignments)
        result = ValidationResult()
        for assignment in assignments:
            result.merge(self.validate(assignment))
        for first, second in find_overlaps(assignments):
            if first.priority is second.priority:
                result.add_warning(
                    f"Assignments {first.id} and {second.id} overlap for user "
                    f"{first.user_id} with equal priority"
                )
        return result
