"""Domain models for shift scheduling."""

from qdue.domain.assignments import (
    AssignmentPriority,
    AssignmentStatus,
    UserScheduleAssignment,
)
from qdue.domain.cycle import cycle_offset, date_range, days_between, floored_mod
from qdue.domain.exceptions import (
    ApprovalStatus,
    ExceptionCategory,
    ExceptionPriority,
    ExceptionType,
    InvalidTransitionError,
    ShiftException,
)
from qdue.domain.models import (
    ScheduleEvent,
    ShiftType,
    Team,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkScheduleType,
    WorkShiftAssignment,
)
from qdue.domain.recurrence import EndType, Frequency, RecurrenceRule, WeekStart
from qdue.domain.repositories import (
    AssignmentRepository,
    ExceptionRepository,
    InMemoryAssignmentRepository,
    InMemoryExceptionRepository,
    InMemoryRecurrenceRuleRepository,
    InMemoryTemplateRepository,
    RecurrenceRuleRepository,
    TemplateRepository,
)

__all__ = [
    # Models
    "ScheduleEvent",
    "ShiftType",
    "Team",
    "WorkSchedulePattern",
    "WorkScheduleTemplate",
    "WorkScheduleType",
    "WorkShiftAssignment",
    # Cycle arithmetic
    "cycle_offset",
    "date_range",
    "days_between",
    "floored_mod",
    # Recurrence
    "EndType",
    "Frequency",
    "RecurrenceRule",
    "WeekStart",
    # Assignments
    "AssignmentPriority",
    "AssignmentStatus",
    "UserScheduleAssignment",
    # Exceptions
    "ApprovalStatus",
    "ExceptionCategory",
    "ExceptionPriority",
    "ExceptionType",
    "InvalidTransitionError",
    "ShiftException",
    # Repositories
    "AssignmentRepository",
    "ExceptionRepository",
    "InMemoryAssignmentRepository",
    "InMemoryExceptionRepository",
    "InMemoryRecurrenceRuleRepository",
    "InMemoryTemplateRepository",
    "RecurrenceRuleRepository",
    "TemplateRepository",
]
