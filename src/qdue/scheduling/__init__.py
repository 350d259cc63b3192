"""Schedule generation: providers, recurrence, assignments and exceptions."""

from qdue.scheduling.assignments import AssignmentResolver, find_overlaps, select_assignment
from qdue.scheduling.engine import (
    DaySchedule,
    DayStatus,
    EngineConfig,
    ScheduleEngine,
    SwapResult,
)
from qdue.scheduling.exceptions import ConflictReport, ExceptionConflict, ExceptionOverlay
from qdue.scheduling.providers import (
    CustomScheduleProvider,
    FixedScheduleProvider,
    ProviderRegistry,
    WorkScheduleProvider,
)
from qdue.scheduling.recurrence import RecurrenceEvaluator, build_rrule

__all__ = [
    # Engine
    "DaySchedule",
    "DayStatus",
    "EngineConfig",
    "ScheduleEngine",
    "SwapResult",
    # Providers
    "CustomScheduleProvider",
    "FixedScheduleProvider",
    "ProviderRegistry",
    "WorkScheduleProvider",
    # Recurrence
    "RecurrenceEvaluator",
    "build_rrule",
    # Assignments
    "AssignmentResolver",
    "find_overlaps",
    "select_assignment",
    # Exceptions
    "ConflictReport",
    "ExceptionConflict",
    "ExceptionOverlay",
]
