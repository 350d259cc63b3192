"""Main scheduling engine.

This module provides the ScheduleEngine that orchestrates assignment
resolution, recurrence gating, template expansion and the exception overlay
to produce a user's effective schedule.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from qdue.domain.assignments import UserScheduleAssignment
from qdue.domain.cycle import date_range
from qdue.domain.exceptions import ShiftException
from qdue.domain.models import ScheduleEvent, ShiftType, Team
from qdue.domain.presets import (
    CUSTOM_FALLBACK_EPOCH,
    QUATTRODUE_REFERENCE_DATE,
    QUATTRODUE_TEMPLATE_ID,
    shift_catalog,
)
from qdue.domain.repositories import (
    AssignmentRepository,
    ExceptionRepository,
    RecurrenceRuleRepository,
    TemplateRepository,
)
from qdue.scheduling.assignments import AssignmentResolver
from qdue.scheduling.exceptions import ExceptionOverlay
from qdue.scheduling.providers import (
    CustomScheduleProvider,
    FixedScheduleProvider,
    ProviderRegistry,
)
from qdue.scheduling.recurrence import RecurrenceEvaluator

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Configuration for the schedule engine.

    Attributes:
        fixed_reference_date: Cycle day 0 for predefined templates.
        custom_fallback_epoch: Cycle day 0 for user templates without a
            creation date.
        default_template_id: Template used when a rule names none.
        max_workers: Threads used for multi-day requests (1 = sequential).
        apply_team_phase_offset: Shift fixed cycles by ``Team.qdue_offset``.
    """

    fixed_reference_date: date = QUATTRODUE_REFERENCE_DATE
    custom_fallback_epoch: date = CUSTOM_FALLBACK_EPOCH
    default_template_id: str = QUATTRODUE_TEMPLATE_ID
    max_workers: int = 1
    apply_team_phase_offset: bool = True


class DayStatus(Enum):
    """Outcome of computing one user's day."""

    SCHEDULED = "scheduled"  # At least one event
    EMPTY = "empty"  # Assigned, but nothing to work (rest day or absence)
    NO_ASSIGNMENT = "no_assignment"  # User not assigned on this date
    FAILED = "failed"  # Misconfiguration or runtime error


@dataclass
class DaySchedule:
    """A user's effective schedule for one date."""

    user_id: str
    schedule_date: date
    status: DayStatus
    events: list[ScheduleEvent] = field(default_factory=list)
    assignment: Optional[UserScheduleAssignment] = None
    template_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def work_events(self) -> list[ScheduleEvent]:
        return [e for e in self.events if e.is_work]

    @property
    def has_work(self) -> bool:
        return bool(self.work_events)

    @property
    def is_failed(self) -> bool:
        return self.status is DayStatus.FAILED

    @property
    def work_minutes(self) -> int:
        return sum(e.duration_minutes for e in self.work_events)


@dataclass
class SwapResult:
    """Both sides of a swap, computed in one operation.

    Callers persist ``requester`` and ``counterpart`` together.
    """

    exception: ShiftException
    requester: list[DaySchedule]
    counterpart: list[DaySchedule]

    @property
    def is_consistent(self) -> bool:
        return not any(d.is_failed for d in self.requester + self.counterpart)


@dataclass
class _BaseDay:
    """Intermediate result of resolving a user's base schedule."""

    assignment: Optional[UserScheduleAssignment] = None
    template_id: Optional[str] = None
    events: list[ScheduleEvent] = field(default_factory=list)
    error: Optional[str] = None


class ScheduleEngine:
    """High-level engine producing per-user effective schedules.

    For every date the engine resolves the user's assignment, checks the
    assignment's recurrence rule, expands the rule's template through the
    matching provider filtered to the user's team and applies effective
    exceptions. Each day is computed independently; failures are reported
    per day and never abort a range.

    Example:
        >>> engine = ScheduleEngine(templates, rules, assignments, exceptions)
        >>> days = engine.generate_user_schedule("u1", date(2025, 1, 1), date(2025, 1, 31))
    """

    def __init__(
        self,
        templates: TemplateRepository,
        rules: RecurrenceRuleRepository,
        assignments: AssignmentRepository,
        exceptions: Optional[ExceptionRepository] = None,
        teams: Optional[Iterable[Team]] = None,
        shift_types: Optional[dict[str, ShiftType]] = None,
        config: Optional[EngineConfig] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        """Initialize the engine with its data sources.

        Args:
            templates: Source of schedule templates.
            rules: Source of recurrence rules.
            assignments: Source of user assignments.
            exceptions: Source of shift exceptions (None = no exceptions).
            teams: Known teams; used for phase offsets.
            shift_types: Shift catalogue for exception replacements.
            config: Engine configuration.
            registry: Provider registry; built from ``config`` when omitted.
        """
        self.config = config or EngineConfig()
        self.templates = templates
        self.rules = rules
        self.exceptions = exceptions
        self.teams = {t.id.casefold(): t for t in teams or []}
        self.registry = registry or ProviderRegistry(
            fixed=FixedScheduleProvider(self.config.fixed_reference_date),
            custom=CustomScheduleProvider(self.config.custom_fallback_epoch),
        )
        self.resolver = AssignmentResolver(assignments)
        self.evaluator = RecurrenceEvaluator()
        self.overlay = ExceptionOverlay(
            shift_types=shift_types or shift_catalog(),
            rule_lookup=rules.get,
            evaluator=self.evaluator,
        )

    def generate_user_day(
        self,
        user_id: str,
        on: date,
        exceptions: Optional[list[ShiftException]] = None,
    ) -> DaySchedule:
        """Compute one user's effective schedule for a date.

        Args:
            user_id: User to schedule.
            on: Date to compute.
            exceptions: Exceptions to consider; fetched from the exception
                repository when omitted.
        """
        try:
            base = self._base_day(user_id, on)
            if base.error:
                logger.warning("User %s on %s: %s", user_id, on, base.error)
                return DaySchedule(
                    user_id=user_id,
                    schedule_date=on,
                    status=DayStatus.FAILED,
                    assignment=base.assignment,
                    template_id=base.template_id,
                    error=base.error,
                )

            if exceptions is None:
                exceptions = self._fetch_exceptions(user_id, on, on)
            events = self.overlay.apply_exceptions(
                base.events,
                exceptions,
                user_id=user_id,
                counterpart_events=self._counterpart_events(user_id, on, exceptions),
                dates=[on],
            )
        except Exception as exc:
            logger.exception("Failed to compute schedule for user %s on %s", user_id, on)
            return DaySchedule(user_id, on, DayStatus.FAILED, error=str(exc))

        if events:
            status = DayStatus.SCHEDULED
        elif base.assignment is None:
            status = DayStatus.NO_ASSIGNMENT
        else:
            status = DayStatus.EMPTY
        return DaySchedule(
            user_id=user_id,
            schedule_date=on,
            status=status,
            events=events,
            assignment=base.assignment,
            template_id=base.template_id,
        )

    def generate_user_schedule(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> list[DaySchedule]:
        """Compute a user's schedule for every date in ``[start, end]``.

        Exceptions are fetched once for the whole range. With
        ``max_workers > 1`` days are computed on a thread pool; results are
        always returned in date order.
        """
        if start is None or end is None or start > end:
            logger.warning("Invalid date range %s..%s for user %s", start, end, user_id)
            return []

        exceptions = self._fetch_exceptions(user_id, start, end)
        days = list(date_range(start, end))
        logger.debug("Generating %d days for user %s", len(days), user_id)

        if self.config.max_workers > 1 and len(days) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                return list(executor.map(
                    lambda day: self.generate_user_day(user_id, day, exceptions), days
                ))
        return [self.generate_user_day(user_id, day, exceptions) for day in days]

    def user_events(self, user_id: str, start: date, end: date) -> list[ScheduleEvent]:
        """Flattened events of a user's schedule."""
        return [e for day in self.generate_user_schedule(user_id, start, end) for e in day.events]

    def generate_team_schedule(
        self,
        team_id: str,
        start: date,
        end: date,
        template_id: Optional[str] = None,
    ) -> list[ScheduleEvent]:
        """Base schedule of a team, without user assignments or exceptions."""
        template = self.templates.get(template_id or self.config.default_template_id)
        provider = self.registry.provider_for(template)
        if provider is None:
            logger.warning("No usable template for team schedule of %s", team_id)
            return []
        return provider.generate_schedule(
            start, end, template,
            team_filter=team_id,
            phase_offset=self._phase_offset(team_id, provider),
        )

    def apply_swap(
        self,
        exception: ShiftException,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> SwapResult:
        """Compute both users' schedules for a swap in one operation.

        The given exception takes precedence over any stored copy with the
        same id, so a swap can be previewed before it is persisted.

        Raises:
            ValueError: If the exception is not a swap with a counterpart.
        """
        if not exception.is_swap or not exception.swap_with_user_id:
            raise ValueError(f"Exception {exception.id} is not a swap between two users")
        start = start or exception.target_date
        end = end or start

        def schedule_for(user_id: str) -> list[DaySchedule]:
            stored = [e for e in self._fetch_exceptions(user_id, start, end) if e.id != exception.id]
            return [
                self.generate_user_day(user_id, day, stored + [exception])
                for day in date_range(start, end)
            ]

        return SwapResult(
            exception=exception,
            requester=schedule_for(exception.user_id),
            counterpart=schedule_for(exception.swap_with_user_id),
        )

    def _fetch_exceptions(self, user_id: str, start: date, end: date) -> list[ShiftException]:
        if self.exceptions is None:
            return []
        return self.exceptions.effective_for(user_id, start, end)

    def _phase_offset(self, team_id: str, provider) -> int:
        if not self.config.apply_team_phase_offset or provider is not self.registry.fixed:
            return 0
        team = self.teams.get(team_id.strip().casefold())
        return team.qdue_offset if team else 0

    def _base_day(self, user_id: str, on: date) -> _BaseDay:
        assignment = self.resolver.resolve_assignment(user_id, on)
        if assignment is None:
            return _BaseDay()

        rule = self.rules.get(assignment.recurrence_rule_id)
        if rule is None:
            return _BaseDay(
                assignment, error=f"Unknown recurrence rule {assignment.recurrence_rule_id}"
            )

        template_id = rule.template_id or self.config.default_template_id
        if not self.evaluator.matches(rule, on):
            return _BaseDay(assignment, template_id)

        template = self.templates.get(template_id)
        if template is None:
            return _BaseDay(assignment, template_id, error=f"Unknown template {template_id}")
        provider = self.registry.provider_for(template)
        if provider is None:
            return _BaseDay(assignment, template_id, error=f"Unsupported template {template_id}")

        events = provider.generate_schedule_for_date(
            on, template,
            team_filter=assignment.team_id,
            phase_offset=self._phase_offset(assignment.team_id, provider),
        )
        return _BaseDay(assignment, template_id, [replace(e, user_id=user_id) for e in events])

    def _counterpart_events(
        self,
        user_id: str,
        on: date,
        exceptions: list[ShiftException],
    ) -> dict[str, list[ScheduleEvent]]:
        """Base events of the other users involved in swaps binding to ``on``."""
        result = {}
        for exception in exceptions:
            if not (exception.is_swap and exception.is_active and exception.is_effective()):
                continue
            if not exception.involves_user(user_id) or not self.overlay.binds_to(exception, on):
                continue
            other = (
                exception.swap_with_user_id if exception.user_id == user_id else exception.user_id
            )
            if other and other not in result:
                base = self._base_day(other, on)
                if base.error:
                    logger.warning("Swap %s: counterpart %s: %s", exception.id, other, base.error)
                    continue
                if base.assignment is None:
                    logger.debug("Swap %s: counterpart %s has no assignment", exception.id, other)
                    continue
                result[other] = base.events
        return result
