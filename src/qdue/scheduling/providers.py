"""Schedule providers that expand templates into dated events.

Providers are pure: given a template and a date they always produce the
same events. Both providers share the cycle arithmetic and differ only in
which templates they accept and which date anchors cycle day 0.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from qdue.domain.cycle import cycle_offset, date_range
from qdue.domain.models import (
    ScheduleEvent,
    WorkScheduleTemplate,
    WorkScheduleType,
    normalize_team,
)
from qdue.domain.presets import CUSTOM_FALLBACK_EPOCH, QUATTRODUE_REFERENCE_DATE
from qdue.scheduling.events import build_event

logger = logging.getLogger(__name__)


class WorkScheduleProvider(ABC):
    """Abstract base class for template-driven schedule generation.

    Generation never raises: invalid input yields an empty list and a
    logged warning, and a failure while building one day only drops that
    day's events.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name recorded on generated events."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def supports_template(self, template: Optional[WorkScheduleTemplate]) -> bool:
        """Check if this provider can generate from the template."""
        pass

    @abstractmethod
    def reference_date(self, template: WorkScheduleTemplate) -> date:
        """Date that maps to cycle day 0 for the template."""
        pass

    def validate_template(self, template: Optional[WorkScheduleTemplate]) -> bool:
        """Structural check used before generation.

        A template is usable when its cycle length is positive, every cycle
        day has a pattern and every pattern is internally valid.
        """
        if template is None or template.cycle_days <= 0:
            return False
        if len(template.patterns) < template.cycle_days:
            return False
        for day in range(template.cycle_days):
            pattern = template.patterns[day]
            if pattern is None or not pattern.is_valid():
                return False
        return True

    def cycle_day(
        self,
        template: WorkScheduleTemplate,
        target: date,
        phase_offset: int = 0,
    ) -> int:
        return cycle_offset(
            self.reference_date(template), target, template.cycle_days, phase_offset
        )

    def generate_schedule(
        self,
        start: Optional[date],
        end: Optional[date],
        template: Optional[WorkScheduleTemplate],
        team_filter: Optional[str] = None,
        phase_offset: int = 0,
    ) -> list[ScheduleEvent]:
        """Generate events for every date in ``[start, end]``.

        Args:
            start: First date (inclusive).
            end: Last date (inclusive).
            template: Template to expand.
            team_filter: Only keep assignments staffed by this team
                (case-insensitive, trimmed). Blank means no filter.
            phase_offset: Days by which the team's cycle lags the base cycle.

        Returns:
            Events in date order, then pattern order.
        """
        if start is None or end is None or start > end:
            logger.warning("%s: invalid date range %s..%s", self.name, start, end)
            return []
        if not self._check_template(template):
            return []

        logger.debug(
            "%s: generating %s..%s for template %s (team=%r)",
            self.name, start, end, template.id, team_filter,
        )
        events: list[ScheduleEvent] = []
        for day in date_range(start, end):
            events.extend(self._generate_day_safely(day, template, team_filter, phase_offset))
        return events

    def generate_schedule_for_date(
        self,
        target: Optional[date],
        template: Optional[WorkScheduleTemplate],
        team_filter: Optional[str] = None,
        phase_offset: int = 0,
    ) -> list[ScheduleEvent]:
        """Generate the events for a single date."""
        if target is None:
            logger.warning("%s: no date given", self.name)
            return []
        if not self._check_template(template):
            return []
        return self._generate_day_safely(target, template, team_filter, phase_offset)

    def _check_template(self, template: Optional[WorkScheduleTemplate]) -> bool:
        if not self.supports_template(template):
            logger.warning(
                "%s: unsupported template %s",
                self.name, template.id if template is not None else None,
            )
            return False
        if not self.validate_template(template):
            logger.warning("%s: template %s failed validation", self.name, template.id)
            return False
        return True

    def _generate_day_safely(
        self,
        target: date,
        template: WorkScheduleTemplate,
        team_filter: Optional[str],
        phase_offset: int,
    ) -> list[ScheduleEvent]:
        try:
            return self._generate_day(target, template, team_filter, phase_offset)
        except Exception:
            logger.exception(
                "%s: failed to generate %s for template %s", self.name, target, template.id
            )
            return []

    def _generate_day(
        self,
        target: date,
        template: WorkScheduleTemplate,
        team_filter: Optional[str],
        phase_offset: int,
    ) -> list[ScheduleEvent]:
        day = self.cycle_day(template, target, phase_offset)
        pattern = template.pattern_for_day(day)
        if pattern is None:
            logger.warning("%s: no pattern for cycle day %d of %s", self.name, day, template.id)
            return []

        team_key = normalize_team(team_filter)
        events = []
        for assignment in pattern.assignments:
            if team_key and not assignment.has_team(team_key):
                continue
            events.append(build_event(target, assignment, template, pattern, day, self.name))
        return events


class FixedScheduleProvider(WorkScheduleProvider):
    """Generates predefined templates (QuattroDue and other fixed cycles).

    All fixed templates are anchored at the QuattroDue system reference
    date; teams are phase-shifted copies of the base cycle.
    """

    def __init__(self, reference_date: date = QUATTRODUE_REFERENCE_DATE):
        self._reference_date = reference_date

    @property
    def name(self) -> str:
        return "fixed"

    @property
    def description(self) -> str:
        return f"Predefined cycles anchored at {self._reference_date.isoformat()}"

    def supports_template(self, template: Optional[WorkScheduleTemplate]) -> bool:
        if template is None or template.type is None:
            return False
        return template.type.is_predefined and template.defined_pattern_count > 0

    def reference_date(self, template: WorkScheduleTemplate) -> date:
        return self._reference_date


class CustomScheduleProvider(WorkScheduleProvider):
    """Generates user-authored templates anchored at their creation date."""

    def __init__(self, fallback_epoch: date = CUSTOM_FALLBACK_EPOCH):
        self.fallback_epoch = fallback_epoch

    @property
    def name(self) -> str:
        return "custom"

    @property
    def description(self) -> str:
        return "User-defined cycles anchored at the template creation date"

    def supports_template(self, template: Optional[WorkScheduleTemplate]) -> bool:
        if template is None:
            return False
        return (
            template.type in (WorkScheduleType.CUSTOM, WorkScheduleType.IMPORT)
            and template.is_user_defined
            and template.defined_pattern_count > 0
        )

    def reference_date(self, template: WorkScheduleTemplate) -> date:
        return template.created_at or self.fallback_epoch


class ProviderRegistry:
    """Selects the provider for a template based on its type."""

    def __init__(
        self,
        fixed: Optional[FixedScheduleProvider] = None,
        custom: Optional[CustomScheduleProvider] = None,
    ):
        self.fixed = fixed or FixedScheduleProvider()
        self.custom = custom or CustomScheduleProvider()

    @property
    def providers(self) -> list[WorkScheduleProvider]:
        return [self.fixed, self.custom]

    def provider_for(self, template: Optional[WorkScheduleTemplate]) -> Optional[WorkScheduleProvider]:
        """Provider for the template's type, or None if it cannot handle it."""
        if template is None or template.type is None:
            return None
        provider = self.fixed if template.type.is_predefined else self.custom
        if not provider.supports_template(template):
            logger.warning("No provider supports template %s (%s)", template.id, template.type.value)
            return None
        return provider
