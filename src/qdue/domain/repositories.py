"""Repository interfaces consumed by the scheduling engine.

The engine reads templates, rules, assignments and exceptions through these
interfaces and never persists anything itself. In-memory implementations
are provided for tests, the CLI and callers that already hold snapshots.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional

from qdue.domain.assignments import UserScheduleAssignment
from qdue.domain.exceptions import ShiftException
from qdue.domain.models import WorkScheduleTemplate
from qdue.domain.recurrence import RecurrenceRule


class TemplateRepository(ABC):
    """Abstract source of schedule templates."""

    @abstractmethod
    def get(self, template_id: str) -> Optional[WorkScheduleTemplate]:
        """Load a template by id, or None when unknown."""
        pass


class RecurrenceRuleRepository(ABC):
    """Abstract source of recurrence rules."""

    @abstractmethod
    def get(self, rule_id: str) -> Optional[RecurrenceRule]:
        """Load a rule by id, or None when unknown."""
        pass


class AssignmentRepository(ABC):
    """Abstract source of user schedule assignments."""

    @abstractmethod
    def active_for(self, user_id: str, on: date) -> list[UserScheduleAssignment]:
        """Candidate assignments for a user on a date.

        Implementations may return a superset; the resolver re-checks status
        and date bounds.
        """
        pass


class ExceptionRepository(ABC):
    """Abstract source of shift exceptions."""

    @abstractmethod
    def effective_for(self, user_id: str, start: date, end: date) -> list[ShiftException]:
        """Exceptions involving a user that may touch ``[start, end]``.

        Includes swaps where the user is the counterpart and recurring
        exceptions whose first target date is on or before ``end``.
        """
        pass


class InMemoryTemplateRepository(TemplateRepository):
    def __init__(self, templates: Iterable[WorkScheduleTemplate] = ()):
        self._templates = {t.id: t for t in templates}

    def add(self, template: WorkScheduleTemplate) -> None:
        self._templates[template.id] = template

    def get(self, template_id: str) -> Optional[WorkScheduleTemplate]:
        return self._templates.get(template_id)

    def all(self) -> list[WorkScheduleTemplate]:
        return list(self._templates.values())


class InMemoryRecurrenceRuleRepository(RecurrenceRuleRepository):
    def __init__(self, rules: Iterable[RecurrenceRule] = ()):
        self._rules = {r.id: r for r in rules}

    def add(self, rule: RecurrenceRule) -> None:
        self._rules[rule.id] = rule

    def get(self, rule_id: str) -> Optional[RecurrenceRule]:
        return self._rules.get(rule_id)


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self, assignments: Iterable[UserScheduleAssignment] = ()):
        self._assignments = list(assignments)

    def add(self, assignment: UserScheduleAssignment) -> None:
        self._assignments.append(assignment)

    def for_user(self, user_id: str) -> list[UserScheduleAssignment]:
        return [a for a in self._assignments if a.user_id == user_id]

    def active_for(self, user_id: str, on: date) -> list[UserScheduleAssignment]:
        return [a for a in self.for_user(user_id) if a.applies_to(on)]


class InMemoryExceptionRepository(ExceptionRepository):
    def __init__(self, exceptions: Iterable[ShiftException] = ()):
        self._exceptions = {e.id: e for e in exceptions}

    def add(self, exception: ShiftException) -> None:
        """Add or replace (by id) an exception snapshot."""
        self._exceptions[exception.id] = exception

    def get(self, exception_id: str) -> Optional[ShiftException]:
        return self._exceptions.get(exception_id)

    def effective_for(self, user_id: str, start: date, end: date) -> list[ShiftException]:
        result = []
        for exception in self._exceptions.values():
            if not exception.involves_user(user_id):
                continue
            if not (exception.is_active and exception.is_effective()):
                continue
            if exception.target_date > end:
                continue
            if not exception.is_recurring and exception.target_date < start:
                continue
            result.append(exception)
        return result
