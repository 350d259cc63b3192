"""Resolution of which schedule assignment applies to a user on a date."""

import logging
from datetime import date
from typing import Iterable, Optional

from qdue.domain.assignments import UserScheduleAssignment
from qdue.domain.cycle import date_range
from qdue.domain.repositories import AssignmentRepository

logger = logging.getLogger(__name__)


def assignment_sort_key(assignment: UserScheduleAssignment) -> tuple:
    """Ordering key: higher priority, then newer, then id (descending)."""
    return (assignment.priority.level, assignment.created_at, assignment.id)


def select_assignment(
    assignments: Iterable[UserScheduleAssignment],
    user_id: str,
    on: date,
) -> Optional[UserScheduleAssignment]:
    """Pick the winning assignment for a user on a date.

    Only ACTIVE assignments of the user whose window covers the date are
    candidates. Among those the highest priority wins; ties go to the most
    recently created assignment.

    Args:
        assignments: Candidate assignments (any user, any status).
        user_id: User to resolve.
        on: Date to resolve.

    Returns:
        The selected assignment, or None when the user is unscheduled.
    """
    candidates = [
        a for a in assignments
        if a.user_id == user_id and a.applies_to(on)
    ]
    if not candidates:
        return None
    return max(candidates, key=assignment_sort_key)


def find_overlaps(
    assignments: Iterable[UserScheduleAssignment],
) -> list[tuple[UserScheduleAssignment, UserScheduleAssignment]]:
    """Pairs of active assignments for the same user with overlapping windows."""
    active = [a for a in assignments if a.is_active]
    overlaps = []
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            if first.overlaps(second):
                overlaps.append((first, second))
    return overlaps


class AssignmentResolver:
    """Resolves a user's assignment through an assignment repository."""

    def __init__(self, repository: AssignmentRepository):
        self.repository = repository

    def resolve_assignment(self, user_id: str, on: date) -> Optional[UserScheduleAssignment]:
        assignment = select_assignment(self.repository.active_for(user_id, on), user_id, on)
        if assignment is None:
            logger.debug("No active assignment for user %s on %s", user_id, on)
        return assignment

    def resolve_range(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> dict[date, Optional[UserScheduleAssignment]]:
        """Resolve every date in ``[start, end]``."""
        return {day: self.resolve_assignment(user_id, day) for day in date_range(start, end)}
