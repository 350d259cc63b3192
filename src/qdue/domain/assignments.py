"""User-to-team schedule assignments."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class AssignmentPriority(Enum):
    """Priority used to pick between overlapping assignments."""

    LOW = 1
    NORMAL = 5
    HIGH = 8
    OVERRIDE = 10  # Temporary reassignment that beats everything else

    @property
    def level(self) -> int:
        return self.value


class AssignmentStatus(Enum):
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class UserScheduleAssignment:
    """Binds a user to a team and recurrence rule over a date window.

    Attributes:
        id: Assignment identifier.
        user_id: Assigned user.
        team_id: Team whose shifts the user works.
        recurrence_rule_id: Rule deciding which days the user works.
        start_date: First day the assignment applies.
        end_date: Last day (inclusive); None for permanent assignments.
        priority: Resolution priority when assignments overlap.
        status: Lifecycle status; only ACTIVE assignments are resolved.
        created_at: Creation time, used as tie-break (newer wins).
    """

    id: str
    user_id: str
    team_id: str
    recurrence_rule_id: str
    start_date: date
    end_date: Optional[date] = None
    priority: AssignmentPriority = AssignmentPriority.NORMAL
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.now)
    user_name: str = ""
    team_name: str = ""
    title: str = ""
    notes: str = ""

    def __post_init__(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(
                f"Assignment {self.id}: end date {self.end_date} is before "
                f"start date {self.start_date}"
            )

    @property
    def is_permanent(self) -> bool:
        return self.end_date is None

    @property
    def is_active(self) -> bool:
        return self.status is AssignmentStatus.ACTIVE

    def covers(self, on: date) -> bool:
        """Whether ``on`` falls inside the assignment's date window."""
        if on < self.start_date:
            return False
        return self.end_date is None or on <= self.end_date

    def applies_to(self, on: date) -> bool:
        """Whether the assignment is active and covers ``on``."""
        return self.is_active and self.covers(on)

    @property
    def duration_days(self) -> Optional[int]:
        """Inclusive length in days, or None for permanent assignments."""
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1

    def overlaps(self, other: "UserScheduleAssignment") -> bool:
        if self.user_id != other.user_id:
            return False
        if self.end_date is not None and self.end_date < other.start_date:
            return False
        if other.end_date is not None and other.end_date < self.start_date:
            return False
        return True
