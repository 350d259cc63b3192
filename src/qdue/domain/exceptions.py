"""Shift exceptions and their approval workflow.

A ShiftException is a date-targeted change to one user's schedule: an
absence, a shift change or swap, or a working-time reduction. Exceptions
only affect generated schedules once they are effective (approved, or
drafted without needing approval).
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional

from qdue.domain.models import MINUTES_PER_DAY, time_to_minutes


class InvalidTransitionError(ValueError):
    """Raised when an approval workflow transition is not allowed."""


class ExceptionCategory(Enum):
    ABSENCE = "absence"
    CHANGE = "change"
    REDUCTION = "reduction"
    CUSTOM = "custom"


class ExceptionType(Enum):
    """Kinds of schedule exceptions.

    Each type carries defaults for full-day coverage and approval.
    """

    ABSENCE_VACATION = "absence_vacation"
    ABSENCE_SICK = "absence_sick"
    ABSENCE_SPECIAL = "absence_special"  # Special leave (law 104, etc.)
    CHANGE_COMPANY = "change_company"  # Shift change requested by the company
    CHANGE_SWAP = "change_swap"  # Swap with a colleague
    CHANGE_SPECIAL = "change_special"
    REDUCTION_PERSONAL = "reduction_personal"
    REDUCTION_ROL = "reduction_rol"  # Reduced working hours leave
    REDUCTION_UNION = "reduction_union"
    CUSTOM = "custom"

    @property
    def category(self) -> ExceptionCategory:
        return _TYPE_DEFAULTS[self][0]

    @property
    def default_full_day(self) -> bool:
        return _TYPE_DEFAULTS[self][1]

    @property
    def default_requires_approval(self) -> bool:
        return _TYPE_DEFAULTS[self][2]

    @property
    def is_absence(self) -> bool:
        return self.category is ExceptionCategory.ABSENCE

    @property
    def is_shift_change(self) -> bool:
        return self.category is ExceptionCategory.CHANGE

    @property
    def is_time_reduction(self) -> bool:
        return self.category is ExceptionCategory.REDUCTION


_TYPE_DEFAULTS = {
    ExceptionType.ABSENCE_VACATION: (ExceptionCategory.ABSENCE, True, False),
    ExceptionType.ABSENCE_SICK: (ExceptionCategory.ABSENCE, True, False),
    ExceptionType.ABSENCE_SPECIAL: (ExceptionCategory.ABSENCE, True, True),
    ExceptionType.CHANGE_COMPANY: (ExceptionCategory.CHANGE, False, True),
    ExceptionType.CHANGE_SWAP: (ExceptionCategory.CHANGE, False, True),
    ExceptionType.CHANGE_SPECIAL: (ExceptionCategory.CHANGE, False, True),
    ExceptionType.REDUCTION_PERSONAL: (ExceptionCategory.REDUCTION, False, True),
    ExceptionType.REDUCTION_ROL: (ExceptionCategory.REDUCTION, False, False),
    ExceptionType.REDUCTION_UNION: (ExceptionCategory.REDUCTION, False, False),
    ExceptionType.CUSTOM: (ExceptionCategory.CUSTOM, False, True),
}


class ApprovalStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_final(self) -> bool:
        return self in (
            ApprovalStatus.REJECTED,
            ApprovalStatus.CANCELLED,
            ApprovalStatus.EXPIRED,
        )


class ExceptionPriority(Enum):
    LOW = 1
    NORMAL = 5
    HIGH = 8
    URGENT = 10

    @property
    def level(self) -> int:
        return self.value


# Metadata keys understood by the overlay for CUSTOM exceptions
CUSTOM_TYPE_KEY = "custom_type"
CUSTOM_EXTRA_SHIFT = "extra_shift"
CUSTOM_OVERRIDE = "override"


@dataclass(frozen=True)
class ShiftException:
    """A date-targeted change to one user's schedule.

    Workflow transitions (``submit``, ``approve``, ``reject``, ``cancel``,
    ``expire``) return updated copies and leave the original untouched.

    Attributes:
        id: Exception identifier.
        type: Exception kind.
        user_id: User whose schedule is changed.
        target_date: Date the exception binds to (shift's nominal start date).
        is_full_day: Whether an absence covers the whole day.
        original_shift_id: Shift type id of the base event being changed.
        new_shift_id: Shift type id of the replacement shift.
        new_start_time: Replacement or partial-window start.
        new_end_time: Replacement or partial-window end.
        duration_minutes: Target duration for reductions.
        swap_with_user_id: Counterpart user for swaps.
        priority: Tie-break when several exceptions hit the same day.
        recurrence_rule_id: Rule expanding a recurring exception.
    """

    id: str
    type: ExceptionType
    user_id: str
    target_date: date
    is_full_day: Optional[bool] = None
    original_shift_id: Optional[str] = None
    new_shift_id: Optional[str] = None
    new_start_time: Optional[time] = None
    new_end_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    swap_with_user_id: Optional[str] = None
    replacement_user_id: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.DRAFT
    requires_approval: Optional[bool] = None
    approved_by: Optional[str] = None
    approved_date: Optional[date] = None
    rejection_reason: Optional[str] = None
    priority: ExceptionPriority = ExceptionPriority.NORMAL
    recurrence_rule_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    title: str = ""
    notes: str = ""

    def __post_init__(self):
        # Fill per-type defaults; frozen dataclasses need object.__setattr__
        if self.is_full_day is None:
            object.__setattr__(self, "is_full_day", self.type.default_full_day)
        if self.requires_approval is None:
            object.__setattr__(self, "requires_approval", self.type.default_requires_approval)
        if not self.title:
            object.__setattr__(self, "title", self.type.name.replace("_", " ").title())

    # Classification

    @property
    def is_absence(self) -> bool:
        return self.type.is_absence

    @property
    def is_shift_change(self) -> bool:
        return self.type.is_shift_change

    @property
    def is_swap(self) -> bool:
        return self.type is ExceptionType.CHANGE_SWAP

    @property
    def is_time_reduction(self) -> bool:
        return self.type.is_time_reduction

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule_id is not None

    @property
    def involves_other_user(self) -> bool:
        return bool(self.swap_with_user_id or self.replacement_user_id)

    @property
    def custom_type(self) -> Optional[str]:
        return self.metadata.get(CUSTOM_TYPE_KEY)

    @property
    def crosses_midnight(self) -> bool:
        if self.new_start_time is None or self.new_end_time is None:
            return False
        return self.new_end_time < self.new_start_time

    @property
    def calculated_duration_minutes(self) -> Optional[int]:
        """Explicit duration, or the span between the new start and end times."""
        if self.duration_minutes is not None:
            return self.duration_minutes
        if self.new_start_time is None or self.new_end_time is None:
            return None
        minutes = time_to_minutes(self.new_end_time) - time_to_minutes(self.new_start_time)
        if minutes < 0:
            minutes += MINUTES_PER_DAY
        return minutes

    def is_effective(self) -> bool:
        """Whether this exception may alter generated schedules."""
        if self.status is ApprovalStatus.APPROVED:
            return True
        return self.status is ApprovalStatus.DRAFT and not self.requires_approval

    def applies_to(self, on: date) -> bool:
        """Whether a non-recurring exception targets ``on``."""
        return self.is_active and self.target_date == on

    def involves_user(self, user_id: str) -> bool:
        return user_id in (self.user_id, self.swap_with_user_id)

    # Workflow

    def _transition(self, allowed: tuple[ApprovalStatus, ...], target: ApprovalStatus, **changes):
        if self.status not in allowed:
            raise InvalidTransitionError(
                f"Cannot move exception {self.id} from {self.status.value} to {target.value}"
            )
        return replace(self, status=target, updated_at=datetime.now(), **changes)

    def submit(self) -> "ShiftException":
        """Send a draft for approval."""
        return self._transition((ApprovalStatus.DRAFT,), ApprovalStatus.PENDING)

    def approve(self, approver: str, on: Optional[date] = None) -> "ShiftException":
        if not approver:
            raise InvalidTransitionError("Approval requires an approver")
        return self._transition(
            (ApprovalStatus.DRAFT, ApprovalStatus.PENDING),
            ApprovalStatus.APPROVED,
            approved_by=approver,
            approved_date=on or date.today(),
        )

    def reject(self, reason: str) -> "ShiftException":
        if not reason or not reason.strip():
            raise InvalidTransitionError("Rejection requires a reason")
        return self._transition(
            (ApprovalStatus.PENDING,),
            ApprovalStatus.REJECTED,
            rejection_reason=reason.strip(),
        )

    def cancel(self) -> "ShiftException":
        return self._transition(
            (ApprovalStatus.DRAFT, ApprovalStatus.PENDING, ApprovalStatus.APPROVED),
            ApprovalStatus.CANCELLED,
        )

    def expire(self) -> "ShiftException":
        return self._transition(
            (ApprovalStatus.DRAFT, ApprovalStatus.PENDING),
            ApprovalStatus.EXPIRED,
        )

    # Factories

    @classmethod
    def vacation(
        cls,
        id: str,
        user_id: str,
        target_date: date,
        **kwargs,
    ) -> "ShiftException":
        return cls(id=id, type=ExceptionType.ABSENCE_VACATION, user_id=user_id,
                   target_date=target_date, **kwargs)

    @classmethod
    def sick_leave(
        cls,
        id: str,
        user_id: str,
        target_date: date,
        **kwargs,
    ) -> "ShiftException":
        """Sick leave is effective immediately (no approval step)."""
        kwargs.setdefault("requires_approval", False)
        kwargs.setdefault("priority", ExceptionPriority.HIGH)
        return cls(id=id, type=ExceptionType.ABSENCE_SICK, user_id=user_id,
                   target_date=target_date, **kwargs)

    @classmethod
    def shift_swap(
        cls,
        id: str,
        user_id: str,
        swap_with_user_id: str,
        target_date: date,
        **kwargs,
    ) -> "ShiftException":
        return cls(id=id, type=ExceptionType.CHANGE_SWAP, user_id=user_id,
                   swap_with_user_id=swap_with_user_id, target_date=target_date,
                   **kwargs)

    @classmethod
    def time_reduction(
        cls,
        id: str,
        user_id: str,
        target_date: date,
        duration_minutes: Optional[int] = None,
        type: ExceptionType = ExceptionType.REDUCTION_PERSONAL,
        **kwargs,
    ) -> "ShiftException":
        if not type.is_time_reduction:
            raise ValueError(f"{type.name} is not a time reduction type")
        return cls(id=id, type=type, user_id=user_id, target_date=target_date,
                   duration_minutes=duration_minutes, **kwargs)
