"""Recurrence rule definitions.

A RecurrenceRule is a calendar-style recurrence descriptor (similar to an
iCalendar RRULE) extended with a QuattroDue cycle frequency that describes a
work/rest cadence. Evaluation lives in ``qdue.scheduling.recurrence``.
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Optional


class Frequency(Enum):
    """How often a rule repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    QUATTRODUE_CYCLE = "quattrodue_cycle"

    @property
    def rrule_name(self) -> str:
        if self is Frequency.QUATTRODUE_CYCLE:
            return "DAILY"
        return self.name


class EndType(Enum):
    """How a rule terminates."""

    NEVER = "never"
    COUNT = "count"
    UNTIL_DATE = "until_date"


class WeekStart(Enum):
    """First day of the week used for weekly interval stepping."""

    MONDAY = 0
    SUNDAY = 6


WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


@dataclass(frozen=True)
class RecurrenceRule:
    """An immutable recurrence descriptor.

    Weekdays in ``by_day`` follow ``date.weekday()`` numbering (0 = Monday).

    Attributes:
        id: Rule identifier referenced by user assignments.
        frequency: Repetition frequency.
        start_date: First date the rule can match.
        interval: Repeat every Nth period (>= 1).
        end_type: Termination condition.
        end_date: Inclusive last date for UNTIL_DATE rules.
        count: Number of occurrences for COUNT rules.
        by_day: Weekdays for WEEKLY rules.
        by_month_day: Days of month for MONTHLY/YEARLY rules.
        by_month: Months (1-12) for MONTHLY/YEARLY rules.
        week_start: Week boundary for WEEKLY interval stepping.
        cycle_length: Cycle length for QUATTRODUE_CYCLE rules.
        work_days: Work positions per cadence period.
        rest_days: Rest positions per cadence period.
        template_id: Paired schedule template, if any.
    """

    id: str
    frequency: Frequency
    start_date: date
    interval: int = 1
    end_type: EndType = EndType.NEVER
    end_date: Optional[date] = None
    count: Optional[int] = None
    by_day: tuple[int, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_month: tuple[int, ...] = ()
    week_start: WeekStart = WeekStart.MONDAY
    cycle_length: Optional[int] = None
    work_days: Optional[int] = None
    rest_days: Optional[int] = None
    template_id: Optional[str] = None
    name: str = ""
    description: str = ""
    is_active: bool = True

    def __post_init__(self):
        if self.interval < 1:
            raise ValueError(f"Interval must be at least 1, got {self.interval}")
        if self.frequency is Frequency.QUATTRODUE_CYCLE:
            if not self.cycle_length or self.cycle_length <= 0:
                raise ValueError("QuattroDue cycle rules require a positive cycle length")
            if self.work_days is not None and self.work_days < 0:
                raise ValueError("Work days cannot be negative")
            if self.rest_days is not None and self.rest_days < 0:
                raise ValueError("Rest days cannot be negative")
        if self.end_type is EndType.UNTIL_DATE:
            if self.end_date is None:
                raise ValueError("UNTIL_DATE rules require an end date")
            if self.end_date < self.start_date:
                raise ValueError("End date cannot be before start date")
        if self.end_type is EndType.COUNT and (self.count is None or self.count <= 0):
            raise ValueError("COUNT rules require a positive count")
        if any(not 0 <= d <= 6 for d in self.by_day):
            raise ValueError(f"Invalid weekday in by_day: {self.by_day}")
        if any(not 1 <= d <= 31 for d in self.by_month_day):
            raise ValueError(f"Invalid day of month in by_month_day: {self.by_month_day}")
        if any(not 1 <= m <= 12 for m in self.by_month):
            raise ValueError(f"Invalid month in by_month: {self.by_month}")

    @classmethod
    def quattrodue(
        cls,
        start_date: date,
        id: str = "quattrodue_standard",
        cycle_length: int = 18,
        work_days: int = 4,
        rest_days: int = 2,
        template_id: Optional[str] = "quattrodue_standard",
        name: str = "QuattroDue",
    ) -> "RecurrenceRule":
        """Create a QuattroDue cycle rule (4 on, 2 off over 18 days by default)."""
        return cls(
            id=id,
            frequency=Frequency.QUATTRODUE_CYCLE,
            start_date=start_date,
            cycle_length=cycle_length,
            work_days=work_days,
            rest_days=rest_days,
            template_id=template_id,
            name=name,
            description=f"{work_days} work days, {rest_days} rest days, {cycle_length}-day cycle",
        )

    @property
    def is_cyclic(self) -> bool:
        return self.frequency is Frequency.QUATTRODUE_CYCLE

    @property
    def cadence_period(self) -> int:
        """Length of one work/rest period within the cycle."""
        work = self.work_days or 0
        rest = self.rest_days or 0
        if work + rest > 0:
            return work + rest
        return self.cycle_length or 1

    def deactivated(self) -> "RecurrenceRule":
        """Return an inactive copy of this rule."""
        return replace(self, is_active=False)

    def to_rrule(self) -> str:
        """Render the rule as an RFC 5545 RRULE string.

        QuattroDue cycles have no RRULE equivalent and are rendered as a
        daily rule with an ``X-QDUE-CYCLE`` extension.
        """
        parts = [f"FREQ={self.frequency.rrule_name}"]
        if self.interval > 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.by_day:
            parts.append("BYDAY=" + ",".join(WEEKDAY_CODES[d] for d in self.by_day))
        if self.by_month_day:
            parts.append("BYMONTHDAY=" + ",".join(str(d) for d in self.by_month_day))
        if self.by_month:
            parts.append("BYMONTH=" + ",".join(str(m) for m in self.by_month))
        if self.week_start is not WeekStart.MONDAY:
            parts.append(f"WKST={WEEKDAY_CODES[self.week_start.value]}")
        if self.end_type is EndType.COUNT:
            parts.append(f"COUNT={self.count}")
        elif self.end_type is EndType.UNTIL_DATE:
            parts.append(f"UNTIL={self.end_date:%Y%m%d}")
        if self.is_cyclic:
            parts.append(
                f"X-QDUE-CYCLE={self.cycle_length}/{self.work_days or 0}/{self.rest_days or 0}"
            )
        return "RRULE:" + ";".join(parts)
