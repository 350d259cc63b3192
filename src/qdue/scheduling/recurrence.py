"""Recurrence rule evaluation.

Answers two questions for a rule: does it produce an occurrence on a date,
and, for QuattroDue cycles, which cycle position is that date.

Calendar frequencies are expanded with ``dateutil.rrule``; QuattroDue cycles
have no RRULE equivalent and are evaluated with floored cycle arithmetic.
"""

from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Iterator, Optional

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule

from qdue.domain.cycle import cycle_offset, date_range
from qdue.domain.recurrence import EndType, Frequency, RecurrenceRule

_RRULE_FREQUENCIES = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
    Frequency.YEARLY: YEARLY,
}


def _as_datetime(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


@lru_cache(maxsize=256)
def build_rrule(rule: RecurrenceRule) -> rrule:
    """Build the dateutil rrule for a calendar rule.

    Only the ``by_*`` fields meaningful for the rule's frequency are passed
    on; yearly rules default to the start date's month and day.

    Raises:
        ValueError: If the rule is a QuattroDue cycle.
    """
    if rule.is_cyclic:
        raise ValueError(f"Rule {rule.id} is a QuattroDue cycle and has no rrule form")

    kwargs = {
        "dtstart": _as_datetime(rule.start_date),
        "interval": rule.interval,
        "wkst": rule.week_start.value,
    }
    if rule.frequency is Frequency.WEEKLY and rule.by_day:
        kwargs["byweekday"] = rule.by_day
    elif rule.frequency is Frequency.MONTHLY:
        kwargs["bymonthday"] = rule.by_month_day or (rule.start_date.day,)
        if rule.by_month:
            kwargs["bymonth"] = rule.by_month
    elif rule.frequency is Frequency.YEARLY:
        kwargs["bymonth"] = rule.by_month or (rule.start_date.month,)
        kwargs["bymonthday"] = rule.by_month_day or (rule.start_date.day,)

    if rule.end_type is EndType.COUNT:
        kwargs["count"] = rule.count
    elif rule.end_type is EndType.UNTIL_DATE:
        kwargs["until"] = _as_datetime(rule.end_date)
    return rrule(_RRULE_FREQUENCIES[rule.frequency], **kwargs)


class RecurrenceEvaluator:
    """Evaluates recurrence rules against dates.

    The evaluator is stateless and safe to share between threads.

    Example:
        >>> evaluator = RecurrenceEvaluator()
        >>> rule = RecurrenceRule.quattrodue(date(2025, 1, 1))
        >>> evaluator.matches(rule, date(2025, 1, 3))
        True
    """

    def matches(self, rule: RecurrenceRule, on: date) -> bool:
        """Check if the rule produces an occurrence on ``on``.

        Inactive rules never match. For QuattroDue cycles an occurrence is a
        work day of the cadence.
        """
        if not rule.is_active or on < rule.start_date:
            return False
        if not rule.is_cyclic:
            moment = _as_datetime(on)
            return build_rrule(rule).after(moment, inc=True) == moment

        if rule.end_type is EndType.UNTIL_DATE and on > rule.end_date:
            return False
        if not self.is_work_day(rule, on):
            return False
        if rule.end_type is EndType.COUNT:
            return self.occurrence_index(rule, on) < rule.count
        return True

    def cycle_offset(self, rule: RecurrenceRule, on: date) -> Optional[int]:
        """Cycle position of ``on`` for QuattroDue rules, else None.

        Positions use a floored modulo, so dates before the start date still
        resolve into ``[0, cycle_length)``.
        """
        if not rule.is_cyclic:
            return None
        return cycle_offset(rule.start_date, on, rule.cycle_length)

    def is_work_day(self, rule: RecurrenceRule, on: date) -> bool:
        """Whether a QuattroDue position is a work position, ignoring bounds.

        For calendar rules this is plain ``matches``.
        """
        position = self.cycle_offset(rule, on)
        if position is None:
            return self.matches(rule, on)
        if rule.work_days is None:
            return True
        return position % rule.cadence_period < rule.work_days

    def occurrence_index(self, rule: RecurrenceRule, on: date) -> int:
        """Number of occurrences from the start date strictly before ``on``."""
        index = 0
        for candidate in self._candidates(rule, on):
            if candidate >= on:
                break
            index += 1
        return index

    def occurrences(
        self,
        rule: RecurrenceRule,
        start: date,
        end: date,
    ) -> list[date]:
        """All occurrences within ``[start, end]`` in ascending order."""
        if not rule.is_active or start > end:
            return []
        if not rule.is_cyclic:
            found = build_rrule(rule).between(_as_datetime(start), _as_datetime(end), inc=True)
            return [moment.date() for moment in found]

        limit = end
        if rule.end_type is EndType.UNTIL_DATE:
            limit = min(limit, rule.end_date)
        result = []
        for index, candidate in enumerate(self._candidates(rule, limit)):
            if rule.end_type is EndType.COUNT and index >= rule.count:
                break
            if candidate >= start:
                result.append(candidate)
        return result

    def next_occurrence(
        self,
        rule: RecurrenceRule,
        after: date,
        horizon_days: int = 3660,
    ) -> Optional[date]:
        """First occurrence strictly after ``after`` within the horizon."""
        start = after + timedelta(days=1)
        found = self.occurrences(rule, start, start + timedelta(days=horizon_days))
        return found[0] if found else None

    def _candidates(self, rule: RecurrenceRule, limit: date) -> Iterator[date]:
        """Occurrences from the start date up to ``limit``.

        Calendar rules are already capped by their COUNT; cyclic rules are not.
        """
        if limit < rule.start_date:
            return
        if not rule.is_cyclic:
            for moment in build_rrule(rule):
                if moment.date() > limit:
                    return
                yield moment.date()
            return
        for candidate in date_range(rule.start_date, limit):
            if self.is_work_day(rule, candidate):
                yield candidate
