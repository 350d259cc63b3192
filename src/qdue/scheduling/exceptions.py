"""Overlay of shift exceptions onto generated schedules.

The overlay takes one user's base events and the exceptions involving that
user and returns the effective events. Exceptions bind to the nominal start
date of a shift: a night shift starting on the 5th is only affected by
exceptions targeting the 5th, even though it ends on the 6th.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, time
from typing import Callable, Iterable, Optional

from qdue.domain.exceptions import (
    CUSTOM_EXTRA_SHIFT,
    CUSTOM_OVERRIDE,
    ExceptionType,
    ShiftException,
)
from qdue.domain.models import (
    MINUTES_PER_DAY,
    ScheduleEvent,
    ShiftType,
    minutes_to_time,
    time_to_minutes,
)
from qdue.domain.recurrence import RecurrenceRule
from qdue.scheduling.events import format_description, rebuild_event
from qdue.scheduling.recurrence import RecurrenceEvaluator

logger = logging.getLogger(__name__)

RuleLookup = Callable[[str], Optional[RecurrenceRule]]


def exception_sort_key(exception: ShiftException) -> tuple:
    """Ordering key: higher priority, then most recently updated, then id."""
    return (exception.priority.level, exception.updated_at, exception.id)


@dataclass
class ExceptionConflict:
    """Two exceptions that cannot both apply to a user on a date."""

    user_id: str
    target_date: date
    first: ShiftException
    second: ShiftException
    reason: str

    def __str__(self) -> str:
        return (
            f"User {self.user_id} on {self.target_date}: "
            f"{self.first.id} vs {self.second.id} ({self.reason})"
        )


@dataclass
class ConflictReport:
    conflicts: list[ExceptionConflict] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def for_user(self, user_id: str) -> list[ExceptionConflict]:
        return [c for c in self.conflicts if c.user_id == user_id]


class ExceptionOverlay:
    """Applies effective exceptions to a user's base schedule.

    Only exceptions that are active and effective (approved, or drafts that
    need no approval) participate. When several exceptions bind to the same
    user and date, the one with the highest priority wins, then the most
    recently updated; only the winner is applied.

    Example:
        >>> overlay = ExceptionOverlay(shift_types=shift_catalog())
        >>> final = overlay.apply_exceptions(base_events, exceptions, user_id="u1")
    """

    def __init__(
        self,
        shift_types: Optional[dict[str, ShiftType]] = None,
        rule_lookup: Optional[RuleLookup] = None,
        evaluator: Optional[RecurrenceEvaluator] = None,
    ):
        """Initialize the overlay.

        Args:
            shift_types: Catalogue used to resolve ``new_shift_id``.
            rule_lookup: Resolves recurrence rule ids of recurring exceptions.
            evaluator: Recurrence evaluator for recurring exceptions.
        """
        self.shift_types = shift_types or {}
        self.rule_lookup = rule_lookup
        self.evaluator = evaluator or RecurrenceEvaluator()

    def apply_exceptions(
        self,
        base_events: Iterable[ScheduleEvent],
        exceptions: Iterable[ShiftException],
        user_id: Optional[str] = None,
        counterpart_events: Optional[dict[str, list[ScheduleEvent]]] = None,
        dates: Optional[Iterable[date]] = None,
    ) -> list[ScheduleEvent]:
        """Merge exceptions into a user's events.

        Args:
            base_events: The user's generated events.
            exceptions: Candidate exceptions; inert ones are ignored.
            user_id: User owning ``base_events``. When given, exceptions not
                involving the user are ignored and swaps in which the user
                is the counterpart are applied in the mirrored direction.
            counterpart_events: Base events of other users keyed by user id,
                used to resolve swaps.
            dates: Dates to consider. Defaults to the dates of the base
                events plus the target dates of the exceptions.

        Returns:
            The effective events in date order.
        """
        by_date: dict[date, list[ScheduleEvent]] = defaultdict(list)
        for event in base_events:
            by_date[event.event_date].append(event)

        candidates = [e for e in exceptions if e.is_active and e.is_effective()]
        if user_id is not None:
            candidates = [e for e in candidates if e.involves_user(user_id)]

        if dates is None:
            considered = set(by_date)
            considered.update(e.target_date for e in candidates if not e.is_recurring)
        else:
            considered = set(dates)

        winners = self._select_winners(candidates, considered)

        result: list[ScheduleEvent] = []
        for day in sorted(considered | set(by_date)):
            events = by_date.get(day, [])
            winner = winners.get(day) if day in considered else None
            if winner is not None:
                logger.debug("Applying exception %s (%s) on %s", winner.id, winner.type.value, day)
                events = self._apply_one(
                    winner, day, events, user_id, counterpart_events or {}
                )
            result.extend(events)
        return result

    def binds_to(self, exception: ShiftException, on: date) -> bool:
        """Whether an exception binds to a date, expanding recurring ones."""
        if not exception.is_recurring:
            return exception.target_date == on
        if on < exception.target_date:
            return False
        rule = self.rule_lookup(exception.recurrence_rule_id) if self.rule_lookup else None
        if rule is None:
            logger.warning(
                "Exception %s references unknown rule %s; applying to target date only",
                exception.id, exception.recurrence_rule_id,
            )
            return exception.target_date == on
        return self.evaluator.matches(rule, on)

    def _select_winners(
        self,
        exceptions: list[ShiftException],
        dates: Iterable[date],
    ) -> dict[date, ShiftException]:
        winners = {}
        for day in dates:
            bound = [e for e in exceptions if self.binds_to(e, day)]
            if bound:
                winners[day] = max(bound, key=exception_sort_key)
                if len(bound) > 1:
                    logger.debug(
                        "%d exceptions on %s; %s wins", len(bound), day, winners[day].id
                    )
        return winners

    def _apply_one(
        self,
        exception: ShiftException,
        on: date,
        events: list[ScheduleEvent],
        user_id: Optional[str],
        counterpart_events: dict[str, list[ScheduleEvent]],
    ) -> list[ScheduleEvent]:
        owner = user_id or exception.user_id
        if exception.is_absence:
            return self._apply_absence(exception, events, owner)
        if exception.is_swap:
            return self._apply_swap(exception, on, events, owner, counterpart_events)
        if exception.is_shift_change:
            return self._apply_change(exception, on, events, owner)
        if exception.is_time_reduction:
            return self._apply_reduction(exception, events, owner)
        if exception.type is ExceptionType.CUSTOM:
            if exception.custom_type == CUSTOM_EXTRA_SHIFT:
                return self._apply_extra_shift(exception, on, events, owner)
            if exception.custom_type == CUSTOM_OVERRIDE:
                return self._apply_change(exception, on, events, owner)
        logger.warning("Exception %s has no applicable behaviour; ignored", exception.id)
        return events

    # Absence

    def _apply_absence(
        self,
        exception: ShiftException,
        events: list[ScheduleEvent],
        owner: str,
    ) -> list[ScheduleEvent]:
        if exception.is_full_day or exception.new_start_time is None or exception.new_end_time is None:
            return [e for e in events if not e.is_work]

        result = []
        for event in events:
            window = event.time_window()
            if window is None:
                result.append(event)
                continue
            absence = self._align_window(
                time_to_minutes(exception.new_start_time),
                time_to_minutes(exception.new_end_time),
                window,
            )
            segments = _subtract(window, absence)
            if segments == [window]:
                result.append(event)
                continue
            split = len(segments) > 1
            for index, (start, end) in enumerate(segments, start=1):
                result.append(self._stamp(
                    rebuild_event(
                        event,
                        start_time=minutes_to_time(start),
                        end_time=minutes_to_time(end),
                        segment=index if split else event.segment,
                    ),
                    exception, owner, f"Partial absence: {exception.title}",
                ))
        return result

    # Change

    def _apply_change(
        self,
        exception: ShiftException,
        on: date,
        events: list[ScheduleEvent],
        owner: str,
    ) -> list[ScheduleEvent]:
        new_shift = self._lookup_shift(exception.new_shift_id)
        if exception.new_shift_id and new_shift is None:
            logger.warning(
                "Exception %s references unknown shift %s; ignored",
                exception.id, exception.new_shift_id,
            )
            return events
        if new_shift is None and exception.new_start_time is None and exception.new_end_time is None:
            logger.warning("Exception %s defines no replacement shift; ignored", exception.id)
            return events

        targets = self._target_events(events, exception.original_shift_id)
        reason = f"Shift change: {exception.title}"
        if not targets:
            if exception.original_shift_id and any(e.is_work for e in events):
                logger.warning(
                    "Exception %s: shift %s not scheduled on %s; ignored",
                    exception.id, exception.original_shift_id, on,
                )
                return events
            added = self._new_event(exception, on, new_shift, owner, reason)
            return events if added is None else [added]

        replacement = self._stamp(
            rebuild_event(
                targets[0],
                shift_type=new_shift,
                start_time=exception.new_start_time,
                end_time=exception.new_end_time,
            ),
            exception, owner, reason,
        )
        return self._replace(events, targets, [replacement])

    # Swap

    def _apply_swap(
        self,
        exception: ShiftException,
        on: date,
        events: list[ScheduleEvent],
        owner: str,
        counterpart_events: dict[str, list[ScheduleEvent]],
    ) -> list[ScheduleEvent]:
        mirrored = owner == exception.swap_with_user_id and owner != exception.user_id
        if mirrored:
            other = exception.user_id
            give_id, take_id = exception.new_shift_id, exception.original_shift_id
        else:
            other = exception.swap_with_user_id
            give_id, take_id = exception.original_shift_id, exception.new_shift_id

        reason = f"Swap with {other}"
        if other in counterpart_events:
            theirs = [e for e in counterpart_events[other] if e.event_date == on]
            incoming = self._target_events(theirs, take_id)
            incoming = [self._stamp(e, exception, owner, reason) for e in incoming]
        else:
            shift = self._lookup_shift(take_id)
            if shift is None:
                logger.warning(
                    "Swap %s: no schedule for %s on %s and no shift to take; ignored",
                    exception.id, other, on,
                )
                return events
            start = None if mirrored else exception.new_start_time
            end = None if mirrored else exception.new_end_time
            added = self._new_event(exception, on, shift, owner, reason, start, end)
            incoming = [added] if added is not None else []

        outgoing = self._target_events(events, give_id)
        kept = [e for e in events if not any(e is o for o in outgoing)]
        if incoming:
            kept = [e for e in kept if e.is_work]
        return kept + incoming

    # Reduction

    def _apply_reduction(
        self,
        exception: ShiftException,
        events: list[ScheduleEvent],
        owner: str,
    ) -> list[ScheduleEvent]:
        targets = self._target_events(events, exception.original_shift_id)
        if not targets:
            logger.debug("Reduction %s: no matching shift", exception.id)
            return events
        if exception.new_end_time is None and exception.duration_minutes is None:
            logger.warning("Reduction %s defines neither end time nor duration; ignored", exception.id)
            return events

        target = targets[0]
        window = target.time_window()
        start = window[0]
        if exception.new_start_time is not None:
            start = self._align_start(time_to_minutes(exception.new_start_time), window)
        if exception.new_end_time is not None:
            end = time_to_minutes(exception.new_end_time)
            while end <= start:
                end += MINUTES_PER_DAY
        else:
            end = start + exception.duration_minutes
        end = min(end, window[1])

        if (start, end) == window:
            logger.debug("Reduction %s leaves shift %s unchanged", exception.id, target.event_id)
            return events
        if end <= start:
            logger.info("Reduction %s removes shift %s entirely", exception.id, target.event_id)
            return [e for e in events if e is not target]

        reduced = self._stamp(
            rebuild_event(target, start_time=minutes_to_time(start), end_time=minutes_to_time(end)),
            exception, owner, f"Reduced hours: {exception.title}",
        )
        return self._replace(events, [target], [reduced])

    # Custom

    def _apply_extra_shift(
        self,
        exception: ShiftException,
        on: date,
        events: list[ScheduleEvent],
        owner: str,
    ) -> list[ScheduleEvent]:
        shift = self._lookup_shift(exception.new_shift_id)
        added = self._new_event(exception, on, shift, owner, f"Extra shift: {exception.title}")
        if added is None:
            return events
        return [e for e in events if e.is_work] + [added]

    # Helpers

    def _lookup_shift(self, shift_id: Optional[str]) -> Optional[ShiftType]:
        if not shift_id:
            return None
        return self.shift_types.get(shift_id)

    @staticmethod
    def _target_events(events: list[ScheduleEvent], shift_id: Optional[str]) -> list[ScheduleEvent]:
        work = [e for e in events if e.is_work]
        if shift_id:
            return [e for e in work if e.shift_id == shift_id]
        return work

    @staticmethod
    def _replace(
        events: list[ScheduleEvent],
        targets: list[ScheduleEvent],
        replacements: list[ScheduleEvent],
    ) -> list[ScheduleEvent]:
        result = []
        inserted = False
        for event in events:
            if any(event is t for t in targets):
                if not inserted:
                    result.extend(replacements)
                    inserted = True
                continue
            result.append(event)
        return result

    @staticmethod
    def _stamp(
        event: ScheduleEvent,
        exception: ShiftException,
        owner: str,
        reason: str,
    ) -> ScheduleEvent:
        return rebuild_event(
            event,
            is_modified=True,
            modification_reason=reason,
            exception_id=exception.id,
            user_id=owner,
        )

    def _new_event(
        self,
        exception: ShiftException,
        on: date,
        shift: Optional[ShiftType],
        owner: str,
        reason: str,
        start: Optional[time] = None,
        end: Optional[time] = None,
    ) -> Optional[ScheduleEvent]:
        """Event for a shift the user did not have in the base schedule."""
        start = start if start is not None else exception.new_start_time
        end = end if end is not None else exception.new_end_time
        if shift is None:
            if start is None or end is None:
                logger.warning("Exception %s: cannot build a shift without times", exception.id)
                return None
            shift = ShiftType(
                id=f"exception:{exception.id}",
                name=exception.title,
                start_time=start,
                end_time=end,
            )
        event = ScheduleEvent(
            event_date=on,
            shift_type=shift,
            start_time=start if start is not None else shift.start_time,
            end_time=end if end is not None else shift.end_time,
            provider_name="exception",
            is_modified=True,
            modification_reason=reason,
            user_id=owner,
            exception_id=exception.id,
        )
        notes = [exception.notes] if exception.notes else None
        return rebuild_event(event, description=format_description(event, notes=notes))

    @staticmethod
    def _align_window(start: int, end: int, window: tuple[int, int]) -> tuple[int, int]:
        """Place a time-of-day window on the same minute axis as ``window``."""
        if end <= start:
            end += MINUTES_PER_DAY
        if window[1] > MINUTES_PER_DAY and end <= window[0]:
            start += MINUTES_PER_DAY
            end += MINUTES_PER_DAY
        return (start, end)

    @staticmethod
    def _align_start(start: int, window: tuple[int, int]) -> int:
        if window[1] > MINUTES_PER_DAY and start < window[0]:
            return start + MINUTES_PER_DAY
        return start

    def detect_conflicts(self, exceptions: Iterable[ShiftException]) -> ConflictReport:
        """Find exceptions that contradict each other for the same user and date.

        An absence conflicts with any non-absence exception, and two time
        reductions conflict with each other. Inactive and finished (rejected,
        cancelled or expired) exceptions are skipped.
        """
        grouped: dict[tuple[str, date], list[ShiftException]] = defaultdict(list)
        for exception in exceptions:
            if not exception.is_active or exception.status.is_final:
                continue
            grouped[(exception.user_id, exception.target_date)].append(exception)

        report = ConflictReport()
        for (user, day), group in sorted(grouped.items(), key=lambda item: (item[0][0], item[0][1])):
            for i, first in enumerate(group):
                for second in group[i + 1:]:
                    reason = _conflict_reason(first, second)
                    if reason:
                        report.conflicts.append(
                            ExceptionConflict(user, day, first, second, reason)
                        )
        return report


def _conflict_reason(first: ShiftException, second: ShiftException) -> Optional[str]:
    if first.is_absence != second.is_absence:
        return "absence overlaps another exception"
    if first.is_time_reduction and second.is_time_reduction:
        return "multiple time reductions"
    return None


def _subtract(window: tuple[int, int], removed: tuple[int, int]) -> list[tuple[int, int]]:
    """Parts of ``window`` not covered by ``removed``."""
    start, end = window
    cut_start, cut_end = removed
    if cut_end <= start or cut_start >= end:
        return [window]
    segments = []
    if cut_start > start:
        segments.append((start, cut_start))
    if cut_end < end:
        segments.append((cut_end, end))
    return segments
