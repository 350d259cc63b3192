"""Plain-text roster output.

This module renders day-by-day schedules as text:
- One line per event with shift, time window, teams and flags
- Status lines for days without work (rest, unassigned, failed)
- Totals per shift type
"""

from collections import Counter
from datetime import date
from pathlib import Path
from typing import Iterable, Union

from qdue.domain.cycle import date_range
from qdue.domain.models import ScheduleEvent
from qdue.scheduling.engine import DaySchedule, DayStatus
from qdue.scheduling.events import format_time_window

STATUS_LABELS = {
    DayStatus.SCHEDULED: "",
    DayStatus.EMPTY: "rest",
    DayStatus.NO_ASSIGNMENT: "not assigned",
    DayStatus.FAILED: "FAILED",
}


def days_from_events(
    events: Iterable[ScheduleEvent],
    start: date,
    end: date,
    owner: str = "",
) -> list[DaySchedule]:
    """Group events into one DaySchedule per date of ``[start, end]``."""
    by_date: dict[date, list[ScheduleEvent]] = {day: [] for day in date_range(start, end)}
    for event in events:
        if event.event_date in by_date:
            by_date[event.event_date].append(event)
    return [
        DaySchedule(
            user_id=owner,
            schedule_date=day,
            status=DayStatus.SCHEDULED if day_events else DayStatus.EMPTY,
            events=day_events,
        )
        for day, day_events in by_date.items()
    ]


class RosterTextGenerator:
    """Generates a human-readable text roster.

    Example:
        >>> generator = RosterTextGenerator()
        >>> print(generator.generate_to_string(days, title="Team A"))
    """

    def __init__(self, width: int = 80):
        self.width = width

    def generate(
        self,
        days: list[DaySchedule],
        output_path: Union[str, Path],
        title: str = "",
    ) -> str:
        """Generate the roster and save it to a file.

        Args:
            days: Day schedules in date order.
            output_path: Path to save the text file.
            title: Heading line.

        Returns:
            The generated text content.
        """
        content = self._generate_content(days, title)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(self, days: list[DaySchedule], title: str = "") -> str:
        return self._generate_content(days, title)

    def _generate_content(self, days: list[DaySchedule], title: str) -> str:
        lines = []

        lines.append("=" * self.width)
        heading = title or "SCHEDULE"
        if days:
            heading += f" - {days[0].schedule_date} to {days[-1].schedule_date}"
        lines.append(heading)
        lines.append("=" * self.width)
        lines.append("")

        for day in days:
            lines.extend(self._format_day(day))

        lines.append("")
        lines.append("-" * self.width)
        lines.extend(self._format_totals(days))
        return "\n".join(lines) + "\n"

    def _format_day(self, day: DaySchedule) -> list[str]:
        prefix = f"{day.schedule_date:%a %Y-%m-%d}"
        if not day.events:
            label = STATUS_LABELS[day.status]
            if day.error:
                label += f" ({day.error})"
            return [f"{prefix}  {label}"]

        lines = []
        for index, event in enumerate(day.events):
            lead = prefix if index == 0 else " " * len(prefix)
            lines.append(f"{lead}  {self._format_event(event)}")
        return lines

    @staticmethod
    def _format_event(event: ScheduleEvent) -> str:
        parts = [f"{event.shift_type.name:<10}", f"{format_time_window(event):<11}"]
        if event.teams:
            parts.append(f"[{', '.join(event.teams)}]")
        if event.cycle_days:
            parts.append(f"day {event.cycle_day + 1}/{event.cycle_days}")
        if event.flags:
            parts.append(" ".join(event.flags))
        if event.modification_reason:
            parts.append(f"({event.modification_reason})")
        return " ".join(parts).rstrip()

    @staticmethod
    def _format_totals(days: list[DaySchedule]) -> list[str]:
        shifts: Counter = Counter()
        minutes = 0
        for day in days:
            for event in day.work_events:
                shifts[event.shift_type.name] += 1
                minutes += event.duration_minutes

        work_days = sum(1 for d in days if d.has_work)
        failed = sum(1 for d in days if d.is_failed)
        lines = [
            f"Days: {len(days)}  Work days: {work_days}  Hours: {minutes / 60:.1f}",
        ]
        for name, count in sorted(shifts.items()):
            lines.append(f"  {name}: {count}")
        if failed:
            lines.append(f"  Failed days: {failed}")
        return lines
