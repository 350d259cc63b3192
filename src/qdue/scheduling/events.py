"""Construction of schedule events from template assignments."""

from dataclasses import replace
from datetime import date, time
from typing import Optional

from qdue.domain.models import (
    ScheduleEvent,
    ShiftType,
    WorkSchedulePattern,
    WorkScheduleTemplate,
    WorkShiftAssignment,
)

FLAG_LABELS = {
    "OT": "Overtime",
    "REQ": "Mandatory",
    "TEMP": "Temporary",
    "MOD": "Modified",
}


def build_event(
    event_date: date,
    assignment: WorkShiftAssignment,
    template: WorkScheduleTemplate,
    pattern: WorkSchedulePattern,
    cycle_day: int,
    provider_name: str,
) -> ScheduleEvent:
    """Create the event for one assignment of a pattern on a date."""
    shift_type = assignment.shift_type
    event = ScheduleEvent(
        event_date=event_date,
        shift_type=shift_type,
        teams=tuple(assignment.teams),
        cycle_day=cycle_day,
        cycle_days=template.cycle_days,
        source_template_id=template.id,
        provider_name=provider_name,
        start_time=shift_type.start_time,
        end_time=shift_type.end_time,
        is_overtime=assignment.is_overtime,
        is_mandatory=assignment.is_mandatory,
        is_temporary=assignment.is_temporary,
        is_modified=assignment.is_modified,
        modification_reason=assignment.modification_reason,
    )
    notes = [n for n in (pattern.notes, assignment.notes) if n]
    return replace(
        event,
        title=format_title(event),
        description=format_description(event, template.name, template.description, notes),
    )


def rebuild_event(
    event: ScheduleEvent,
    shift_type: Optional[ShiftType] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    **changes,
) -> ScheduleEvent:
    """Copy an event with a new shift and/or time window, refreshing its text."""
    new_shift = shift_type or event.shift_type
    if shift_type is not None:
        start = start_time if start_time is not None else new_shift.start_time
        end = end_time if end_time is not None else new_shift.end_time
    else:
        start = start_time if start_time is not None else event.start_time
        end = end_time if end_time is not None else event.end_time
    updated = replace(event, shift_type=new_shift, start_time=start, end_time=end, **changes)
    return replace(updated, title=format_title(updated))


def format_time_window(event: ScheduleEvent) -> str:
    if event.is_rest_period or event.start_time is None or event.end_time is None:
        return "rest"
    return f"{event.start_time:%H:%M}-{event.end_time:%H:%M}"


def format_title(event: ScheduleEvent) -> str:
    """Title such as ``Morning 05:00-13:00 [A, B]``."""
    title = f"{event.shift_type.name} {format_time_window(event)}"
    if event.teams:
        title += f" [{', '.join(event.teams)}]"
    return title


def format_description(
    event: ScheduleEvent,
    template_name: str = "",
    template_description: str = "",
    notes: Optional[list[str]] = None,
) -> str:
    lines = [f"Shift: {event.shift_type.name} ({format_time_window(event)})"]
    if event.teams:
        lines.append(f"Teams: {', '.join(event.teams)}")
    if event.cycle_days:
        lines.append(f"Cycle day: {event.cycle_day + 1}/{event.cycle_days}")
    if template_name:
        lines.append(f"Template: {template_name}")
    if template_description:
        lines.append(template_description)
    if event.flags:
        lines.append("Flags: " + ", ".join(FLAG_LABELS[f] for f in event.flags))
    for note in notes or []:
        lines.append(f"Notes: {note}")
    return "\n".join(lines)
