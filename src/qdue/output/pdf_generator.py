"""PDF generation for rosters.

This module creates printable PDF rosters showing:
- One row per date with each shift drawn on a 24-hour timeline
- Shift colours taken from the shift types
- A per-shift summary of the period
"""

from collections import Counter
from io import BytesIO
from pathlib import Path
from typing import Union

from qdue.domain.models import MINUTES_PER_DAY, ScheduleEvent
from qdue.scheduling.engine import DaySchedule
from qdue.scheduling.events import format_time_window

COLORS = {
    "background": (0.95, 0.95, 0.95),
    "modified_border": (0.8, 0.1, 0.1),
    "border": (0.3, 0.3, 0.3),
    "failed": (1.0, 0.85, 0.85),
}


def hex_to_rgb(color_hex: str) -> tuple[float, float, float]:
    """Convert ``#RRGGBB`` or ``#RGB`` to an RGB tuple on a 0-1 scale."""
    value = color_hex.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        return tuple(int(value[i:i + 2], 16) / 255 for i in (0, 2, 4))
    except ValueError:
        return (0.5, 0.5, 0.5)


class PDFGenerator:
    """Generates printable PDF rosters.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(days, "roster.pdf", title="Team A")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        days: list[DaySchedule],
        output_path: Union[str, Path],
        title: str = "Roster",
        include_summary: bool = True,
    ) -> None:
        """Generate a PDF roster and save it to a file.

        Args:
            days: Day schedules in date order.
            output_path: Path to save the PDF.
            title: Page heading.
            include_summary: Whether to add a summary page.
        """
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw(c, days, title, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        days: list[DaySchedule],
        title: str = "Roster",
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate a PDF roster and return it as a bytes buffer."""
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw(c, days, title, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(self, c, days: list[DaySchedule], title: str, include_summary: bool) -> None:
        self._draw_roster_pages(c, days, title)
        if include_summary:
            self._draw_summary_page(c, days, title)

    def _draw_roster_pages(self, c, days: list[DaySchedule], title: str) -> None:
        row_height = 22
        header_height = 60
        footer_height = 30
        usable_height = self.page_height - 2 * self.margin - header_height - footer_height
        rows_per_page = max(1, int(usable_height / row_height))

        timeline_left = self.margin + 110
        timeline_width = self.page_width - self.margin - 20 - timeline_left
        total_pages = max(1, (len(days) + rows_per_page - 1) // rows_per_page)

        for page_index in range(total_pages):
            page_days = days[page_index * rows_per_page:(page_index + 1) * rows_per_page]
            self._draw_header(c, days, title)

            axis_y = self.page_height - self.margin - header_height + 5
            self._draw_time_axis(c, timeline_left, axis_y, timeline_width)

            y = axis_y - 10
            for day in page_days:
                y -= row_height
                self._draw_day_row(c, day, timeline_left, timeline_width, y, row_height - 4)

            c.setFont("Helvetica", 9)
            c.drawCentredString(
                self.page_width / 2,
                self.margin - 10,
                f"Page {page_index + 1} of {total_pages}",
            )
            c.showPage()

    def _draw_header(self, c, days: list[DaySchedule], title: str) -> None:
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, title)
        if days:
            c.setFont("Helvetica", 10)
            c.drawString(
                self.margin,
                self.page_height - self.margin - 35,
                f"{days[0].schedule_date:%d %b %Y} - {days[-1].schedule_date:%d %b %Y}",
            )

    def _draw_time_axis(self, c, x: float, y: float, width: float) -> None:
        """Draw hour markers every two hours."""
        c.setFont("Helvetica", 8)
        c.setStrokeColorRGB(0.7, 0.7, 0.7)
        for hour in range(0, 25, 2):
            hour_x = x + width * hour / 24
            c.line(hour_x, y, hour_x, y - 5)
            if hour < 24:
                c.drawCentredString(hour_x, y + 3, f"{hour:02d}")

    def _draw_day_row(
        self,
        c,
        day: DaySchedule,
        timeline_x: float,
        timeline_width: float,
        y: float,
        height: float,
    ) -> None:
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica", 9)
        c.drawString(self.margin, y + height / 2 - 3, f"{day.schedule_date:%a %d/%m/%Y}")

        background = COLORS["failed"] if day.is_failed else COLORS["background"]
        c.setFillColorRGB(*background)
        c.rect(timeline_x, y, timeline_width, height, fill=1, stroke=0)

        for event in day.work_events:
            self._draw_event(c, event, timeline_x, timeline_width, y, height)

    def _draw_event(
        self,
        c,
        event: ScheduleEvent,
        timeline_x: float,
        timeline_width: float,
        y: float,
        height: float,
    ) -> None:
        window = event.time_window()
        if window is None:
            return
        start, end = window
        clipped_end = min(end, MINUTES_PER_DAY)
        bx = timeline_x + timeline_width * start / MINUTES_PER_DAY
        bw = timeline_width * (clipped_end - start) / MINUTES_PER_DAY

        c.setFillColorRGB(*hex_to_rgb(event.shift_type.color_hex))
        c.rect(bx, y, bw, height, fill=1, stroke=0)

        label = f"{event.shift_type.name} {format_time_window(event)}"
        if end > MINUTES_PER_DAY:
            label += " +1"
        c.setFillColorRGB(1, 1, 1)
        c.setFont("Helvetica-Bold", 7)
        c.drawCentredString(bx + bw / 2, y + height / 2 - 3, label)

        border = COLORS["modified_border"] if event.is_modified else COLORS["border"]
        c.setStrokeColorRGB(*border)
        c.setLineWidth(1.0 if event.is_modified else 0.5)
        c.rect(bx, y, bw, height, fill=0, stroke=1)

    def _draw_summary_page(self, c, days: list[DaySchedule], title: str) -> None:
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, f"{title} - Summary")

        shifts: Counter = Counter()
        minutes = 0
        for day in days:
            for event in day.work_events:
                shifts[event.shift_type.name] += 1
                minutes += event.duration_minutes

        lines = [
            f"Days in period: {len(days)}",
            f"Work days: {sum(1 for d in days if d.has_work)}",
            f"Scheduled hours: {minutes / 60:.1f}",
            f"Modified shifts: {sum(1 for d in days for e in d.events if e.is_modified)}",
            "",
        ]
        lines.extend(f"{name}: {count}" for name, count in sorted(shifts.items()))

        c.setFont("Helvetica", 11)
        y = self.page_height - self.margin - 50
        for line in lines:
            c.drawString(self.margin, y, line)
            y -= 16
        c.showPage()
