"""Output generation for rosters."""

from qdue.output.pdf_generator import PDFGenerator
from qdue.output.text_report import RosterTextGenerator, days_from_events

__all__ = [
    "PDFGenerator",
    "RosterTextGenerator",
    "days_from_events",
]
