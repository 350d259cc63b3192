"""Tests for text and PDF roster output."""

from datetime import date, timedelta

import pytest

from qdue.cli import create_demo_engine
from qdue.domain.presets import create_quattrodue_template
from qdue.output.pdf_generator import PDFGenerator, hex_to_rgb
from qdue.output.text_report import RosterTextGenerator, days_from_events
from qdue.scheduling.engine import DaySchedule, DayStatus
from qdue.scheduling.providers import FixedScheduleProvider


@pytest.fixture
def team_a_days():
    """Team A from 2025-01-01: one afternoon, then two rest days."""
    start, end = date(2025, 1, 1), date(2025, 1, 3)
    events = FixedScheduleProvider().generate_schedule(start, end, create_quattrodue_template(), "A")
    return days_from_events(events, start, end, owner="A")


class TestDaysFromEvents:
    """Tests for grouping events into days."""

    def test_one_day_per_date(self, team_a_days):
        assert [d.schedule_date for d in team_a_days] == [
            date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3),
        ]
        assert [d.status for d in team_a_days] == [
            DayStatus.SCHEDULED, DayStatus.EMPTY, DayStatus.EMPTY,
        ]
        assert team_a_days[0].user_id == "A"

    def test_events_outside_range_dropped(self, team_a_days):
        events = team_a_days[0].events
        days = days_from_events(events, date(2025, 1, 2), date(2025, 1, 2))
        assert len(days) == 1
        assert days[0].events == []


class TestRosterTextGenerator:
    """Tests for RosterTextGenerator."""

    @pytest.fixture
    def generator(self):
        return RosterTextGenerator()

    def test_content(self, generator, team_a_days):
        text = generator.generate_to_string(team_a_days, title="Team A")
        assert "Team A - 2025-01-01 to 2025-01-03" in text
        assert "Wed 2025-01-01  Afternoon" in text
        assert "[A, H] day 16/18" in text
        assert "Thu 2025-01-02  rest" in text
        assert "Days: 3  Work days: 1  Hours: 8.0" in text
        assert "  Afternoon: 1" in text

    def test_failed_and_unassigned_days(self, generator):
        days = [
            DaySchedule("u", date(2025, 1, 1), DayStatus.FAILED, error="Unknown template x"),
            DaySchedule("u", date(2025, 1, 2), DayStatus.NO_ASSIGNMENT),
        ]
        text = generator.generate_to_string(days)
        assert "SCHEDULE - 2025-01-01 to 2025-01-02" in text
        assert "FAILED (Unknown template x)" in text
        assert "not assigned" in text
        assert "Failed days: 1" in text

    def test_modified_events_show_reason(self, generator):
        start = date(2025, 3, 1)
        engine, _ = create_demo_engine(start)
        days = engine.generate_user_schedule("carol", start, start + timedelta(days=6))
        text = generator.generate_to_string(days, title="carol")
        assert "Reduced hours" in text
        assert "MOD" in text

    def test_write_file(self, generator, team_a_days, tmp_path):
        path = tmp_path / "roster.txt"
        content = generator.generate(team_a_days, path, title="Team A")
        assert path.read_text() == content


class TestPDFGenerator:
    """Tests for PDFGenerator."""

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#FFFFFF") == (1.0, 1.0, 1.0)
        assert hex_to_rgb("#000") == (0.0, 0.0, 0.0)
        assert hex_to_rgb("nope") == (0.5, 0.5, 0.5)

    def test_buffer_is_pdf(self, team_a_days):
        pytest.importorskip("reportlab")
        buffer = PDFGenerator().generate_to_buffer(team_a_days, title="Team A")
        assert buffer.read(4) == b"%PDF"

    def test_demo_roster_file(self, tmp_path):
        pytest.importorskip("reportlab")
        start = date(2025, 3, 1)
        engine, users = create_demo_engine(start)
        days = []
        for user_id in users:
            days.extend(engine.generate_user_schedule(user_id, start, start + timedelta(days=40)))
        path = tmp_path / "roster.pdf"
        PDFGenerator().generate(days, path, title="Demo")
        assert path.read_bytes().startswith(b"%PDF")
