"""Tests for cycle arithmetic."""

from datetime import date, timedelta

import pytest

from qdue.domain.cycle import cycle_offset, date_range, days_between, floored_mod


class TestFlooredMod:
    """Tests for floored_mod."""

    def test_positive_values(self):
        """Positive values behave like ordinary modulo."""
        assert floored_mod(20, 18) == 2
        assert floored_mod(0, 18) == 0

    def test_negative_values_wrap_into_range(self):
        """Negative values land in [0, modulus)."""
        assert floored_mod(-1, 18) == 17
        assert floored_mod(-18, 18) == 0
        assert floored_mod(-19, 18) == 17

    def test_rejects_non_positive_modulus(self):
        """A zero or negative cycle length is an error."""
        with pytest.raises(ValueError):
            floored_mod(5, 0)
        with pytest.raises(ValueError):
            floored_mod(5, -3)


class TestCycleOffset:
    """Tests for cycle_offset."""

    @pytest.fixture
    def reference(self):
        return date(2018, 11, 7)

    def test_reference_is_day_zero(self, reference):
        """The reference date maps to position 0."""
        assert cycle_offset(reference, reference, 18) == 0

    def test_day_before_reference(self, reference):
        """One day before the reference resolves to the last position."""
        assert cycle_offset(reference, reference - timedelta(days=1), 18) == 17

    def test_far_future_date(self, reference):
        """2025-01-01 lies 2247 days after the reference (position 15)."""
        assert days_between(reference, date(2025, 1, 1)) == 2247
        assert cycle_offset(reference, date(2025, 1, 1), 18) == 15

    def test_phase_offset_delays_cycle(self, reference):
        """A phase offset of k moves position 0 k days later."""
        target = reference + timedelta(days=3)
        assert cycle_offset(reference, target, 18, phase_offset=3) == 0
        assert cycle_offset(reference, reference, 18, phase_offset=3) == 15

    def test_positions_repeat_every_cycle(self, reference):
        """Dates one cycle apart share a position."""
        for delta in range(-40, 40):
            target = reference + timedelta(days=delta)
            later = target + timedelta(days=18)
            assert cycle_offset(reference, target, 18) == cycle_offset(reference, later, 18)


class TestDateRange:
    """Tests for date_range."""

    def test_inclusive_range(self):
        """Both ends are included, in order."""
        days = list(date_range(date(2025, 1, 30), date(2025, 2, 2)))
        assert days == [
            date(2025, 1, 30),
            date(2025, 1, 31),
            date(2025, 2, 1),
            date(2025, 2, 2),
        ]

    def test_empty_when_start_after_end(self):
        assert list(date_range(date(2025, 1, 2), date(2025, 1, 1))) == []
