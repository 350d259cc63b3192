"""Tests for recurrence rules and their evaluation."""

from datetime import date, timedelta

import pytest

from qdue.domain.presets import (
    QUATTRODUE_REFERENCE_DATE,
    create_quattrodue_template,
    create_standard_teams,
    create_team_rule,
    team_cycle_start,
)
from qdue.domain.recurrence import EndType, Frequency, RecurrenceRule, WeekStart
from qdue.scheduling.providers import FixedScheduleProvider
from qdue.scheduling.recurrence import RecurrenceEvaluator, build_rrule


@pytest.fixture
def evaluator():
    return RecurrenceEvaluator()


class TestRecurrenceRule:
    """Tests for RecurrenceRule construction."""

    def test_quattrodue_defaults(self):
        rule = RecurrenceRule.quattrodue(date(2025, 1, 1))
        assert rule.is_cyclic
        assert rule.cycle_length == 18
        assert rule.cadence_period == 6
        assert rule.template_id == "quattrodue_standard"

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            RecurrenceRule(id="r", frequency=Frequency.DAILY, start_date=date(2025, 1, 1), interval=0)

    def test_cycle_rule_requires_length(self):
        with pytest.raises(ValueError):
            RecurrenceRule(id="r", frequency=Frequency.QUATTRODUE_CYCLE, start_date=date(2025, 1, 1))

    def test_until_requires_end_date(self):
        with pytest.raises(ValueError):
            RecurrenceRule(
                id="r", frequency=Frequency.DAILY, start_date=date(2025, 1, 1),
                end_type=EndType.UNTIL_DATE,
            )

    def test_until_cannot_precede_start(self):
        with pytest.raises(ValueError):
            RecurrenceRule(
                id="r", frequency=Frequency.DAILY, start_date=date(2025, 1, 10),
                end_type=EndType.UNTIL_DATE, end_date=date(2025, 1, 1),
            )

    def test_count_must_be_positive(self):
        with pytest.raises(ValueError):
            RecurrenceRule(
                id="r", frequency=Frequency.DAILY, start_date=date(2025, 1, 1),
                end_type=EndType.COUNT, count=0,
            )

    def test_invalid_weekday(self):
        with pytest.raises(ValueError):
            RecurrenceRule(id="r", frequency=Frequency.WEEKLY, start_date=date(2025, 1, 1), by_day=(7,))

    def test_to_rrule_weekly(self):
        rule = RecurrenceRule(
            id="r",
            frequency=Frequency.WEEKLY,
            start_date=date(2025, 1, 6),
            by_day=(0, 2),
            end_type=EndType.COUNT,
            count=5,
        )
        assert rule.to_rrule() == "RRULE:FREQ=WEEKLY;BYDAY=MO,WE;COUNT=5"

    def test_to_rrule_quattrodue(self):
        rule = RecurrenceRule.quattrodue(date(2025, 1, 1))
        assert rule.to_rrule() == "RRULE:FREQ=DAILY;X-QDUE-CYCLE=18/4/2"

    def test_to_rrule_until_and_week_start(self):
        rule = RecurrenceRule(
            id="r",
            frequency=Frequency.WEEKLY,
            start_date=date(2025, 1, 5),
            interval=2,
            week_start=WeekStart.SUNDAY,
            end_type=EndType.UNTIL_DATE,
            end_date=date(2025, 3, 1),
        )
        assert rule.to_rrule() == "RRULE:FREQ=WEEKLY;INTERVAL=2;WKST=SU;UNTIL=20250301"


class TestQuattroDueEvaluation:
    """Tests for QuattroDue cycle rules."""

    @pytest.fixture
    def rule(self):
        return RecurrenceRule.quattrodue(date(2025, 1, 1))

    def test_four_on_two_off(self, evaluator, rule):
        """Days 0-3 work, days 4-5 rest, then the cadence repeats."""
        results = [
            evaluator.matches(rule, date(2025, 1, 1) + timedelta(days=i)) for i in range(8)
        ]
        assert results == [True, True, True, True, False, False, True, True]

    def test_cycle_offset(self, evaluator, rule):
        assert evaluator.cycle_offset(rule, date(2025, 1, 1)) == 0
        assert evaluator.cycle_offset(rule, date(2025, 1, 19)) == 0
        assert evaluator.cycle_offset(rule, date(2024, 12, 31)) == 17

    def test_no_match_before_start(self, evaluator, rule):
        """Dates before the start never match, though positions still resolve."""
        earlier = date(2024, 12, 28)
        assert evaluator.is_work_day(rule, earlier)
        assert not evaluator.matches(rule, earlier)

    def test_cycle_offset_none_for_calendar_rules(self, evaluator):
        rule = RecurrenceRule(id="d", frequency=Frequency.DAILY, start_date=date(2025, 1, 1))
        assert evaluator.cycle_offset(rule, date(2025, 1, 5)) is None

    def test_occurrence_index_counts_work_days(self, evaluator, rule):
        assert evaluator.occurrence_index(rule, date(2025, 1, 7)) == 4

    def test_twelve_work_days_per_cycle(self, evaluator, rule):
        found = evaluator.occurrences(rule, date(2025, 1, 1), date(2025, 1, 18))
        assert len(found) == 12

    def test_inactive_rule_never_matches(self, evaluator, rule):
        inactive = rule.deactivated()
        assert not evaluator.matches(inactive, date(2025, 1, 1))
        assert evaluator.occurrences(inactive, date(2025, 1, 1), date(2025, 1, 31)) == []


class TestCalendarEvaluation:
    """Tests for daily, weekly, monthly and yearly rules."""

    def test_daily_interval(self, evaluator):
        rule = RecurrenceRule(id="d", frequency=Frequency.DAILY, start_date=date(2025, 1, 1), interval=3)
        assert evaluator.matches(rule, date(2025, 1, 4))
        assert not evaluator.matches(rule, date(2025, 1, 3))
        assert evaluator.occurrences(rule, date(2025, 1, 1), date(2025, 1, 10)) == [
            date(2025, 1, 1), date(2025, 1, 4), date(2025, 1, 7), date(2025, 1, 10),
        ]

    def test_weekly_by_day_every_other_week(self, evaluator):
        """Mondays and Wednesdays, every second week from 2025-01-06."""
        rule = RecurrenceRule(
            id="w",
            frequency=Frequency.WEEKLY,
            start_date=date(2025, 1, 6),
            interval=2,
            by_day=(0, 2),
        )
        assert evaluator.matches(rule, date(2025, 1, 8))
        assert not evaluator.matches(rule, date(2025, 1, 13))
        assert evaluator.occurrences(rule, date(2025, 1, 1), date(2025, 1, 31)) == [
            date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 20), date(2025, 1, 22),
        ]

    def test_weekly_defaults_to_start_weekday(self, evaluator):
        rule = RecurrenceRule(id="w", frequency=Frequency.WEEKLY, start_date=date(2025, 1, 1))
        assert evaluator.matches(rule, date(2025, 1, 8))
        assert not evaluator.matches(rule, date(2025, 1, 9))

    def test_count_limits_occurrences(self, evaluator):
        rule = RecurrenceRule(
            id="c", frequency=Frequency.DAILY, start_date=date(2025, 1, 1),
            end_type=EndType.COUNT, count=3,
        )
        assert evaluator.matches(rule, date(2025, 1, 3))
        assert not evaluator.matches(rule, date(2025, 1, 4))
        assert evaluator.occurrences(rule, date(2025, 1, 1), date(2025, 1, 10)) == [
            date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3),
        ]

    def test_until_is_inclusive(self, evaluator):
        rule = RecurrenceRule(
            id="u", frequency=Frequency.DAILY, start_date=date(2025, 1, 1),
            end_type=EndType.UNTIL_DATE, end_date=date(2025, 1, 5),
        )
        assert evaluator.matches(rule, date(2025, 1, 5))
        assert not evaluator.matches(rule, date(2025, 1, 6))
        assert evaluator.next_occurrence(rule, date(2025, 1, 5)) is None

    def test_monthly_skips_short_months(self, evaluator):
        """Day 31 only occurs in months that have it."""
        rule = RecurrenceRule(
            id="m", frequency=Frequency.MONTHLY, start_date=date(2025, 1, 31), by_month_day=(31,),
        )
        assert evaluator.occurrences(rule, date(2025, 1, 1), date(2025, 5, 31)) == [
            date(2025, 1, 31), date(2025, 3, 31), date(2025, 5, 31),
        ]
        assert evaluator.next_occurrence(rule, date(2025, 1, 31)) == date(2025, 3, 31)

    def test_build_rrule_for_calendar_rules(self):
        rule = RecurrenceRule(
            id="w", frequency=Frequency.WEEKLY, start_date=date(2025, 1, 6), by_day=(0, 2),
            end_type=EndType.COUNT, count=3,
        )
        assert [d.date() for d in build_rrule(rule)] == [
            date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13),
        ]
        with pytest.raises(ValueError):
            build_rrule(RecurrenceRule.quattrodue(date(2025, 1, 1)))

    def test_yearly_leap_day(self, evaluator):
        rule = RecurrenceRule(id="y", frequency=Frequency.YEARLY, start_date=date(2024, 2, 29))
        assert not evaluator.matches(rule, date(2025, 2, 28))
        assert evaluator.next_occurrence(rule, date(2024, 2, 29)) == date(2028, 2, 29)


class TestTeamRules:
    """Team rules reproduce the work days of the standard template."""

    def test_cycle_starts(self):
        assert team_cycle_start("A") == 0
        assert team_cycle_start("g") == 2
        assert team_cycle_start("B") == 4
        with pytest.raises(ValueError):
            team_cycle_start("Z")

    def test_rule_ids(self):
        rules = [create_team_rule(team) for team in create_standard_teams()]
        assert rules[0].id == "quattrodue_standard_a"
        assert rules[0].start_date == QUATTRODUE_REFERENCE_DATE

    def test_rules_agree_with_template(self, evaluator):
        """From one cycle after the reference, rule matches equal template work days."""
        template = create_quattrodue_template()
        provider = FixedScheduleProvider()
        first = QUATTRODUE_REFERENCE_DATE + timedelta(days=18)
        for team in create_standard_teams():
            rule = create_team_rule(team)
            for delta in range(36):
                day = first + timedelta(days=delta)
                works = bool(provider.generate_schedule_for_date(day, template, team.id))
                assert evaluator.matches(rule, day) == works, (team.id, day)
