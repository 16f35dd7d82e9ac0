"""Tests for calendar expression compilation and next-occurrence evaluation."""

from datetime import datetime, timedelta, timezone

import pytest

from domains.reminders.cron import parse_schedule, _translate_weekdays
from domains.reminders.errors import InvalidExpression


# 2030-01-01 is a Tuesday
NOON = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def next_after(expression, after=NOON):
    return parse_schedule(expression, timezone=timezone.utc).next_after(after)


class TestNextOccurrence:
    """Evaluate expressions against a fixed instant."""

    def test_every_ten_seconds(self):
        assert next_after("*/10 * * * * *") == NOON + timedelta(seconds=10)

    def test_result_is_strictly_after(self):
        """An instant that itself matches is not returned."""
        assert next_after("0 0 12 * * *") == NOON + timedelta(days=1)

    def test_sunday_is_zero(self):
        assert next_after("0 0 9 * * 0") == datetime(2030, 1, 6, 9, 0, tzinfo=timezone.utc)

    def test_monday_is_one(self):
        assert next_after("0 0 9 * * 1") == datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)

    def test_weekday_names(self):
        assert next_after("0 30 9 * * mon-fri") == datetime(2030, 1, 2, 9, 30, tzinfo=timezone.utc)

    def test_question_mark_is_any(self):
        assert next_after("0 0 13 ? * *") == NOON + timedelta(hours=1)

    def test_daily_descriptor(self):
        assert next_after("@daily") == datetime(2030, 1, 2, 0, 0, tzinfo=timezone.utc)

    def test_hourly_descriptor(self):
        assert next_after("@hourly") == NOON + timedelta(hours=1)

    def test_weekly_descriptor_is_sunday_midnight(self):
        assert next_after("@weekly") == datetime(2030, 1, 6, 0, 0, tzinfo=timezone.utc)

    def test_monthly_descriptor(self):
        assert next_after("@monthly") == datetime(2030, 2, 1, 0, 0, tzinfo=timezone.utc)

    def test_every_interval(self):
        assert next_after("@every 1m30s") == NOON + timedelta(seconds=90)

    def test_expression_text_is_kept(self):
        assert parse_schedule("@daily").expression == "@daily"

    def test_evaluated_in_given_timezone(self):
        plus_two = timezone(timedelta(hours=2))
        compiled = parse_schedule("0 0 9 * * *", timezone=plus_two)

        # 09:00 at +02:00 is 07:00 UTC
        assert compiled.next_after(NOON) == datetime(2030, 1, 2, 7, 0, tzinfo=timezone.utc)


class TestInvalidExpressions:
    """Unschedulable expressions are rejected before anything is stored."""

    @pytest.mark.parametrize("expression", [
        "",
        "   ",
        "* * * * *",
        "* * * * * * *",
        "not a cron",
        "@fortnightly",
        "@every",
        "@every soon",
        "0 0 25 * * *",
        "0 61 * * * *",
        "0 0 9 * * 8",
        "0 0 9 * * funday",
    ])
    def test_rejected(self, expression):
        with pytest.raises(InvalidExpression) as exc_info:
            parse_schedule(expression)

        assert exc_info.value.expression == expression
        assert exc_info.value.message == "Invalid cron expression. Please check your syntax."


class TestWeekdayTranslation:

    def test_star_passes_through(self):
        assert _translate_weekdays("*") == "*"

    def test_full_week_range(self):
        assert _translate_weekdays("0-6") == "sun,mon,tue,wed,thu,fri,sat"

    def test_list_and_step(self):
        assert _translate_weekdays("1,3") == "mon,wed"
        assert _translate_weekdays("*/2") == "sun,tue,thu,sat"


class TestOutOfRangeIntervals:

    @pytest.mark.parametrize("expression", ["@every 9999999999999h", "@every 20000000000h"])
    def test_huge_interval_rejected(self, expression):
        with pytest.raises(InvalidExpression) as exc_info:
            parse_schedule(expression)

        assert exc_info.value.expression == expression
