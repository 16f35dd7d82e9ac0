"""Tests for duration, time and argument parsing."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from domains.reminders import config
from domains.reminders.errors import InvalidInput
from domains.reminders.parser import parse_backtick_args, parse_duration, parse_flexible_time


NOW = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestParseDuration:

    @pytest.mark.parametrize("text,expected", [
        ("90s", timedelta(seconds=90)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(minutes=90)),
        ("500ms", timedelta(milliseconds=500)),
        ("5m", timedelta(minutes=5)),
        ("10min", timedelta(minutes=10)),
        ("2hours", timedelta(hours=2)),
        ("2 hours", timedelta(hours=2)),
        ("3hrs", timedelta(hours=3)),
        ("1d", timedelta(days=1)),
        ("2days", timedelta(days=2)),
        ("1w", timedelta(weeks=1)),
        ("3wks", timedelta(weeks=3)),
    ])
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "soon", "5", "5 fortnights", "m5", "1h-30m"])
    def test_invalid(self, text):
        with pytest.raises(InvalidInput):
            parse_duration(text)


class TestParseFlexibleTime:

    def test_pm_later_today(self):
        assert parse_flexible_time("3pm", NOW) == datetime(2030, 1, 1, 15, 0, tzinfo=timezone.utc)

    def test_am_already_passed_rolls_to_tomorrow(self):
        assert parse_flexible_time("9:30am", NOW) == datetime(2030, 1, 2, 9, 30, tzinfo=timezone.utc)

    def test_twelve_am_is_midnight(self):
        assert parse_flexible_time("12am", NOW) == datetime(2030, 1, 2, 0, 0, tzinfo=timezone.utc)

    def test_twelve_pm_is_noon(self):
        # Noon equals now, which is not in the past
        assert parse_flexible_time("12pm", NOW) == NOW

    def test_invalid_twelve_hour_clock(self):
        with pytest.raises(InvalidInput):
            parse_flexible_time("13pm", NOW)

    def test_rfc3339_keeps_offset(self):
        parsed = parse_flexible_time("2030-05-20T15:04:05+07:00", NOW)
        assert parsed == datetime(2030, 5, 20, 8, 4, 5, tzinfo=timezone.utc)

    def test_rfc3339_zulu(self):
        parsed = parse_flexible_time("2030-05-20T15:04:05Z", NOW)
        assert parsed == datetime(2030, 5, 20, 15, 4, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text,expected", [
        ("2030-05-20T15:04:05", datetime(2030, 5, 20, 15, 4, 5, tzinfo=timezone.utc)),
        ("2030-05-20 15:04:05", datetime(2030, 5, 20, 15, 4, 5, tzinfo=timezone.utc)),
        ("2030-05-20 15:04", datetime(2030, 5, 20, 15, 4, tzinfo=timezone.utc)),
        ("2030-05-20", datetime(2030, 5, 20, tzinfo=timezone.utc)),
    ])
    def test_datetime_formats_use_now_timezone(self, text, expected):
        assert parse_flexible_time(text, NOW) == expected

    def test_clock_time_later_today(self):
        assert parse_flexible_time("15:04", NOW) == datetime(2030, 1, 1, 15, 4, tzinfo=timezone.utc)

    def test_clock_time_passed_is_tomorrow(self):
        assert parse_flexible_time("08:00:30", NOW) == datetime(2030, 1, 2, 8, 0, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text", ["tomorrow", "25:00", "2030-13-01", ""])
    def test_unparseable(self, text):
        with pytest.raises(InvalidInput):
            parse_flexible_time(text, NOW)


class TestParseBacktickArgs:

    def test_cron_expression_in_backticks(self):
        assert parse_backtick_args("`0 0 9 * * 1` stand up") == ["0 0 9 * * 1", "stand", "up"]

    def test_plain_words(self):
        assert parse_backtick_args("  a  b c ") == ["a", "b", "c"]

    def test_time_in_backticks(self):
        assert parse_backtick_args("`2030-05-20 15:04` call mum") == ["2030-05-20 15:04", "call", "mum"]

    def test_unterminated_backtick_keeps_rest(self):
        assert parse_backtick_args("`0 0 9") == ["0 0 9"]


class TestDefaultNow:
    """Without an explicit now, parsing uses the wall clock in the configured timezone."""

    @freeze_time("2030-01-01 12:00:00")
    def test_clock_time_from_wall_clock(self, monkeypatch):
        monkeypatch.setattr(config, "TIMEZONE", timezone.utc)

        assert parse_flexible_time("15:04") == datetime(2030, 1, 1, 15, 4, tzinfo=timezone.utc)

    @freeze_time("2030-01-01 12:00:00")
    def test_configured_timezone_applies(self, monkeypatch):
        monkeypatch.setattr(config, "TIMEZONE", timezone(timedelta(hours=-5)))

        # 12:00 UTC is 07:00 at -05:00, so 08:00 is still today
        parsed = parse_flexible_time("08:00")
        assert parsed == datetime(2030, 1, 1, 13, 0, tzinfo=timezone.utc)


class TestOutOfRange:

    @pytest.mark.parametrize("text", ["9999999999999h", "100000000000000d", "99999999999999999999w"])
    def test_huge_duration_is_invalid_input(self, text):
        with pytest.raises(InvalidInput):
            parse_duration(text)
