"""Tests for API timestamp parsing and calendar helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from devops_analytics.utils.date_utils import (
    WeekRule,
    format_timestamp,
    parse_api_datetime,
    resolve_timezone,
    to_local,
    week_of_year,
)


class TestParseApiDatetime:
    def test_utc_with_seven_fraction_digits(self):
        parsed = parse_api_datetime("2024-03-14T10:30:45.1234567Z")

        assert parsed.tzinfo is not None
        assert (parsed.hour, parsed.minute, parsed.second) == (10, 30, 45)

    def test_offset_is_normalized_to_utc(self):
        parsed = parse_api_datetime("2024-03-14T12:00:00+02:00")

        assert parsed.utcoffset() == timedelta(0)
        assert parsed.hour == 10

    def test_naive_value_is_treated_as_utc(self):
        assert parse_api_datetime("2024-03-14T10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "0001-01-01T00:00:00"])
    def test_unset_values(self, value):
        assert parse_api_datetime(value) is None


class TestTimezones:
    def test_local_and_none(self):
        assert resolve_timezone(None) is None
        assert resolve_timezone("local") is None

    def test_utc(self):
        assert resolve_timezone("utc") is timezone.utc

    def test_named_zone(self):
        value = datetime(2024, 7, 1, 12, tzinfo=timezone.utc)

        assert to_local(value, resolve_timezone("Europe/Amsterdam")).hour == 14

    def test_unknown_zone_raises(self):
        with pytest.raises(KeyError):
            resolve_timezone("Nowhere/Special")


class TestWeekOfYear:
    @pytest.mark.parametrize(
        "day, iso, first_day",
        [
            (datetime(2024, 1, 1), 1, 1),
            (datetime(2024, 1, 7), 1, 2),
            (datetime(2023, 1, 1), 52, 1),
            (datetime(2020, 12, 31), 53, 53),
        ],
    )
    def test_rules(self, day, iso, first_day):
        assert week_of_year(day, WeekRule.ISO) == iso
        assert week_of_year(day, WeekRule.FIRST_DAY) == first_day


class TestFormatTimestamp:
    def test_missing_is_empty(self):
        assert format_timestamp(None) == ""

    def test_format_in_zone(self):
        value = datetime(2024, 3, 14, 10, 30, 45, tzinfo=timezone.utc)

        assert format_timestamp(value, timezone.utc) == "2024-03-14 10:30:45"
