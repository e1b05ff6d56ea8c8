"""Tests for timestamp parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from memory_agent.errors import MalformedInput
from memory_agent.utils import parse_timestamp, utcnow
from memory_agent.utils.dates import ensure_utc


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None


def test_ensure_utc_naive():
    assert ensure_utc(datetime(2024, 1, 1, 10, 0)) == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offset():
    plus_two = timezone(timedelta(hours=2))
    converted = ensure_utc(datetime(2024, 1, 1, 12, 0, tzinfo=plus_two))

    assert converted == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert converted.utcoffset() == timedelta(0)


def test_parse_iso_with_z():
    assert parse_timestamp("2024-01-05T10:30:00Z") == datetime(
        2024, 1, 5, 10, 30, tzinfo=timezone.utc
    )


def test_parse_iso_with_millis():
    parsed = parse_timestamp("2024-01-05T10:30:00.123Z")
    assert parsed.microsecond == 123000


def test_parse_epoch_milliseconds():
    assert parse_timestamp(1704450600000) == datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)


def test_parse_epoch_seconds():
    assert parse_timestamp(1704450600) == datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)


def test_parse_datetime_passthrough():
    value = datetime(2024, 1, 5, 10, 30)
    assert parse_timestamp(value) == datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)


def test_parse_loose_date_string():
    parsed = parse_timestamp("January 5, 2024")

    assert parsed.tzinfo is not None
    assert (parsed.year, parsed.month, parsed.day) == (2024, 1, 5)


@pytest.mark.parametrize("value", [True, "", "   ", {"when": "now"}, [2024, 1, 5]])
def test_parse_rejects_unusable_values(value):
    with pytest.raises(MalformedInput):
        parse_timestamp(value)
