from datetime import datetime, timezone

import pytest

from airwatch.utils.validation import parse_positive_int, parse_timestamp


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("3", 3),
        (7, 7),
        (" 12 ", 12),
        (None, 50),
        ("abc", 50),
        ("", 50),
        ("0", 50),
        ("-4", 50),
        (True, 50),
    ],
)
def test_parse_positive_int_falls_back_to_default(raw, expected) -> None:
    assert parse_positive_int(raw, 50) == expected


def test_parse_timestamp_accepts_zulu_and_offsets() -> None:
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    parsed = parse_timestamp("2024-05-01T12:00:00+02:00")
    assert parsed == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)


def test_parse_timestamp_treats_naive_and_plain_dates_as_utc() -> None:
    assert parse_timestamp("2024-05-01") == datetime(2024, 5, 1, tzinfo=timezone.utc)
    naive = datetime(2024, 5, 1, 8, 30)
    assert parse_timestamp(naive) == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw", [None, "", "   ", "yesterday", "2024-13-45"])
def test_parse_timestamp_rejects_missing_or_garbage(raw) -> None:
    assert parse_timestamp(raw) is None


@pytest.mark.parametrize(
    "raw,micros",
    [
        ("2024-05-01T10:00:00.5Z", 500000),
        ("2024-05-01T10:00:00.12Z", 120000),
        ("2024-05-01T10:00:00.1234Z", 123400),
        ("2024-05-01T10:00:00.123456789Z", 123456),
    ],
)
def test_parse_timestamp_accepts_any_fraction_length(raw, micros) -> None:
    assert parse_timestamp(raw) == datetime(2024, 5, 1, 10, 0, 0, micros, tzinfo=timezone.utc)
