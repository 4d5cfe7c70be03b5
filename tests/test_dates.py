from datetime import datetime, timezone

import pytest

from cashlyzer.utils.dates import month_bounds, month_key, parse_timestamp, recent_months, shift_month, to_naive_utc
from cashlyzer.utils.numbers import clamp, round_half_up


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-11-01T12:00:00Z", datetime(2025, 11, 1, 12, tzinfo=timezone.utc)),
        ("2025-11-01T12:00:00", datetime(2025, 11, 1, 12)),
        ("2025-11-01", datetime(2025, 11, 1)),
        ("not-a-date", None),
        ("", None),
        (None, None),
        (12345, None),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_month_helpers():
    assert month_key(datetime(2025, 3, 9)) == "2025-03"
    assert shift_month(2025, 1, -1) == (2024, 12)
    assert shift_month(2025, 12, 1) == (2026, 1)

    start, end = month_bounds(2024, 2)
    assert start == datetime(2024, 2, 1)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)


def test_recent_months_oldest_first():
    months = recent_months(3, datetime(2025, 1, 15))
    assert [key for key, _, _ in months] == ["2024-11", "2024-12", "2025-01"]


def test_to_naive_utc():
    aware = datetime(2025, 11, 1, 12, tzinfo=timezone.utc)
    assert to_naive_utc(aware) == datetime(2025, 11, 1, 12)
    assert to_naive_utc(datetime(2025, 11, 1)) == datetime(2025, 11, 1)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2
    assert round_half_up(59.99) == 60


def test_clamp():
    assert clamp(1.4, 0.0, 1.0) == 1.0
    assert clamp(-0.2, 0.0, 1.0) == 0.0
