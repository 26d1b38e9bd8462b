from datetime import datetime, timezone

import pytest

from promofye.core.clock import add_one_month, ensure_utc, start_of_month


@pytest.mark.parametrize(
    "start,expected",
    [
        (datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc), datetime(2024, 2, 15, 9, 30, tzinfo=timezone.utc)),
        (datetime(2024, 1, 31, tzinfo=timezone.utc), datetime(2024, 2, 29, tzinfo=timezone.utc)),
        (datetime(2023, 1, 31, tzinfo=timezone.utc), datetime(2023, 2, 28, tzinfo=timezone.utc)),
        (datetime(2024, 12, 20, tzinfo=timezone.utc), datetime(2025, 1, 20, tzinfo=timezone.utc)),
    ],
)
def test_add_one_month(start, expected):
    assert add_one_month(start) == expected


def test_start_of_month_is_utc_midnight_on_the_first():
    now = datetime(2024, 3, 17, 22, 45, 12, 999, tzinfo=timezone.utc)
    assert start_of_month(now) == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_ensure_utc_attaches_timezone_to_naive_values():
    assert ensure_utc(datetime(2024, 5, 1, 12)).tzinfo == timezone.utc
    assert ensure_utc(None) is None
