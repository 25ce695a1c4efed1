"""
Tests for billing period arithmetic.
"""

import datetime

import pytest

from rentals.periods import add_months, next_payment_after


class TestAddMonths:
    @pytest.mark.parametrize(
        "start, months, expected",
        [
            (datetime.date(2024, 1, 15), 1, datetime.date(2024, 2, 15)),
            (datetime.date(2024, 1, 31), 1, datetime.date(2024, 2, 29)),
            (datetime.date(2023, 1, 31), 1, datetime.date(2023, 2, 28)),
            (datetime.date(2024, 11, 30), 3, datetime.date(2025, 2, 28)),
            (datetime.date(2024, 3, 31), 0, datetime.date(2024, 3, 31)),
        ],
    )
    def test_calendar_months(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_chained_months_clamp_once(self):
        # Jan 31 -> Feb 29 -> Mar 29: the clamp carries forward
        once = add_months(datetime.date(2024, 1, 31), 1)

        assert add_months(once, 1) == datetime.date(2024, 3, 29)
        assert add_months(datetime.date(2024, 1, 31), 2) == datetime.date(2024, 3, 31)


class TestNextPaymentAfter:
    def test_flat_thirty_days(self):
        assert next_payment_after(datetime.date(2024, 2, 15)) == datetime.date(2024, 3, 16)

    def test_crosses_year(self):
        assert next_payment_after(datetime.date(2024, 12, 15)) == datetime.date(2025, 1, 14)
