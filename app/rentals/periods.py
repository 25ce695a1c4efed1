"""
Billing period arithmetic for rentals.

Periods are calendar months (Jan 31 + 1 month = Feb 28/29), while the
next-payment reminder date is a flat 30 days after a period boundary,
matching how the dashboard displays upcoming charges.
"""

from __future__ import annotations

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

NEXT_PAYMENT_OFFSET = timedelta(days=30)


def add_months(start: date, months: int) -> date:
    """Return start shifted by a number of calendar months."""
    return start + relativedelta(months=months)


def next_payment_after(boundary: date) -> date:
    """Return the next-payment date for a period starting or ending at boundary."""
    return boundary + NEXT_PAYMENT_OFFSET
