"""
Date/Period Utilities Module

Due dates are calendar dates with no time-of-day. A "YYYY-MM-DD" string is
split into its year/month/day parts and never handed to a timezone-aware
parser, so a due date cannot shift by a day depending on the server's UTC offset.
"""

import calendar
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from .errors import ValidationError


DateLike = Union[str, date]


class PaymentPlan(Enum):
    """Installment cadence"""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


def today() -> date:
    """Local calendar date"""
    return date.today()


def parse_local_date(value: DateLike) -> date:
    """
    Parse a due date as a local calendar date.

    Accepts a date, or a "YYYY-MM-DD" string. Timestamp strings
    ("2024-03-05T23:00:00-03:00") keep their literal date part; the offset is ignored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid date: {value!r}")

    date_part = value.strip().split('T')[0].split(' ')[0]
    parts = date_part.split('-')
    if len(parts) != 3:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")

    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def parse_optional_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_local_date(value)


def days_until(due_date: DateLike, as_of: Optional[date] = None) -> int:
    """
    Whole days from today (or as_of) until due_date.

    Negative = overdue by that many days, 0 = due today, positive = due in N days.
    """
    due = parse_local_date(due_date)
    reference = as_of or today()
    return (due - reference).days


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_due_date(current_date: date, plan: PaymentPlan) -> date:
    """Calculate the next due date for a payment plan"""
    if plan == PaymentPlan.WEEKLY:
        return current_date + timedelta(days=7)
    elif plan == PaymentPlan.BIWEEKLY:
        return current_date + timedelta(days=14)
    elif plan == PaymentPlan.MONTHLY:
        return add_months(current_date, 1)
    else:
        raise ValidationError(f"Unsupported payment plan: {plan}")


def due_date_for(start_date: date, plan: PaymentPlan, number: int) -> date:
    """
    Due date of installment `number` (1-based), one period per installment
    after start_date. Monthly steps are computed from start_date, so a 31st
    start stays on the 31st (or the month's last day) every month.
    """
    if plan == PaymentPlan.MONTHLY:
        return add_months(start_date, number)
    due = start_date
    for _ in range(number):
        due = next_due_date(due, plan)
    return due


def month_start(reference: date) -> date:
    return reference.replace(day=1)
