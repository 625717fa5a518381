"""
Tests for date utilities

Due dates are calendar dates; parsing must never shift them by a day.
"""

import pytest
from datetime import date, datetime

from core_billing.dates import (
    PaymentPlan, parse_local_date, parse_optional_date, days_until,
    add_months, next_due_date, due_date_for, month_start,
)
from core_billing.errors import ValidationError


class TestParseLocalDate:
    """Test calendar date parsing"""

    def test_plain_iso_date(self):
        assert parse_local_date("2024-03-05") == date(2024, 3, 5)

    def test_timestamp_keeps_literal_date_part(self):
        """A late-evening timestamp with a negative offset stays on its own day"""
        assert parse_local_date("2024-03-05T23:00:00-03:00") == date(2024, 3, 5)
        assert parse_local_date("2024-03-05T00:30:00+14:00") == date(2024, 3, 5)

    def test_space_separated_timestamp(self):
        assert parse_local_date("2024-03-05 10:15:00") == date(2024, 3, 5)

    def test_date_and_datetime_objects(self):
        assert parse_local_date(date(2024, 1, 31)) == date(2024, 1, 31)
        assert parse_local_date(datetime(2024, 1, 31, 22, 0)) == date(2024, 1, 31)

    @pytest.mark.parametrize("value", ["", "2024/03/05", "05-03", "2024-02-30", "abc-de-fg", None])
    def test_malformed_dates_rejected(self, value):
        with pytest.raises(ValidationError):
            parse_local_date(value)

    def test_optional_date(self):
        assert parse_optional_date(None) is None
        assert parse_optional_date("") is None
        assert parse_optional_date("2024-12-01") == date(2024, 12, 1)


class TestDaysUntil:
    """Test the sign convention of days_until"""

    def test_overdue_is_negative(self):
        assert days_until("2024-03-01", date(2024, 3, 6)) == -5

    def test_due_today_is_zero(self):
        assert days_until("2024-03-06", date(2024, 3, 6)) == 0

    def test_upcoming_is_positive(self):
        assert days_until("2024-03-10", date(2024, 3, 6)) == 4

    def test_across_year_boundary(self):
        assert days_until(date(2025, 1, 2), date(2024, 12, 30)) == 3

    def test_defaults_to_today(self):
        assert days_until(date.today()) == 0


class TestPeriods:
    """Test payment plan period arithmetic"""

    def test_weekly_and_biweekly(self):
        assert next_due_date(date(2024, 1, 1), PaymentPlan.WEEKLY) == date(2024, 1, 8)
        assert next_due_date(date(2024, 1, 1), PaymentPlan.BIWEEKLY) == date(2024, 1, 15)

    def test_monthly(self):
        assert next_due_date(date(2024, 1, 15), PaymentPlan.MONTHLY) == date(2024, 2, 15)

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_monthly_due_dates_keep_the_start_day(self):
        """A 31st start returns to the 31st after a short month"""
        start = date(2024, 1, 31)
        assert due_date_for(start, PaymentPlan.MONTHLY, 1) == date(2024, 2, 29)
        assert due_date_for(start, PaymentPlan.MONTHLY, 2) == date(2024, 3, 31)

    def test_weekly_due_dates(self):
        assert due_date_for(date(2024, 1, 1), PaymentPlan.WEEKLY, 3) == date(2024, 1, 22)

    def test_month_start(self):
        assert month_start(date(2024, 5, 17)) == date(2024, 5, 1)
