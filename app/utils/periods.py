"""
Office Nexus Ledger - Tax Period Helpers

Monthly periods (YYYY-MM), quarters (Q1..Q4) and statutory due dates.
"""

import calendar
import re
from datetime import date
from typing import Tuple

from app.utils.error_handling import InvalidTaxPeriodException

_PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

QUARTERS = ("Q1", "Q2", "Q3", "Q4")

# Quarter -> (first month, last month)
_QUARTER_MONTHS = {
    "Q1": (1, 3),
    "Q2": (4, 6),
    "Q3": (7, 9),
    "Q4": (10, 12),
}


def validate_period(period: str) -> str:
    if not isinstance(period, str) or not _PERIOD_RE.match(period):
        raise InvalidTaxPeriodException(str(period), "YYYY-MM")
    return period


def month_period(period: str) -> Tuple[date, date]:
    """'2026-03' -> (2026-03-01, 2026-03-31)."""
    match = _PERIOD_RE.match(validate_period(period))
    year, month = int(match.group(1)), int(match.group(2))
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def period_of(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def validate_quarter(quarter: str) -> str:
    normalized = str(quarter).upper()
    if normalized not in _QUARTER_MONTHS:
        raise InvalidTaxPeriodException(str(quarter), "one of Q1, Q2, Q3, Q4")
    return normalized


def quarter_of(day: date) -> str:
    return f"Q{(day.month - 1) // 3 + 1}"


def quarter_range(quarter: str, year: int) -> Tuple[date, date]:
    first_month, last_month = _QUARTER_MONTHS[validate_quarter(quarter)]
    return date(year, first_month, 1), date(year, last_month, calendar.monthrange(year, last_month)[1])


def quarter_due_date(quarter: str, year: int) -> date:
    """QIT is due on the last day of the quarter: Mar 31, Jun 30, Sep 30, Dec 31."""
    return quarter_range(quarter, year)[1]


def monthly_filing_due_date(period_end: date) -> date:
    """VAT and PAYE returns are due on the 15th of the following month."""
    if period_end.month == 12:
        return date(period_end.year + 1, 1, 15)
    return date(period_end.year, period_end.month + 1, 15)


def annual_filing_due_date(year: int) -> date:
    """CIT for a year is due on 31 March of the next year."""
    return date(year + 1, 3, 31)
