"""
Helpers for 'YYYY-MM' month strings.
"""

import re
from datetime import date
from typing import Tuple

MONTH_PATTERN = re.compile(r'^(\d{4})-(0[1-9]|1[0-2])$')


def validate_month(year_month: str) -> Tuple[int, int]:
    """
    Parse a 'YYYY-MM' string.

    Returns:
        Tuple of (year, month)

    Raises:
        ValueError: If the string is not a valid 'YYYY-MM' month
    """
    match = MONTH_PATTERN.match(year_month or '')
    if not match:
        raise ValueError(f"Invalid month '{year_month}', expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def month_window(year_month: str) -> Tuple[date, date]:
    """First day of the month and first day of the following month (exclusive bound)."""
    year, month = validate_month(year_month)
    start = date(year, month, 1)
    if month == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return start, end


def representative_date(year_month: str) -> date:
    """The 15th of the month, used as the stable crawl date of everything found for it."""
    year, month = validate_month(year_month)
    return date(year, month, 15)
