"""Period tokens used by dues assessments.

A period is an opaque token such as "2025", "2025-09", "2024-Q4" or
"2025-09-15". It only has to be parseable as a date prefix; the token is kept
verbatim (normalized) on each assigned due and forms part of its idempotency key.
"""
import calendar
import re
from datetime import date
from typing import NamedTuple

from clubdues.core.errors import ValidationError

_YEAR_RE = re.compile(r"^(\d{4})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_QUARTER_RE = re.compile(r"^(\d{4})-[Qq]([1-4])$")
_DAY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class Period(NamedTuple):
    token: str
    start: date
    end: date


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def parse_period(period: str) -> Period:
    """Parse a period token into its normalized form and date range.

    Raises ValidationError (field "period") for anything that is not a
    year, month, quarter or single day.
    """
    if period is None or not str(period).strip():
        raise ValidationError("period", "period is required")
    token = str(period).strip()

    try:
        match = _YEAR_RE.match(token)
        if match:
            year = int(match.group(1))
            return Period(token, date(year, 1, 1), date(year, 12, 31))

        match = _MONTH_RE.match(token)
        if match:
            year, month = int(match.group(1)), int(match.group(2))
            return Period(token, date(year, month, 1), _month_end(year, month))

        match = _QUARTER_RE.match(token)
        if match:
            year, quarter = int(match.group(1)), int(match.group(2))
            first_month = (quarter - 1) * 3 + 1
            return Period(
                f"{year}-Q{quarter}",
                date(year, first_month, 1),
                _month_end(year, first_month + 2),
            )

        match = _DAY_RE.match(token)
        if match:
            day = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            return Period(token, day, day)
    except ValueError:
        # Out-of-range month or day
        raise ValidationError("period", f"Invalid period '{token}'")

    raise ValidationError(
        "period",
        f"Period must look like YYYY, YYYY-MM, YYYY-Qn or YYYY-MM-DD (got '{token}')",
    )
