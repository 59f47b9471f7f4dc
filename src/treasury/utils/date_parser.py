"""Date parsing utilities."""

from datetime import date, datetime, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, dayfirst: bool = False) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - ISO dates: "2024-01-15"
    - Absolute dates: "January 15, 2024", "15/01/2024" (with dayfirst), etc.
    - Relative dates: "today", "yesterday", "tomorrow"

    Args:
        date_str: Date string in various formats
        dayfirst: Read ambiguous numeric dates as day/month/year

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if isinstance(date_str, datetime):
        return date_str.date()
    if isinstance(date_str, date):
        return date_str

    date_str = str(date_str).strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    # dateutil reads "2024-01-05" as year-day-month when dayfirst is set
    try:
        return date.fromisoformat(date_str[:10])
    except ValueError:
        pass

    try:
        dt = date_parser.parse(date_str, dayfirst=dayfirst)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a specified period.

    Args:
        period: Period string (this-month, this-year, last-month, last-year)

    Returns:
        Tuple of (start_date, end_date) for the specified period

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return (today.replace(day=1), today)

    elif period == "this-year":
        return (today.replace(month=1, day=1), today)

    elif period == "last-month":
        # Last day of last month is the day before the first of this month
        end_date = today.replace(day=1) - timedelta(days=1)
        return (end_date.replace(day=1), end_date)

    elif period == "last-year":
        start_date = today.replace(month=1, day=1) - relativedelta(years=1)
        return (start_date, start_date.replace(month=12, day=31))

    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: this-month, this-year, last-month, last-year"
        )
