"""Date parsing utilities."""

from datetime import date
from dateutil import parser as date_parser


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports ISO dates ("2024-01-15") and day-first dotted dates as written
    in Estonian bank exports ("15.01.2024").

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip()

    # Dotted dates are always day first; ISO dates are unambiguous either way
    dayfirst = "." in date_str
    try:
        return date_parser.parse(date_str, dayfirst=dayfirst).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def year_of(value: date | None, default: int | None = None) -> int:
    """Return the year of a date, falling back to default or the current year."""
    if value is not None:
        return value.year
    if default is not None:
        return default
    return date.today().year
