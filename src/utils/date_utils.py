"""Date utility functions for expiration and subscription period math."""

from datetime import date, datetime, timezone

from dateutil import parser
from dateutil.relativedelta import relativedelta

SERVICE_DATE_FORMAT = "%Y-%m-%d"


def format_service_date(value: date) -> str:
    """Format a date the way the screening service expects (yyyy-MM-dd)."""
    return value.strftime(SERVICE_DATE_FORMAT)


def add_days(value: date, days: int) -> date:
    """Return the date ``days`` calendar days after ``value``."""
    result: date = value + relativedelta(days=days)
    return result


def parse_datetime(value: str | datetime | date | None) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime) into an aware datetime.

    Naive values are taken to be UTC.

    Args:
        value: String, datetime, date or None.

    Returns:
        Timezone-aware datetime, or None when the value is empty or unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    else:
        try:
            result = parser.isoparse(value)
        except (ValueError, OverflowError):
            return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).days
