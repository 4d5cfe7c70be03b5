"""Calendar month helpers shared by the store adapter, services, and analytics."""
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

# Lower bound for "all history" queries
BEGINNING_OF_TIME = datetime(1970, 1, 1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp. Returns None when the value is missing or
    cannot be parsed instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def month_key(moment: datetime) -> str:
    """'YYYY-MM' for the calendar month of moment."""
    return moment.strftime("%Y-%m")


def shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    start = datetime(year, month, 1)
    next_year, next_month = shift_month(year, month, 1)
    end = datetime(next_year, next_month, 1) - timedelta(microseconds=1)
    return start, end


def recent_months(count: int, today: Optional[datetime] = None) -> List[Tuple[str, datetime, datetime]]:
    """
    The last `count` calendar months ending with the current one, oldest first.
    Each entry is (month_key, start, end).
    """
    today = today or datetime.utcnow()
    months = []
    for offset in range(count - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -offset)
        start, end = month_bounds(year, month)
        months.append((month_key(start), start, end))
    return months


def to_naive_utc(moment: datetime) -> datetime:
    """Drop timezone info after converting to UTC so naive and aware values compare."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)
