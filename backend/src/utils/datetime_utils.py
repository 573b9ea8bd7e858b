"""
Datetime utilities for consistent timezone handling across the application.

This module provides utilities to ensure all datetime operations use timezone-aware
datetimes consistently. All business times are in India Standard Time (UTC+05:30).
"""

import logging
from datetime import datetime, timezone, timedelta, date, time
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# India Standard Time constant (UTC+05:30)
IST_TZ = timezone(timedelta(hours=5, minutes=30))


def ist_now() -> datetime:
    """
    Get current business datetime (UTC+05:30).

    Returns:
        Current datetime with IST timezone
    """
    return datetime.now(IST_TZ)


def ensure_ist(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware with IST timezone.

    Naive values are treated as IST wall-clock time. This is also how values
    read back from SQLite (which drops tzinfo) are restored.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in IST, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=IST_TZ)
    return dt.astimezone(IST_TZ)


def parse_datetime_to_ist(v: str | datetime) -> datetime:
    """
    Parse datetime from ISO string or datetime object, ensuring IST timezone.

    Handles:
    - ISO format with offset (e.g., "2024-01-10T10:00:00+05:30")
    - ISO format with Z (UTC) (e.g., "2024-01-10T04:30:00Z")
    - ISO format without offset (assumed IST)

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(v, str):
        try:
            parsed = datetime.fromisoformat(v.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise ValueError(f"Invalid datetime string format: {v}") from e
        return ensure_ist(parsed)  # type: ignore[return-value]

    result = ensure_ist(v)
    if result is None:
        raise ValueError("Cannot parse None datetime")
    return result


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    normalized = date_str.strip().replace('/', '-')
    parts = normalized.split('-')
    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    normalized = f"{parts[0].zfill(4)}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"
    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the half-open [start, end) IST interval covering a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=IST_TZ)
    return start, start + timedelta(days=1)


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for user-facing display in IST.

    Example: "Wed, 10 Jan 2024 10:00 AM"
    """
    local_datetime = ensure_ist(dt)
    assert local_datetime is not None
    return local_datetime.strftime('%a, %d %b %Y %I:%M %p')


def datetime_validator(field_name: str = 'start_time'):
    """
    Create a reusable Pydantic validator for datetime fields.

    Usage example:
        ```python
        class MyModel(BaseModel):
            start_time: datetime

            @model_validator(mode='before')
            @classmethod
            def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
                return datetime_validator('start_time')(cls, values)
        ```

    String values are parsed to IST; parsing errors are left for Pydantic to report.
    """
    def validator(cls: Any, values: Dict[str, Any]) -> Dict[str, Any]:  # pyright: ignore[reportUnknownParameterType, reportMissingParameterType]
        if isinstance(values, dict) and values.get(field_name):
            raw = values[field_name]
            if isinstance(raw, (str, datetime)):
                try:
                    values[field_name] = parse_datetime_to_ist(raw)
                except ValueError as e:
                    logger.debug(
                        f"Failed to parse datetime for field '{field_name}': "
                        f"{raw}, error: {e}. Pydantic will handle validation."
                    )
        return values

    return validator
