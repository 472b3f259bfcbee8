"""
Provider timestamp utilities

Stirr guide entries carry start/stop as a bare 14-digit UTC value
(``YYYYMMDDHHMMSS``, e.g. ``20210422030000``) with no offset. XMLTV output
uses the same digits followed by an explicit ``+0000`` offset.
"""
from datetime import datetime, timezone


STIRR_TIME_FORMAT = "%Y%m%d%H%M%S"


class TimestampFormatError(ValueError):
    """Raised when a provider timestamp is invalid"""
    pass


def parse_stirr_time(value: str) -> datetime:
    """
    Parse a provider timestamp into a timezone-aware UTC datetime

    Args:
        value: 14-digit timestamp like '20210422030000'

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TimestampFormatError: If the value is not a 14-digit timestamp
    """
    if not isinstance(value, str):
        raise TimestampFormatError(f"Timestamp must be a string, got {type(value).__name__}")

    stripped = value.strip()
    if len(stripped) != 14 or not stripped.isdigit():
        raise TimestampFormatError(f"Invalid provider timestamp: '{value}'")

    try:
        parsed = datetime.strptime(stripped, STIRR_TIME_FORMAT)
    except ValueError as e:
        raise TimestampFormatError(f"Invalid provider timestamp: '{value}'") from e

    return parsed.replace(tzinfo=timezone.utc)


def format_stirr_time(value: datetime) -> str:
    """Format a datetime back into the provider's 14-digit UTC layout."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(STIRR_TIME_FORMAT)


def format_xmltv_time(value: datetime) -> str:
    """Format a datetime as an XMLTV time with explicit UTC offset."""
    return f"{format_stirr_time(value)} +0000"
