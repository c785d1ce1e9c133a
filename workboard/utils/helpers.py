"""Shared request-parsing helpers for board blueprints and services.

parse_date:   returns None on empty input, raises ValueError on bad input
parse_datetime: aware timestamps (resolvedAt)
parse_int:    optional integer ids from JSON bodies
pick:         first present key among camelCase / snake_case aliases
"""
import logging
from datetime import date, datetime, timezone

logger = logging.getLogger(__name__)

_MISSING = object()

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def pick(data, *keys, default=None):
    """Return the value of the first key present in ``data``.

    Board clients send either ``stageId`` or ``stage_id``; presence matters
    more than truthiness, so an explicit ``null`` is returned as None
    rather than falling through to the next alias.
    """
    for key in keys:
        value = data.get(key, _MISSING)
        if value is not _MISSING:
            return value
    return default


def parse_date(value):
    """Parse a date string to a date object.

    Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())

    Returns None for empty input; raises ValueError for anything unparseable
    so the caller can answer 400 instead of silently dropping the field.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        raise ValueError(f"Invalid date: {value!r}")


def parse_datetime(value):
    """Parse an ISO timestamp to an aware datetime; naive input is taken as UTC.

    A bare date means midnight UTC. Empty input returns None.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        raise ValueError(f"Invalid datetime: {value!r}")
    else:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid datetime: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_int(value):
    """Parse an optional integer id; empty string and None both mean None.

    Fractional numbers and values outside the ``Integer`` column range
    raise ValueError rather than being truncated or reaching the driver.
    """
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Invalid integer: {value!r}")
    try:
        result = int(value)
    except (ValueError, TypeError, OverflowError):
        raise ValueError(f"Invalid integer: {value!r}")
    if not in_id_range(result):
        raise ValueError(f"Integer out of range: {value!r}")
    return result


def in_id_range(value):
    """True when ``value`` fits an ``Integer`` column (signed 32-bit on PostgreSQL)."""
    return INT_MIN <= value <= INT_MAX


def parse_float(value):
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid number: {value!r}")
    try:
        return float(value)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid number: {value!r}")
