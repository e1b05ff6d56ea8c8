"""
Timestamp helpers.

Every timestamp inside the agent is a timezone-aware UTC datetime. Records
arriving from other clients may carry ISO strings, epoch milliseconds
(the browser ``Date.now()`` format) or looser human-readable dates; all of
them go through ``parse_timestamp``.
"""

import logging
from datetime import datetime, timezone
from typing import Union

import dateparser

from memory_agent.errors import MalformedInput

logger = logging.getLogger(__name__)

# Numbers above this are taken as milliseconds since the epoch
_EPOCH_MILLIS_THRESHOLD = 10**11


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Coerce a timestamp from any supported representation to aware UTC.

    Args:
        value: datetime, epoch seconds/milliseconds, or a date string

    Returns:
        Timezone-aware UTC datetime

    Raises:
        MalformedInput: If the value cannot be interpreted as a point in time
    """
    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, bool):
        raise MalformedInput(f"Not a timestamp: {value!r}")

    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) >= _EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedInput(f"Timestamp out of range: {value!r}") from e

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise MalformedInput("Empty timestamp string")
        try:
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass

        parsed = dateparser.parse(
            text,
            settings={"TIMEZONE": "UTC", "RETURN_AS_TIMEZONE_AWARE": True},
        )
        if parsed is None:
            raise MalformedInput(f"Unparseable timestamp: {value!r}")
        logger.debug(f"Parsed loose timestamp '{text}' as {parsed.isoformat()}")
        return ensure_utc(parsed)

    raise MalformedInput(f"Unsupported timestamp type: {type(value).__name__}")
