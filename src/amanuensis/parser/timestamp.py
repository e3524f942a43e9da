"""Log line timestamps: ``M/D/YY H:MM:SSa <message>`` (12-hour clock)."""

from __future__ import annotations

import re
from datetime import datetime

from amanuensis.core.constants import DATE_FORMAT, TIMESTAMP_CENTURY

TIMESTAMP_PATTERN = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2}) (\d{1,2}):(\d{2}):(\d{2})([ap]) (.*)$",
    re.DOTALL,
)


def parse_timestamp(line: str) -> tuple[datetime, str] | None:
    """Split a log line into its timestamp and message.

    Args:
        line: A decoded log line.

    Returns:
        ``(timestamp, message)``, or None if the line has no valid timestamp.
    """
    match = TIMESTAMP_PATTERN.match(line)
    if match is None:
        return None

    month, day, year, hour, minute, second = (int(part) for part in match.groups()[:6])
    meridiem = match.group(7)
    if not 1 <= hour <= 12:
        return None
    if meridiem == "a":
        hour = 0 if hour == 12 else hour
    elif hour != 12:
        hour += 12

    try:
        stamp = datetime(TIMESTAMP_CENTURY + year, month, day, hour, minute, second)
    except ValueError:
        return None
    return stamp, match.group(8)


def format_timestamp(stamp: datetime) -> str:
    """Render a timestamp in the storage format."""
    return stamp.strftime(DATE_FORMAT)


__all__ = ["parse_timestamp", "format_timestamp", "TIMESTAMP_PATTERN"]
