"""
Session date strings.

The export header and the import matcher must produce byte-identical date
strings, so both go through format_timestamp(). The format follows the
browser's en-US toLocaleString() in local time ("1/1/2024, 12:00:00 PM")
so backups written by the browser extension merge instead of duplicating.
"""

from __future__ import annotations
import logging
import time
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

INVALID_DATE = "Invalid Date"

# Tried in order by parse_date_string()
_PARSE_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y, %H:%M:%S",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
)


def format_timestamp(timestamp_ms: int) -> str:
    """Locale-style date string for an epoch-millis timestamp."""
    try:
        dt = datetime.fromtimestamp(int(timestamp_ms) // 1000)
    except (OverflowError, OSError, ValueError, TypeError):
        return INVALID_DATE

    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt.month}/{dt.day}/{dt.year}, {hour}:{dt.minute:02d}:{dt.second:02d} {meridiem}"


def parse_date_string(text: str) -> Optional[int]:
    """
    Epoch millis for a header date string, or None if it isn't a date.

    Accepts what format_timestamp() produces plus a few hand-edited
    variants and ISO 8601.
    """
    text = text.strip()
    if not text:
        return None

    for fmt in _PARSE_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return round(dt.timestamp() * 1000)

    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable session date: {text!r}")
        return None
    return round(dt.timestamp() * 1000)


def now_ms() -> int:
    """Current time in epoch millis."""
    return time.time_ns() // 1_000_000
