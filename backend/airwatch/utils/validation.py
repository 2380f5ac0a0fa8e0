"""
Input Validation Utilities
===========================

Parsing helpers for query parameters and timestamps.

HTTP query strings arrive as text and devices are not always careful about
what they send, so these helpers accept loose input and either coerce it or
report that it is unusable.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

# fromisoformat before 3.11 only takes 3 or 6 fractional-second digits
_FRACTION = re.compile(r"\.(\d+)")


def parse_positive_int(value: Optional[Union[str, int]], default: int) -> int:
    """
    Parse a page/limit style parameter.

    Args:
        value: Raw value (e.g., "2", 2, "abc", None)
        default: Value to use when missing, non-numeric or below 1

    Returns:
        A positive integer
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number >= 1 else default


def parse_timestamp(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """
    Parse a point in time.

    Accepts datetime objects, ISO 8601 strings (with or without a trailing
    "Z", any number of fractional-second digits) and plain dates. Naive
    values are taken to be UTC.

    Args:
        value: Raw value (e.g., "2024-05-01T10:00:00Z", "2024-05-01")

    Returns:
        Timezone-aware datetime, or None if the value is missing or unparsable
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
