"""
Utility modules for the air quality backend.
"""

from airwatch.utils.validation import (
    parse_positive_int,
    parse_timestamp,
)

__all__ = [
    "parse_positive_int",
    "parse_timestamp",
]
