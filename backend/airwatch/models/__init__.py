"""
Models Package
==============

Reading models and the response shapes the API returns.
Import from here instead of the individual files.

Example:
    from airwatch.models import ReadingPayload, StoredReading
"""

from .reading import (
    # Reading data
    WindDirection,
    Location,
    ReadingPayload,
    StoredReading,
    ReadingPage,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    SENSOR_DATA_EVENT,
    placeholder_reading,
    air_quality_category,

    # What we send back to clients
    Pagination,
    ReadingListResponse,
    IngestResponse,
    HealthResponse,
)

__all__ = [
    "WindDirection",
    "Location",
    "ReadingPayload",
    "StoredReading",
    "ReadingPage",
    "DEFAULT_LATITUDE",
    "DEFAULT_LONGITUDE",
    "SENSOR_DATA_EVENT",
    "placeholder_reading",
    "air_quality_category",
    "Pagination",
    "ReadingListResponse",
    "IngestResponse",
    "HealthResponse",
]
