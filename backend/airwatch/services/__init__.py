"""
Services Package
================

These are the "workers" that do the actual work.

- ReadingStore: Keeps every reading on disk and answers queries
- LiveBroadcaster: Pushes new readings to connected dashboards
- IngestService: Store first, then broadcast
"""

from .reading_store import ReadingStore
from .broadcaster import LiveBroadcaster
from .ingest_service import IngestService

__all__ = [
    "ReadingStore",
    "LiveBroadcaster",
    "IngestService",
]
