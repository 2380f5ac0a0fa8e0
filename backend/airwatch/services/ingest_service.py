"""
Ingest Service
==============

The path a device reading takes from HTTP body to every open dashboard:

    payload --> ReadingStore.append() --> LiveBroadcaster.publish()

The device only gets its acknowledgement once append() has written the
reading to disk, and only stored readings are ever broadcast. If
validation or the write fails, the error propagates and nothing is
published.
"""

import logging
import random
from typing import Union

from starlette.concurrency import run_in_threadpool

from airwatch.models import ReadingPayload, StoredReading, WindDirection
from airwatch.services.broadcaster import LiveBroadcaster
from airwatch.services.reading_store import ReadingStore

logger = logging.getLogger(__name__)


class IngestService:
    """Persists device readings, then pushes them to live viewers."""

    def __init__(self, store: ReadingStore, broadcaster: LiveBroadcaster):
        self.store = store
        self.broadcaster = broadcaster

    async def ingest(self, payload: Union[dict, ReadingPayload]) -> StoredReading:
        """
        Store one reading and broadcast it.

        The file write happens in a worker thread so concurrent ingests
        contend on the store lock instead of the event loop.

        Raises:
            ValidationError: Payload rejected, nothing stored
            StoreUnavailableError: Write failed, nothing stored
        """
        stored = await run_in_threadpool(self.store.append, payload)
        viewers = self.broadcaster.publish(stored)

        logger.info(
            f"[INGEST] Reading {stored.id} saved "
            f"(temp={stored.temperature}°C pm25={stored.pm25}) -> {viewers} viewer(s)"
        )
        return stored

    async def ingest_simulated(self) -> StoredReading:
        """Generate a plausible random reading and ingest it (for demos)."""
        return await self.ingest(simulated_payload())


def simulated_payload() -> dict:
    """Random reading in the ranges the station normally reports."""
    compass = [WindDirection.N, WindDirection.NE, WindDirection.E, WindDirection.SE,
               WindDirection.S, WindDirection.SW, WindDirection.W, WindDirection.NW]
    return {
        "temperature": round(25.5 + random.random() * 10, 2),
        "humidity": round(55.0 + random.random() * 20, 2),
        "vocIndex": round(100 + random.random() * 100, 1),
        "vocRaw": round(25000 + random.random() * 5000),
        "pm1": random.randint(0, 19),
        "pm25": random.randint(0, 34),
        "pm10": random.randint(0, 49),
        "rainfall": round(random.random() * 2, 2),
        "windSpeed": round(random.random() * 10, 2),
        "windDirection": random.choice(compass).value,
    }
