import asyncio
import json

import pytest

from airwatch.exceptions import StoreUnavailableError, ValidationError
from airwatch.services import IngestService, LiveBroadcaster, ReadingStore
from airwatch.services.ingest_service import simulated_payload


@pytest.fixture
def service():
    return IngestService(ReadingStore(), LiveBroadcaster())


def _watch(broadcaster: LiveBroadcaster) -> list[dict]:
    pushed: list[dict] = []

    async def send(message: str) -> None:
        pushed.append(json.loads(message))

    broadcaster.connect(send)
    return pushed


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_ingest_stores_then_broadcasts(service, make_payload) -> None:
    pushed = _watch(service.broadcaster)

    stored = await service.ingest(make_payload())
    await _settle()

    assert service.store.latest() == stored
    assert len(pushed) == 1
    assert pushed[0]["event"] == "sensor-data"
    assert pushed[0]["data"]["id"] == stored.id
    await service.broadcaster.close()


@pytest.mark.asyncio
async def test_rejected_payload_is_not_broadcast(service, make_payload) -> None:
    pushed = _watch(service.broadcaster)
    payload = make_payload()
    del payload["humidity"]

    with pytest.raises(ValidationError):
        await service.ingest(payload)
    await _settle()

    assert pushed == []
    assert service.store.count() == 0
    await service.broadcaster.close()


@pytest.mark.asyncio
async def test_failed_write_is_not_broadcast(tmp_path, make_payload) -> None:
    broadcaster = LiveBroadcaster()
    pushed = _watch(broadcaster)
    service = IngestService(ReadingStore(f"sqlite:///{tmp_path / 'gone' / 'readings.db'}"), broadcaster)

    with pytest.raises(StoreUnavailableError):
        await service.ingest(make_payload())
    await _settle()

    assert pushed == []
    await broadcaster.close()


@pytest.mark.asyncio
async def test_simulated_reading_is_stored(service) -> None:
    stored = await service.ingest_simulated()

    assert service.store.count() == 1
    assert 0 <= stored.pm25 < 35


def test_simulated_payload_has_every_measurement() -> None:
    payload = simulated_payload()

    for key in ("temperature", "humidity", "vocIndex", "vocRaw", "pm1", "pm25", "pm10",
                "rainfall", "windSpeed", "windDirection"):
        assert key in payload
