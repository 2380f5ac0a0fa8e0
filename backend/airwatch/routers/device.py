"""
Device Inbound API Router
=========================

The Arduino station wakes, samples its sensors and POSTs one JSON reading.
This router accepts those outbound POSTs at the path baked into the firmware.

Endpoints:
  POST /api/arduino    - Report one reading (same contract as POST /api/readings)
  POST /api/test-data  - Generate a random reading, as if the device had sent it
"""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from airwatch.exceptions import StoreUnavailableError
from airwatch.routers.readings import get_ingest_service, ingest_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["device"])


@router.post("/arduino")
async def device_report_reading(
    payload: Any = Body(...),
    service=Depends(get_ingest_service),
):
    """
    Arduino reports a reading.

    - Backend validates it, saves it, then pushes it to connected dashboards.
    - The device is only acknowledged once the reading is on disk.

    **Body (JSON)**
    - temperature, humidity, vocIndex, vocRaw, pm1, pm25, pm10, rainfall,
      windSpeed, windDirection (all required)
    - location {latitude, longitude}, timestamp (optional)
    """
    stored = await ingest_or_raise(service, payload)
    return {
        "success": True,
        "message": "Data saved successfully",
        "id": stored.id,
    }


@router.post("/test-data")
async def generate_test_data(service=Depends(get_ingest_service)):
    """
    Simulate the Arduino: generate a random reading and ingest it.

    Handy for checking the live dashboard without hardware.
    """
    try:
        stored = await service.ingest_simulated()
    except StoreUnavailableError as e:
        logger.error(f"[DEVICE] Error generating test data: {e}")
        raise HTTPException(status_code=503, detail="Failed to generate test data")

    logger.info(f"[DEVICE] Test data generated: {stored.id}")
    return {
        "success": True,
        "message": "Test data generated",
        "data": stored.model_dump(mode="json", by_alias=True),
    }
