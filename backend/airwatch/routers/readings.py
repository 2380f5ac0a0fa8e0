"""
Readings API Router
===================

Endpoints for storing readings and reading them back.

HOW IT WORKS:
------------
1. The device (or a dashboard) sends an HTTP request
2. FastAPI routes it to the right function here
3. We call the ReadingStore / IngestService to do the work
4. Domain errors are turned into HTTP errors on the way out

ALL ENDPOINTS:
-------------
POST   /api/readings                  - Store a reading and push it live
GET    /api/readings?page=P&limit=L   - Paged history, newest first
GET    /api/readings/latest           - Newest reading (or a placeholder)
GET    /api/readings/range?start=S&end=E - Readings between two points in time
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from starlette.concurrency import run_in_threadpool

from airwatch.exceptions import StoreUnavailableError, ValidationError
from airwatch.models import (
    IngestResponse,
    Pagination,
    ReadingListResponse,
    StoredReading,
    placeholder_reading,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/readings", tags=["readings"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================
# The lifespan handler in main.py builds the services and hands them over here.

_store = None
_broadcaster = None
_ingest_service = None


def set_services(store, broadcaster, ingest_service):
    """Called when the app starts to give the routers their services."""
    global _store, _broadcaster, _ingest_service
    _store = store
    _broadcaster = broadcaster
    _ingest_service = ingest_service


def _require(service):
    if service is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return service


def get_reading_store():
    return _require(_store)


def get_broadcaster():
    return _require(_broadcaster)


def get_ingest_service():
    return _require(_ingest_service)


async def ingest_or_raise(service, payload: Any) -> StoredReading:
    """Run an ingest and translate domain errors into HTTP errors."""
    try:
        return await service.ingest(payload)
    except ValidationError as e:
        logger.warning(f"[INGEST] Rejected reading: {e}")
        raise HTTPException(status_code=400, detail={"error": str(e), "fields": e.fields})
    except StoreUnavailableError as e:
        logger.error(f"[INGEST] Error saving sensor data: {e}")
        raise HTTPException(status_code=503, detail="Failed to save sensor data")


async def query_or_raise(func, *args):
    """Run a blocking store query in the threadpool and map store errors to 503."""
    try:
        return await run_in_threadpool(func, *args)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail={"error": str(e), "fields": e.fields})
    except StoreUnavailableError as e:
        logger.error(f"[STORE] Query failed: {e}")
        raise HTTPException(status_code=503, detail="Failed to fetch sensor data")


# =============================================================================
# INGEST
# =============================================================================

@router.post("", response_model=IngestResponse)
async def create_reading(
    payload: Any = Body(...),
    service=Depends(get_ingest_service),
):
    """
    Store a new reading and push it to every connected dashboard.

    Send us every measurement: temperature, humidity, vocIndex, vocRaw,
    pm1, pm25, pm10, rainfall, windSpeed, windDirection.
    Optional: location {latitude, longitude} and timestamp.
    """
    stored = await ingest_or_raise(service, payload)
    return IngestResponse(id=stored.id)


# =============================================================================
# QUERIES
# =============================================================================

@router.get("", response_model=ReadingListResponse)
async def list_readings(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description="Page size (default 50)"),
    store=Depends(get_reading_store),
):
    """Get stored readings, newest first, one page at a time."""
    result = await query_or_raise(store.query, page, limit)
    return ReadingListResponse(
        data=result.items,
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.page_count,
        ),
    )


@router.get("/latest", response_model=StoredReading)
async def get_latest_reading(store=Depends(get_reading_store)):
    """
    Get the newest reading.

    If nothing has been stored yet, returns a placeholder with default
    values and isPlaceholder=true so the dashboard still has something to
    draw.
    """
    return await query_or_raise(store.latest) or placeholder_reading()


@router.get("/range", response_model=list[StoredReading])
async def get_readings_in_range(
    start: Optional[str] = Query(None, description="Range start (ISO 8601)"),
    end: Optional[str] = Query(None, description="Range end (ISO 8601)"),
    start_date: Optional[str] = Query(None, alias="startDate", include_in_schema=False),
    end_date: Optional[str] = Query(None, alias="endDate", include_in_schema=False),
    store=Depends(get_reading_store),
):
    """Get every reading between start and end (inclusive), newest first."""
    return await query_or_raise(store.query_range, start or start_date, end or end_date)
