"""
Air Quality Live Dashboard - Backend API
========================================
FastAPI application that stores readings from the Arduino air quality
station and pushes them live to every open dashboard.

ARCHITECTURE:

    [Arduino] --POST /api/arduino--> [This Backend] --> readings.db (SQLAlchemy)
                                            |
                                            | WebSocket "sensor-data"
                                            v
                                [Web / Mobile Dashboards]
                                            |
                                            | GET /api/readings/latest
                                            | (every 30s, backup for pushes)
                                            v
                                      [This Backend]

HOW TO RUN:
    # Install dependencies
    pip install -e .

    # Copy environment config
    cp env.example.txt .env
    # Edit .env with your settings

    # Run the server
    uvicorn airwatch.main:app --reload --port 8000

    # Watch live readings from a terminal (in another terminal)
    python -m airwatch.client --base-url http://localhost:8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
    - OpenAPI JSON: http://localhost:8000/openapi.json
"""

import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from airwatch import __version__
from airwatch.exceptions import StoreUnavailableError
from airwatch.models import HealthResponse
from airwatch.routers import device_router, live_router, readings_router, set_services
from airwatch.routers.readings import get_broadcaster, get_reading_store
from airwatch.services import IngestService, LiveBroadcaster, ReadingStore


# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL of the readings database
            (default: SQLite file backend/readings.db)
        FRONTEND_URL: URL of the dashboard frontend for CORS
        PUSH_QUEUE_SIZE: Max readings queued per live viewer (default: 100)
    """

    # Where readings are persisted
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{Path(__file__).parent.parent / 'readings.db'}"
    )

    # A viewer that falls this far behind starts missing pushes
    PUSH_QUEUE_SIZE = int(os.getenv("PUSH_QUEUE_SIZE", "100"))

    # Frontend URL for CORS
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Allowed CORS origins
    CORS_ORIGINS = [
        FRONTEND_URL,
        "http://localhost:5173",    # Vite dev server
        "http://localhost:3000",    # Create React App
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]


_started_at = time.monotonic()


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Open the reading store (creates the readings table if needed)
        2. Create the live broadcaster and ingest service
        3. Inject them into routers

    SHUTDOWN:
        1. Disconnect live viewers
        2. Detach services from routers
        3. Release database connections
    """
    global _started_at

    # ========== STARTUP ==========
    print("=" * 60)
    print("AIR QUALITY DASHBOARD - Starting Backend")
    print("=" * 60)

    store = ReadingStore(Config.DATABASE_URL)
    broadcaster = LiveBroadcaster(queue_size=Config.PUSH_QUEUE_SIZE)
    ingest_service = IngestService(store, broadcaster)

    set_services(store, broadcaster, ingest_service)
    _started_at = time.monotonic()

    print("Services initialized")
    print(f"   Readings database: {store.engine.url.render_as_string(hide_password=True)}")
    print(f"   Store: {'Connected' if store.is_available() else 'UNAVAILABLE'}")
    print(f"   Push queue size: {Config.PUSH_QUEUE_SIZE}")
    print(f"   CORS origins: {len(Config.CORS_ORIGINS)} configured")
    print()
    print("API Documentation: http://localhost:8000/docs")
    print("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    print()
    print("Shutting down...")
    try:
        await broadcaster.close()
    finally:
        set_services(None, None, None)
        store.close()
    print("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Air Quality Monitoring API",
    description="""
## Overview

Backend API for the Arduino air quality station. Stores every reading and
pushes it live to connected dashboards.

## How It Works

1. **Device posts** - The station POSTs a reading to `/api/arduino`
2. **Stored first** - The reading is validated and written to disk
3. **Pushed live** - Every open WebSocket on `/ws/readings` gets a `sensor-data` event
4. **Polled as backup** - Dashboards also poll `/api/readings/latest` every 30 seconds

## Reading Fields

| Field | Unit |
|-------|------|
| temperature | °C |
| humidity | % |
| vocIndex, vocRaw | index / raw signal |
| pm1, pm25, pm10 | µg/m³ |
| rainfall | mm |
| windSpeed, windDirection | m/s, compass label |
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

# Store / query readings
app.include_router(readings_router)

# Device ingest and simulator
app.include_router(device_router)

# Live push channel
app.include_router(live_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/",
    summary="API Information",
    description="Get basic API information and available endpoints."
)
async def root():
    """Root endpoint with API overview."""
    return {
        "name": "Air Quality Monitoring API",
        "version": __version__,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
        "endpoints": {
            "ingest": "POST /api/readings",
            "arduino": "POST /api/arduino",
            "test_data": "POST /api/test-data",
            "latest": "GET /api/readings/latest",
            "history": "GET /api/readings?page=1&limit=50",
            "range": "GET /api/readings/range?start=...&end=...",
            "live": "WS /ws/readings",
            "health": "GET /health"
        }
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the backend is running and the store is writable."
)
@app.get("/api/health", response_model=HealthResponse, include_in_schema=False)
async def health(
    store=Depends(get_reading_store),
    broadcaster=Depends(get_broadcaster),
):
    """Health check endpoint."""
    try:
        readings = await run_in_threadpool(store.count)
    except StoreUnavailableError:
        readings = None

    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - _started_at, 3),
        store="Connected" if store.is_available() else "Disconnected",
        readings=readings,
        viewers=broadcaster.session_count,
    )
