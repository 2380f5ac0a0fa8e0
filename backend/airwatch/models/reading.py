"""
Reading Models
==============
Pydantic models for air quality readings.

A reading is one sample from the Arduino station: temperature, humidity,
VOC, particulate matter, rainfall and wind. The device posts JSON with
camelCase keys (vocIndex, windSpeed, ...), so every model here uses a
camelCase alias generator. Python code uses the snake_case attribute names.

MODELS:
- ReadingPayload: What the device sends us (validated on ingest)
- StoredReading: What we persist and hand back (payload + id + timestamp)
- ReadingPage: One page of readings from the store
- Response models: What the HTTP endpoints return
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# DEFAULTS
# =============================================================================

# Fixed site coordinate used when a device does not report a location
DEFAULT_LATITUDE = 6.791164
DEFAULT_LONGITUDE = 79.900497

# Push channel event name carrying one StoredReading
SENSOR_DATA_EVENT = "sensor-data"


class _CamelModel(BaseModel):
    # readings must be finite: NaN and Infinity serialize as null
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


# =============================================================================
# ENUMS
# =============================================================================

class WindDirection(str, Enum):
    """
    16-point compass label reported by the wind vane.

    UNKNOWN is used when the vane has no valid reading.
    """
    N = "N"
    NNE = "NNE"
    NE = "NE"
    ENE = "ENE"
    E = "E"
    ESE = "ESE"
    SE = "SE"
    SSE = "SSE"
    S = "S"
    SSW = "SSW"
    SW = "SW"
    WSW = "WSW"
    W = "W"
    WNW = "WNW"
    NW = "NW"
    NNW = "NNW"
    UNKNOWN = "Unknown"


# =============================================================================
# READING MODELS
# =============================================================================

class Location(_CamelModel):
    """Where the reading was taken. Falls back to the fixed site coordinate."""
    latitude: float = Field(default=DEFAULT_LATITUDE, ge=-90, le=90)
    longitude: float = Field(default=DEFAULT_LONGITUDE, ge=-180, le=180)


class ReadingPayload(_CamelModel):
    """
    Request body sent by the device.

    Every measurement is required. Location and timestamp are optional:
    location defaults to the site coordinate, timestamp to ingest time.

    Example Request:
        POST /api/readings
        {
            "temperature": 25.5, "humidity": 60, "vocIndex": 100,
            "vocRaw": 25000, "pm1": 5, "pm25": 10, "pm10": 15,
            "rainfall": 0, "windSpeed": 2.5, "windDirection": "N"
        }
    """
    temperature: float = Field(..., description="Air temperature in °C")
    humidity: float = Field(..., description="Relative humidity %")
    voc_index: float = Field(..., description="VOC index")
    voc_raw: float = Field(..., description="Raw VOC sensor signal")
    pm1: float = Field(..., ge=0, description="PM1.0 concentration µg/m³")
    pm25: float = Field(..., ge=0, description="PM2.5 concentration µg/m³")
    pm10: float = Field(..., ge=0, description="PM10 concentration µg/m³")
    rainfall: float = Field(..., description="Rainfall since last report")
    wind_speed: float = Field(..., description="Wind speed")
    wind_direction: WindDirection = Field(..., description="Compass label or 'Unknown'")
    location: Location = Field(default_factory=Location)
    timestamp: Optional[datetime] = Field(None, description="Sample time (defaults to ingest time)")

    @field_validator("wind_direction", mode="before")
    @classmethod
    def _normalize_wind_direction(cls, value):
        if isinstance(value, str):
            label = value.strip()
            if label.lower() == "unknown":
                return WindDirection.UNKNOWN
            return label.upper()
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class StoredReading(ReadingPayload):
    """
    A reading as persisted by the store.

    Immutable once created. `id` is None only for the placeholder reading
    served by /api/readings/latest while the store is still empty.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Unique identifier (UUID)")
    timestamp: datetime = Field(..., description="Sample time (UTC)")
    is_placeholder: bool = Field(default=False, description="True for the empty-store default")


def placeholder_reading() -> StoredReading:
    """
    Default reading returned when nothing has been stored yet.

    Keeps the dashboard renderable on a fresh install.
    """
    return StoredReading(
        temperature=25.0,
        humidity=60.0,
        voc_index=100,
        voc_raw=25000,
        pm1=5,
        pm25=10,
        pm10=15,
        rainfall=0.0,
        wind_speed=2.5,
        wind_direction=WindDirection.N,
        location=Location(),
        timestamp=datetime.now(timezone.utc),
        is_placeholder=True,
    )


def air_quality_category(pm25: float) -> str:
    """Air quality label for a PM2.5 concentration (µg/m³)."""
    if pm25 <= 12:
        return "Good"
    if pm25 <= 35.4:
        return "Moderate"
    if pm25 <= 55.4:
        return "Unhealthy for Sensitive Groups"
    if pm25 <= 150.4:
        return "Unhealthy"
    if pm25 <= 250.4:
        return "Very Unhealthy"
    return "Hazardous"


# =============================================================================
# QUERY RESULTS
# =============================================================================

class ReadingPage(BaseModel):
    """One page of readings, newest first."""
    items: list[StoredReading]
    total: int
    page: int
    limit: int
    page_count: int


# =============================================================================
# RESPONSE MODELS - What backend returns to clients
# =============================================================================

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ReadingListResponse(BaseModel):
    """
    Response for GET /api/readings.

    Shape: {"data": [...], "pagination": {"page", "limit", "total", "pages"}}
    """
    data: list[StoredReading]
    pagination: Pagination


class IngestResponse(BaseModel):
    """Returned to the device after a reading is stored."""
    success: bool = True
    message: str = "Data saved successfully"
    id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(..., description="'OK' when the process is serving")
    timestamp: datetime
    uptime: float = Field(..., description="Process uptime in seconds")
    store: str = Field(..., description="'Connected' or 'Disconnected'")
    readings: Optional[int] = Field(None, description="Number of stored readings (null if the store is down)")
    viewers: int = Field(..., description="Connected live viewers")
