"""Database table for stored readings."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from airwatch.database import Base
from airwatch.models.reading import Location, StoredReading, WindDirection


class ReadingRecord(Base):
    """
    One row per stored reading.

    `seq` is the insertion order and breaks timestamp ties (newest insert
    first). Timestamps are stored as naive UTC.
    """

    __tablename__ = "readings"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    voc_index: Mapped[float] = mapped_column(Float, nullable=False)
    voc_raw: Mapped[float] = mapped_column(Float, nullable=False)
    pm1: Mapped[float] = mapped_column(Float, nullable=False)
    pm25: Mapped[float] = mapped_column(Float, nullable=False)
    pm10: Mapped[float] = mapped_column(Float, nullable=False)
    rainfall: Mapped[float] = mapped_column(Float, nullable=False)
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False)
    wind_direction: Mapped[str] = mapped_column(String(8), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (Index("ix_readings_timestamp_seq", "timestamp", "seq"),)

    @classmethod
    def from_reading(cls, reading: StoredReading) -> "ReadingRecord":
        return cls(
            id=reading.id,
            timestamp=to_db_time(reading.timestamp),
            temperature=reading.temperature,
            humidity=reading.humidity,
            voc_index=reading.voc_index,
            voc_raw=reading.voc_raw,
            pm1=reading.pm1,
            pm25=reading.pm25,
            pm10=reading.pm10,
            rainfall=reading.rainfall,
            wind_speed=reading.wind_speed,
            wind_direction=reading.wind_direction.value,
            latitude=reading.location.latitude,
            longitude=reading.location.longitude,
        )

    def to_reading(self) -> StoredReading:
        return StoredReading(
            id=self.id,
            timestamp=self.timestamp.replace(tzinfo=timezone.utc),
            temperature=self.temperature,
            humidity=self.humidity,
            voc_index=self.voc_index,
            voc_raw=self.voc_raw,
            pm1=self.pm1,
            pm25=self.pm25,
            pm10=self.pm10,
            rainfall=self.rainfall,
            wind_speed=self.wind_speed,
            wind_direction=WindDirection(self.wind_direction),
            location=Location(latitude=self.latitude, longitude=self.longitude),
        )


def to_db_time(value: datetime) -> datetime:
    """Aware datetime -> naive UTC, the form the timestamp column holds."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
