"""
Reading Store
=============

The durable, append-only record of every reading the station has sent.

WHAT IT DOES:
------------
1. Validates incoming payloads and assigns id + timestamp
2. Inserts each reading as one row in the `readings` table
3. Answers "what's the newest reading?", paged history and time range queries

PERSISTENCE:
-----------
Readings live in a SQL database through SQLAlchemy (SQLite by default).
An append is a single-row insert committed before append() returns; reads
are indexed queries on (timestamp, seq), so neither slows down as history
grows.

- Append a reading = committed before append() returns
- Restart server = readings are still in the database
- Database unreachable = StoreUnavailableError, nothing half-written

CONCURRENCY:
-----------
Every method is blocking. Call it from a worker thread (FastAPI's
run_in_threadpool) rather than on the event loop. Appends are serialized
by a lock so concurrent writers never trip over SQLite's single-writer
rule; reads don't take it.

ORDERING:
--------
Insertion order is NOT timestamp order (devices may send backdated samples),
so every query orders by timestamp, newest first. Equal timestamps keep the
most recently inserted first.
"""

import logging
import math
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from airwatch.database import Base, make_engine, make_session_factory
from airwatch.exceptions import StoreUnavailableError, ValidationError
from airwatch.models import ReadingPage, ReadingPayload, StoredReading
from airwatch.models.records import ReadingRecord, to_db_time
from airwatch.utils.validation import parse_positive_int, parse_timestamp

logger = logging.getLogger(__name__)

NEWEST_FIRST = (ReadingRecord.timestamp.desc(), ReadingRecord.seq.desc())


class ReadingStore:
    """
    Append-only reading collection backed by a SQL database.

    Pass database_url=None for a private in-memory database.
    """

    DEFAULT_PAGE = 1
    DEFAULT_LIMIT = 50

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url
        self.engine = make_engine(database_url)
        self._session_factory = make_session_factory(self.engine)
        self._write_lock = threading.Lock()
        self._schema_ready = False
        self._last_error: Optional[str] = None

        try:
            self._ensure_schema()
        except StoreUnavailableError:
            # keep serving; requests report 503 until the database comes back
            pass

    # =========================================================================
    # DATABASE
    # =========================================================================

    def _ensure_schema(self):
        if self._schema_ready:
            return
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            self._fail("Cannot open readings database", e)
        self._schema_ready = True
        logger.info(f"[STORE] Readings database ready ({self.engine.url.render_as_string(hide_password=True)})")

    def _fail(self, message: str, error: Exception):
        self._last_error = str(error)
        logger.error(f"[STORE] {message}: {error}")
        raise StoreUnavailableError(f"{message}: {error}") from error

    def _read(self, statement):
        """Run a SELECT and return the result rows as scalars."""
        self._ensure_schema()
        try:
            with self._session_factory() as session:
                return list(session.scalars(statement))
        except SQLAlchemyError as e:
            self._fail("Error reading readings database", e)

    # =========================================================================
    # WRITING
    # =========================================================================

    @staticmethod
    def _validate(payload: Any) -> ReadingPayload:
        if isinstance(payload, ReadingPayload):
            return payload
        if not isinstance(payload, dict):
            raise ValidationError("Reading payload must be a JSON object")

        try:
            return ReadingPayload.model_validate(payload)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
            raise ValidationError(f"Invalid reading: {', '.join(fields)}", fields=fields) from e

    def append(self, payload: Union[dict, ReadingPayload]) -> StoredReading:
        """
        Validate and persist one reading.

        Args:
            payload: Reading body as sent by the device

        Returns:
            The stored reading with its assigned id and timestamp

        Raises:
            ValidationError: A required field is missing or malformed
            StoreUnavailableError: The database could not be written
        """
        reading = self._validate(payload)

        data = reading.model_dump()
        data["id"] = str(uuid.uuid4())
        data["timestamp"] = reading.timestamp or datetime.now(timezone.utc)
        stored = StoredReading.model_validate(data)

        self._ensure_schema()
        with self._write_lock:
            try:
                with self._session_factory() as session, session.begin():
                    session.add(ReadingRecord.from_reading(stored))
            except SQLAlchemyError as e:
                self._fail(f"Failed to save reading {stored.id}", e)
        self._last_error = None

        logger.debug(f"[STORE] Saved reading {stored.id}")
        return stored

    # =========================================================================
    # READING
    # =========================================================================

    def latest(self) -> Optional[StoredReading]:
        """The reading with the greatest timestamp, or None if empty."""
        rows = self._read(select(ReadingRecord).order_by(*NEWEST_FIRST).limit(1))
        return rows[0].to_reading() if rows else None

    def query(self, page: Any = None, limit: Any = None) -> ReadingPage:
        """
        One page of readings, newest first.

        Args:
            page: 1-based page number (defaults to 1 if missing/non-numeric)
            limit: Page size (defaults to 50 if missing/non-numeric)
        """
        page = parse_positive_int(page, self.DEFAULT_PAGE)
        limit = parse_positive_int(limit, self.DEFAULT_LIMIT)

        total = self.count()
        rows = self._read(
            select(ReadingRecord)
            .order_by(*NEWEST_FIRST)
            .offset((page - 1) * limit)
            .limit(limit)
        )

        return ReadingPage(
            items=[r.to_reading() for r in rows],
            total=total,
            page=page,
            limit=limit,
            page_count=math.ceil(total / limit),
        )

    def query_range(self, start: Any, end: Any) -> list[StoredReading]:
        """
        All readings with start <= timestamp <= end, newest first.

        Raises:
            ValidationError: Either bound is missing or not a point in time
        """
        start_at = parse_timestamp(start)
        end_at = parse_timestamp(end)

        missing = [name for name, value in (("start", start_at), ("end", end_at)) if value is None]
        if missing:
            raise ValidationError("Start date and end date are required", fields=missing)

        rows = self._read(
            select(ReadingRecord)
            .where(ReadingRecord.timestamp.between(to_db_time(start_at), to_db_time(end_at)))
            .order_by(*NEWEST_FIRST)
        )
        return [r.to_reading() for r in rows]

    def count(self) -> int:
        return self._read(select(func.count()).select_from(ReadingRecord))[0]

    def is_available(self) -> bool:
        """True when the schema is in place and the last write succeeded."""
        return self._schema_ready and self._last_error is None

    def close(self):
        self.engine.dispose()
