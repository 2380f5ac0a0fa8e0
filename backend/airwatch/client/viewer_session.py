"""
Viewer Session

Keeps one dashboard's current reading in sync with the backend, using two
independent sources that both feed the reconciler:

1. Push: a WebSocket to /ws/readings that receives "sensor-data" events.
   Reconnects automatically if the connection is lost.
2. Poll: GET /api/readings/latest on a fixed timer (default 30s). Runs
   whether or not the push channel is up, and is what repairs any pushes
   missed while disconnected.

On every (re)connect the session immediately pulls once, so a fresh
dashboard doesn't sit empty until the next push or timer tick.

Usage:
    async with ViewerSession("http://localhost:8000", on_update=render) as session:
        ...
        session.view.reading   # what to draw
"""

import asyncio
import contextlib
import json
import logging
import os
from enum import Enum
from typing import Callable, Optional

import httpx
import websockets
from websockets.exceptions import ConnectionClosed
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from airwatch.client.reconciler import CurrentView
from airwatch.models import SENSOR_DATA_EVENT, StoredReading

load_dotenv()

logger = logging.getLogger(__name__)


class ClientConfig:
    """
    Viewer configuration loaded from environment variables.

    Environment Variables:
        API_BASE_URL: Backend base URL (default: http://localhost:8000)
        VIEWER_POLL_INTERVAL: Seconds between backup polls (default: 30)
        VIEWER_RECONNECT_DELAY: Seconds to wait before reconnecting (default: 5)
        VIEWER_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 10)
    """
    API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
    POLL_INTERVAL = float(os.getenv("VIEWER_POLL_INTERVAL", "30"))
    RECONNECT_DELAY = float(os.getenv("VIEWER_RECONNECT_DELAY", "5"))
    REQUEST_TIMEOUT = float(os.getenv("VIEWER_REQUEST_TIMEOUT", "10"))


class ConnectionState(str, Enum):
    """Push channel state. A session starts DISCONNECTED."""
    DISCONNECTED = "Disconnected"
    CONNECTED = "Connected"


class ViewerSession:
    """
    One dashboard's live subscription.

    Owns its CurrentView; push and poll both go through apply(). Everything
    runs on one event loop, so the two sources never need a lock.
    """

    LATEST_PATH = "/api/readings/latest"
    LIVE_PATH = "/ws/readings"
    FETCH_ERROR = "Failed to fetch sensor data. Make sure the backend is running."

    def __init__(
        self,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        reconnect_delay: Optional[float] = None,
        on_update: Optional[Callable[[StoredReading], None]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        request_timeout: Optional[float] = None,
    ):
        """
        Args:
            base_url: Backend URL, e.g. "http://localhost:8000"
            poll_interval: Seconds between backup polls
            reconnect_delay: Seconds between push reconnect attempts
            on_update: Called with the new reading whenever the view changes
            http_client: Client to poll with (one is created and owned if omitted)
            request_timeout: Timeout for the owned HTTP client
        """
        self.base_url = (base_url or ClientConfig.API_BASE_URL).rstrip("/")
        self.poll_interval = poll_interval or ClientConfig.POLL_INTERVAL
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None else ClientConfig.RECONNECT_DELAY
        )
        self.on_update = on_update

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=request_timeout or ClientConfig.REQUEST_TIMEOUT
        )

        self.view = CurrentView()
        self.state = ConnectionState.DISCONNECTED
        self.last_error: Optional[str] = None

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._push_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    # =========================================================================
    # URLS
    # =========================================================================

    @property
    def latest_url(self) -> str:
        return f"{self.base_url}{self.LATEST_PATH}"

    @property
    def live_url(self) -> str:
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url[len("https://"):] + self.LIVE_PATH
        if self.base_url.startswith("http://"):
            return "ws://" + self.base_url[len("http://"):] + self.LIVE_PATH
        return self.base_url + self.LIVE_PATH

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self):
        """Start the poll timer and the push listener."""
        if self._push_task is not None:
            return

        self._stop_event = asyncio.Event()

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.poll_once,
            trigger=IntervalTrigger(seconds=self.poll_interval),
            id="poll_latest",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"[VIEWER] Poll timer started (every {self.poll_interval}s)")

        self._push_task = asyncio.create_task(self._listen())

    async def close(self):
        """
        Stop the timer and the push listener, and close the owned HTTP client.

        The current view is kept. A closed session cannot be restarted if it
        owned its HTTP client.
        """
        if self._stop_event is not None:
            self._stop_event.set()

        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self._push_task is not None:
            self._push_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._push_task
            self._push_task = None

        self._set_state(ConnectionState.DISCONNECTED)

        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "ViewerSession":
        try:
            await self.start()
        except Exception:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _set_state(self, state: ConnectionState):
        if state != self.state:
            logger.info(f"[VIEWER] {self.state.value} -> {state.value}")
            self.state = state

    # =========================================================================
    # PUSH
    # =========================================================================

    async def _listen(self):
        """
        Push listener. Reconnects after reconnect_delay if the connection drops.
        """
        url = self.live_url

        while not self._stop_event.is_set():
            try:
                logger.info(f"[VIEWER] Connecting to {url}...")
                async with websockets.connect(url, ping_interval=30) as ws:
                    await self._on_connected()
                    async for message in ws:
                        self.handle_message(message)
                logger.warning(f"[VIEWER] Push channel closed. Reconnecting in {self.reconnect_delay}s...")
            except ConnectionClosed as e:
                logger.warning(f"[VIEWER] Push channel lost ({e}). Reconnecting in {self.reconnect_delay}s...")
            except Exception as e:
                logger.error(f"[VIEWER] Push channel error ({e}). Reconnecting in {self.reconnect_delay}s...")
            finally:
                self._set_state(ConnectionState.DISCONNECTED)

            if self._stop_event.is_set():
                break
            await asyncio.sleep(self.reconnect_delay)

        logger.info("[VIEWER] Push listener stopped")

    async def _on_connected(self):
        """Handshake done: mark connected and pull once right away."""
        self._set_state(ConnectionState.CONNECTED)
        await self.poll_once()

    def handle_message(self, message) -> bool:
        """
        Handle one frame from the push channel.

        Unknown events and malformed frames are logged and ignored.

        Returns:
            True if the frame changed the current view
        """
        try:
            event = json.loads(message)
        except (TypeError, ValueError):
            logger.warning("[VIEWER] Ignoring non-JSON push frame")
            return False

        if not isinstance(event, dict) or event.get("event") != SENSOR_DATA_EVENT:
            logger.debug(f"[VIEWER] Ignoring push frame: {str(message)[:100]}")
            return False

        try:
            reading = StoredReading.model_validate(event.get("data"))
        except ValueError as e:
            logger.warning(f"[VIEWER] Ignoring malformed sensor-data event: {e}")
            return False

        return self.apply(reading, source="push")

    # =========================================================================
    # POLL
    # =========================================================================

    async def poll_once(self) -> bool:
        """
        Fetch the latest reading and merge it.

        Failures are recorded in last_error and never raised; the timer keeps
        running and the next tick tries again.

        Returns:
            True if the poll changed the current view
        """
        try:
            response = await self.http_client.get(self.latest_url)
            response.raise_for_status()
            reading = StoredReading.model_validate(response.json())
        except httpx.HTTPError as e:
            self.last_error = self.FETCH_ERROR
            logger.warning(f"[VIEWER] Error fetching data: {e}")
            return False
        except ValueError as e:
            self.last_error = self.FETCH_ERROR
            logger.warning(f"[VIEWER] Bad response from {self.latest_url}: {e}")
            return False

        self.last_error = None
        return self.apply(reading, source="poll")

    async def retry(self) -> bool:
        """Poll right now (what a dashboard's Retry button calls)."""
        return await self.poll_once()

    # =========================================================================
    # MERGE
    # =========================================================================

    def apply(self, reading: StoredReading, source: str = "push") -> bool:
        """
        Merge a reading into the current view.

        Placeholder readings (empty backend) are never applied.
        """
        if reading.is_placeholder:
            logger.debug(f"[VIEWER] Skipping placeholder reading from {source}")
            return False

        if not self.view.apply(reading):
            logger.debug(f"[VIEWER] Discarded stale reading {reading.id} from {source}")
            return False

        logger.info(f"[VIEWER] View updated from {source}: {reading.id} @ {reading.timestamp.isoformat()}")
        if self.on_update is not None:
            try:
                self.on_update(reading)
            except Exception:
                logger.exception("[VIEWER] on_update callback failed")
        return True
