"""Live broadcaster: fans each stored reading out to connected viewers."""

import asyncio
import json
import logging
import uuid
from typing import Awaitable, Callable, Optional

from airwatch.exceptions import DeliveryFailure
from airwatch.models import SENSOR_DATA_EVENT, StoredReading

logger = logging.getLogger(__name__)

SendFunc = Callable[[str], Awaitable[None]]
CloseFunc = Callable[[int], Awaitable[None]]

# WebSocket close code sent to a viewer we stopped delivering to
DELIVERY_FAILED_CODE = 1011


class _ViewerConnection:
    """One connected viewer: its transport send/close functions and outbound queue."""

    def __init__(self, session_id: str, send: SendFunc, queue_size: int, close: Optional[CloseFunc] = None):
        self.session_id = session_id
        self.send = send
        self.close = close
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.task: Optional[asyncio.Task] = None


class LiveBroadcaster:
    """
    Manages viewer connections and broadcasts new readings.

    Every connection gets its own FIFO queue and sender task, so a slow or
    broken viewer never holds up the others and each viewer sees readings
    in publish order.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._connections: dict[str, _ViewerConnection] = {}

    @property
    def session_count(self) -> int:
        return len(self._connections)

    def connect(
        self,
        send: SendFunc,
        session_id: Optional[str] = None,
        close: Optional[CloseFunc] = None,
    ) -> str:
        """
        Register a viewer. Must be called from the running event loop.

        Args:
            send: Coroutine function that writes one text frame to the viewer
            session_id: Connection identity (generated if omitted)
            close: Coroutine function that closes the transport with a code.
                Called when delivery fails so the viewer reconnects.

        Returns:
            The session id, used later for disconnect()
        """
        session_id = session_id or str(uuid.uuid4())
        connection = _ViewerConnection(session_id, send, self.queue_size, close)
        connection.task = asyncio.create_task(self._drain(connection))
        self._connections[session_id] = connection

        logger.info(f"[LIVE] Viewer connected: {session_id} ({self.session_count} total)")
        return session_id

    def disconnect(self, session_id: str):
        """Forget a viewer. Pending messages for it are discarded."""
        connection = self._connections.pop(session_id, None)
        if connection is None:
            return

        if connection.task is not None and connection.task is not asyncio.current_task():
            connection.task.cancel()
        logger.info(f"[LIVE] Viewer disconnected: {session_id} ({self.session_count} total)")

    def publish(self, reading: StoredReading) -> int:
        """
        Queue a reading for every viewer connected right now.

        Viewers that connect after this returns do not get it.

        Returns:
            Number of viewers the reading was queued for
        """
        message = format_event(reading)
        delivered = 0

        for connection in list(self._connections.values()):
            try:
                connection.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                # viewer is too far behind; its next poll repairs the gap
                logger.warning(f"[LIVE] Queue full for viewer {connection.session_id}, dropping reading {reading.id}")

        logger.debug(f"[LIVE] Published reading {reading.id} to {delivered} viewer(s)")
        return delivered

    async def _deliver(self, connection: _ViewerConnection, message: str):
        try:
            await connection.send(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise DeliveryFailure(connection.session_id, f"Send failed: {e}") from e

    async def _drain(self, connection: _ViewerConnection):
        """Sender task: writes queued messages to one viewer in order."""
        while True:
            message = await connection.queue.get()
            try:
                await self._deliver(connection, message)
            except DeliveryFailure as e:
                logger.debug(f"[LIVE] Dropping viewer {e.session_id}: {e}")
                self.disconnect(connection.session_id)
                await self._close_transport(connection)
                return

    async def _close_transport(self, connection: _ViewerConnection):
        if connection.close is None:
            return
        try:
            await connection.close(DELIVERY_FAILED_CODE)
        except Exception as e:
            # transport already gone
            logger.debug(f"[LIVE] Close failed for viewer {connection.session_id}: {e}")

    async def close(self):
        """Disconnect everyone and wait for sender tasks to finish."""
        tasks = [c.task for c in self._connections.values() if c.task is not None]
        for session_id in list(self._connections):
            self.disconnect(session_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def format_event(reading: StoredReading) -> str:
    """Serialize a reading as a push-channel event frame."""
    return json.dumps({
        "event": SENSOR_DATA_EVENT,
        "data": reading.model_dump(mode="json", by_alias=True),
    })
