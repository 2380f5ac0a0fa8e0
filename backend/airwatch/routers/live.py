"""WebSocket push channel for live readings."""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from airwatch.routers.readings import get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/ws/readings")
async def live_readings(websocket: WebSocket):
    """
    Stream new readings to a dashboard.

    Emits {"event": "sensor-data", "data": <reading>} for every reading
    ingested while the socket is open. Nothing is replayed on connect;
    clients pull /api/readings/latest for the current value. If a send
    fails the server closes the socket (1011) so the client reconnects.
    """
    broadcaster = get_broadcaster()
    await websocket.accept()
    session_id = broadcaster.connect(websocket.send_text, close=websocket.close)

    try:
        while True:
            # keep the connection open; clients have nothing to say
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"[LIVE] Socket closed by viewer {session_id}")
    finally:
        broadcaster.disconnect(session_id)
