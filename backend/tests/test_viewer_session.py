import asyncio
import json

import httpx
import pytest

from airwatch.client import ConnectionState, ViewerSession
from airwatch.models import placeholder_reading
from airwatch.services.broadcaster import format_event


def _latest_returns(*responses):
    """MockTransport that serves the given readings (or status codes) in turn."""
    queue = list(responses)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, int):
            return httpx.Response(item, json={"error": "boom"})
        if isinstance(item, Exception):
            raise item
        return httpx.Response(200, json=item.model_dump(mode="json", by_alias=True))

    return httpx.MockTransport(handler), seen


def _session(transport, **kwargs) -> ViewerSession:
    return ViewerSession(
        base_url="http://dashboard.test",
        http_client=httpx.AsyncClient(transport=transport),
        **kwargs,
    )


def test_urls_follow_base_url() -> None:
    session = ViewerSession(base_url="https://air.example.org/")
    assert session.latest_url == "https://air.example.org/api/readings/latest"
    assert session.live_url == "wss://air.example.org/ws/readings"

    session = ViewerSession(base_url="http://localhost:8000")
    assert session.live_url == "ws://localhost:8000/ws/readings"


def test_new_session_is_empty_and_disconnected() -> None:
    session = ViewerSession(base_url="http://dashboard.test")

    assert session.view.is_empty
    assert session.state is ConnectionState.DISCONNECTED
    assert session.last_error is None


@pytest.mark.asyncio
async def test_poll_moves_view_forward_after_push(reading_at) -> None:
    transport, seen = _latest_returns(reading_at(125))
    session = _session(transport)

    assert session.handle_message(format_event(reading_at(100))) is True
    assert await session.poll_once() is True

    assert session.view.reading.id == "reading-125"
    assert seen == ["/api/readings/latest"]
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_stale_poll_does_not_undo_newer_push(reading_at) -> None:
    transport, _ = _latest_returns(reading_at(150))
    session = _session(transport)

    session.handle_message(format_event(reading_at(200)))
    assert await session.poll_once() is False

    assert session.view.reading.id == "reading-200"
    assert session.last_error is None
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_out_of_order_pushes_keep_newest(reading_at) -> None:
    session = ViewerSession(base_url="http://dashboard.test")

    session.handle_message(format_event(reading_at(20)))
    session.handle_message(format_event(reading_at(10)))
    session.handle_message(format_event(reading_at(20)))

    assert session.view.reading.id == "reading-20"
    assert session.view.applied == 1
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_failed_poll_sets_error_and_keeps_view(reading_at) -> None:
    transport, _ = _latest_returns(500, reading_at(300))
    session = _session(transport)
    session.handle_message(format_event(reading_at(100)))

    assert await session.poll_once() is False
    assert session.last_error == ViewerSession.FETCH_ERROR
    assert session.view.reading.id == "reading-100"

    assert await session.retry() is True
    assert session.last_error is None
    assert session.view.reading.id == "reading-300"
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_unreachable_backend_is_reported_not_raised() -> None:
    transport, _ = _latest_returns(httpx.ConnectError("connection refused"))
    session = _session(transport)

    assert await session.poll_once() is False
    assert session.last_error == ViewerSession.FETCH_ERROR
    assert session.view.is_empty
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_placeholder_from_empty_backend_is_not_applied() -> None:
    transport, _ = _latest_returns(placeholder_reading())
    session = _session(transport)

    assert await session.poll_once() is False
    assert session.view.is_empty
    assert session.last_error is None
    await session.http_client.aclose()


@pytest.mark.parametrize(
    "frame",
    [
        "not json",
        json.dumps(["sensor-data"]),
        json.dumps({"event": "heartbeat", "data": {}}),
        json.dumps({"event": "sensor-data", "data": {"temperature": 1}}),
    ],
)
def test_junk_push_frames_are_ignored(frame) -> None:
    session = ViewerSession(base_url="http://dashboard.test")

    assert session.handle_message(frame) is False
    assert session.view.is_empty


@pytest.mark.asyncio
async def test_connect_marks_connected_and_pulls_immediately(reading_at) -> None:
    transport, seen = _latest_returns(reading_at(42))
    session = _session(transport)

    await session._on_connected()

    assert session.state is ConnectionState.CONNECTED
    assert seen == ["/api/readings/latest"]
    assert session.view.reading.id == "reading-42"
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_on_update_called_only_on_change(reading_at) -> None:
    updates = []
    session = ViewerSession(base_url="http://dashboard.test", on_update=updates.append)

    session.handle_message(format_event(reading_at(5)))
    session.handle_message(format_event(reading_at(5)))
    session.handle_message(format_event(reading_at(6)))

    assert [r.id for r in updates] == ["reading-5", "reading-6"]
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_failing_on_update_does_not_break_session(reading_at) -> None:
    def explode(reading):
        raise RuntimeError("render failed")

    session = ViewerSession(base_url="http://dashboard.test", on_update=explode)

    assert session.handle_message(format_event(reading_at(1))) is True
    assert session.view.reading.id == "reading-1"
    await session.http_client.aclose()


@pytest.mark.asyncio
async def test_context_manager_starts_and_stops_cleanly() -> None:
    # nothing listens on the discard port, so the push listener keeps retrying
    session = ViewerSession(
        base_url="http://127.0.0.1:9",
        poll_interval=60,
        reconnect_delay=0.01,
    )

    async with session:
        assert session._scheduler is not None
        assert session._scheduler.get_job("poll_latest") is not None
        assert session._push_task is not None
        await asyncio.sleep(0.05)
        assert session.state is ConnectionState.DISCONNECTED

    assert session._scheduler is None
    assert session._push_task is None
    assert session.http_client.is_closed


@pytest.mark.asyncio
async def test_context_manager_cleans_up_when_body_raises(reading_at) -> None:
    session = ViewerSession(base_url="http://127.0.0.1:9", poll_interval=60, reconnect_delay=0.01)

    with pytest.raises(RuntimeError):
        async with session:
            session.handle_message(format_event(reading_at(1)))
            raise RuntimeError("dashboard crashed")

    assert session._push_task is None
    assert session.state is ConnectionState.DISCONNECTED
    assert session.view.reading.id == "reading-1"
