import socket
import threading
import time
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import uvicorn
from fastapi.testclient import TestClient

from airwatch.models import StoredReading

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

# Reading from the station's own example payload
DEVICE_PAYLOAD: dict[str, Any] = {
    "temperature": 25.5,
    "humidity": 60,
    "vocIndex": 100,
    "vocRaw": 25000,
    "pm1": 5,
    "pm25": 10,
    "pm10": 15,
    "rainfall": 0,
    "windSpeed": 2.5,
    "windDirection": "N",
}


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    def _make(**overrides: Any) -> dict[str, Any]:
        payload = dict(DEVICE_PAYLOAD)
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def reading_at() -> Callable[..., StoredReading]:
    """Build a stored reading `seconds` after BASE_TIME."""

    def _make(seconds: float, **overrides: Any) -> StoredReading:
        data = dict(DEVICE_PAYLOAD)
        data.update(overrides)
        data.setdefault("id", f"reading-{seconds:g}")
        data["timestamp"] = BASE_TIME + timedelta(seconds=seconds)
        return StoredReading.model_validate(data)

    return _make


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'readings.db'}"


@pytest.fixture
def client(db_url, monkeypatch) -> Iterator[TestClient]:
    from airwatch.main import Config, app

    monkeypatch.setattr(Config, "DATABASE_URL", db_url)
    with TestClient(app) as test_client:
        yield test_client


class LiveServer:
    """The real app under uvicorn on a local port, in a background thread."""

    def __init__(self, app):
        self.app = app
        self.port = _free_port()
        self._server = None
        self._thread = None

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("127.0.0.1", self.port))

        config = uvicorn.Config(self.app, log_level="warning", lifespan="on")
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._server.run, kwargs={"sockets": [sock]}, daemon=True)
        self._thread.start()

        deadline = time.monotonic() + 10
        while not self._server.started:
            if time.monotonic() > deadline or not self._thread.is_alive():
                raise RuntimeError("uvicorn did not start")
            time.sleep(0.01)

    def stop(self):
        if self._server is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout=10)
        self._server = None


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def live_server(db_url, monkeypatch) -> Iterator[LiveServer]:
    from airwatch.main import Config, app

    monkeypatch.setattr(Config, "DATABASE_URL", db_url)
    server = LiveServer(app)
    server.start()
    try:
        yield server
    finally:
        server.stop()
