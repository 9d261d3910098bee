"""Shared test fixtures and helpers for backend tests."""
import asyncio
from typing import Any, List, Optional, Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from livechat.chat.connection import ConnectionHandle, ConnectionHub
from livechat.chat.engine import RoomEngine
from livechat.main import app


class FakeWebSocket:
    """Stands in for a Starlette WebSocket; records every frame sent to it."""

    def __init__(self) -> None:
        self.sent: List[dict] = []

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)

    def events(self, name: Optional[str] = None) -> List[Tuple[str, Any]]:
        """(event, data) pairs, optionally filtered by event name."""
        return [
            (frame["event"], frame["data"])
            for frame in self.sent
            if name is None or frame["event"] == name
        ]

    def clear(self) -> None:
        self.sent.clear()


class BrokenWebSocket(FakeWebSocket):
    async def send_json(self, data: Any) -> None:
        raise RuntimeError("socket closed")


def connect(hub: ConnectionHub) -> Tuple[FakeWebSocket, ConnectionHandle]:
    """Register a fake socket and return it with its handle."""
    ws = FakeWebSocket()
    return ws, hub.register(ws)


@pytest.fixture
def api_client():
    """Provide a TestClient with the lifespan running.

    All WebSocket sessions opened from it share one event loop, and each
    test gets a fresh room engine.
    """
    with TestClient(app) as client:
        yield client


@pytest_asyncio.fixture
async def hub():
    hub = ConnectionHub()
    yield hub
    hub.close()
    # Let the cancelled sender tasks finish before the loop closes
    await asyncio.sleep(0)


@pytest.fixture
def engine():
    return RoomEngine(room_name="Test Room")


# =============================================================================
# WebSocket protocol helpers (TestClient sessions)
# =============================================================================


def send(ws, event, data=None):
    ws.send_json({"event": event, "data": data if data is not None else {}})


def receive(ws, expected_event=None):
    frame = ws.receive_json()
    if expected_event is not None:
        assert frame["event"] == expected_event, frame
    return frame["data"]


def join(ws, name, avatar=None):
    """Join and consume the three frames sent to the joiner.

    Returns:
        (connection_id, users_list, history)
    """
    payload = {"name": name}
    if avatar is not None:
        payload["avatar"] = avatar
    send(ws, "user:join", payload)
    welcome = receive(ws, "system:message")
    assert welcome["type"] == "welcome"
    assert name in welcome["text"]
    users = receive(ws, "users:list")
    history = receive(ws, "messages:history")
    return users[-1]["id"], users, history


def receive_join_announcement(ws, name):
    joined = receive(ws, "user:joined")
    assert joined["name"] == name
    info = receive(ws, "system:message")
    assert info == {"text": f"{name} joined the chat!", "type": "info"}
    return joined
