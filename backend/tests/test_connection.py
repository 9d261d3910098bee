"""Tests for ConnectionHub delivery and ConnectionHandle scopes."""
import pytest

from conftest import BrokenWebSocket, connect
from livechat.chat.schemas import Participant


@pytest.mark.asyncio
async def test_register_assigns_unique_ids(hub):
    _, a = connect(hub)
    _, b = connect(hub)

    assert a.connection_id != b.connection_id
    assert hub.size == 2


@pytest.mark.asyncio
async def test_emit_is_unicast(hub):
    ws_a, a = connect(hub)
    ws_b, _ = connect(hub)

    a.emit("system:message", {"text": "hello", "type": "welcome"})
    await hub.flush()

    assert ws_a.sent == [{"event": "system:message", "data": {"text": "hello", "type": "welcome"}}]
    assert ws_b.sent == []


@pytest.mark.asyncio
async def test_broadcast_skips_sender(hub):
    ws_a, a = connect(hub)
    ws_b, _ = connect(hub)
    ws_c, _ = connect(hub)

    a.broadcast("typing:update", {"userId": a.connection_id, "typing": False})
    await hub.flush()

    assert ws_a.sent == []
    assert ws_b.events() == [("typing:update", {"userId": a.connection_id, "typing": False})]
    assert ws_c.events() == ws_b.events()


@pytest.mark.asyncio
async def test_broadcast_all_includes_sender(hub):
    sockets = [connect(hub) for _ in range(3)]
    _, sender = sockets[0]

    sender.broadcast_all("user:left", "someone")
    await hub.flush()

    for ws, _ in sockets:
        assert ws.events() == [("user:left", "someone")]


@pytest.mark.asyncio
async def test_frames_arrive_in_enqueue_order(hub):
    ws_a, a = connect(hub)
    ws_b, b = connect(hub)

    for i in range(20):
        (a if i % 2 else b).broadcast_all("message:receive", {"id": i})
    await hub.flush()

    expected = [("message:receive", {"id": i}) for i in range(20)]
    assert ws_a.events() == expected
    assert ws_b.events() == expected


@pytest.mark.asyncio
async def test_unregistered_connection_receives_nothing(hub):
    ws_a, a = connect(hub)
    ws_b, b = connect(hub)

    hub.unregister(b.connection_id)
    a.broadcast_all("user:left", b.connection_id)
    b.emit("system:message", {"text": "late", "type": "info"})
    await hub.flush()

    assert hub.size == 1
    assert ws_a.events() == [("user:left", b.connection_id)]
    assert ws_b.sent == []


@pytest.mark.asyncio
async def test_unregister_unknown_id_is_noop(hub):
    hub.unregister("does-not-exist")
    assert hub.size == 0


@pytest.mark.asyncio
async def test_failed_send_does_not_affect_other_recipients(hub):
    broken = BrokenWebSocket()
    hub.register(broken)
    ws_ok, sender = connect(hub)

    sender.broadcast_all("message:receive", {"id": 1})
    sender.broadcast_all("message:receive", {"id": 2})
    await hub.flush()

    assert ws_ok.events() == [("message:receive", {"id": 1}), ("message:receive", {"id": 2})]


@pytest.mark.asyncio
async def test_close_forgets_all_connections(hub):
    connect(hub)
    connect(hub)

    hub.close()

    assert hub.size == 0
    await hub.flush()


@pytest.mark.asyncio
async def test_payload_models_are_json_dumped(hub):
    ws, handle = connect(hub)
    participant = Participant(id="c1", name="Ann")
    handle.emit("user:joined", participant.model_dump(mode="json"))
    await hub.flush()

    (event, data), = ws.events()
    assert event == "user:joined"
    assert isinstance(data["joinedAt"], str)
