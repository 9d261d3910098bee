"""WebSocket transport for the chat room.

This module provides:
    - WebSocket /ws: Real-time presence, messaging and typing indicators

Every frame is JSON ``{"event": "<name>", "data": {...}}``.

Inbound events:
    - user:join {name, avatar?}
    - message:send {text}
    - typing:start / typing:stop

Outbound events:
    - system:message, users:list, messages:history (to the joiner)
    - user:joined, user:left, message:receive, typing:update (broadcast)

Binary frames and text frames that are not JSON objects with a string
``event`` are ignored; the connection stays open.
"""
import asyncio
import json
import logging
from typing import Any, Optional, Tuple

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .connection import get_hub
from .engine import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_frame(raw: str) -> Optional[Tuple[str, Any]]:
    """Decode a text frame into ``(event, data)``, or None if malformed."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(frame, dict):
        return None
    event = frame.get("event")
    if not isinstance(event, str):
        return None
    return event, frame.get("data")


@router.websocket("/ws")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for the room.

    Protocol Flow:
        1. Client connects -> server assigns an opaque connection id
        2. Client sends user:join {name, avatar}
           -> joiner gets system:message (welcome), users:list, messages:history
           -> others get user:joined, system:message (info)
        3. Client sends message:send {text}
           -> everyone (sender included) gets message:receive
        4. Client sends typing:start / typing:stop
           -> everyone else gets typing:update
        5. On disconnect of a joined client
           -> everyone left gets user:left, system:message (info)
    """
    hub = get_hub()
    engine = get_engine()
    if hub is None or engine is None:
        logger.warning("[WS] Room engine not initialised, rejecting connection")
        await websocket.close(code=1011)
        return

    await websocket.accept()
    handle = hub.register(websocket)
    logger.info(f"[WS] New client connected: {handle.connection_id} ({hub.size} connections)")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            parsed = parse_frame(raw) if raw is not None else None
            if parsed is None:
                logger.debug("[WS] Ignoring malformed frame from %s", handle.connection_id)
                continue
            event, data = parsed
            logger.debug("[WS] %s received: event=%s", handle.connection_id, event)
            await engine.dispatch(handle, event, data)
    except WebSocketDisconnect:
        pass
    finally:
        # Stop delivering to this socket before the leave broadcast goes out.
        hub.unregister(handle.connection_id)
        logger.info(f"[WS] Client disconnected: {handle.connection_id} ({hub.size} connections)")
        # Shielded so the leave is still announced if this handler is cancelled.
        await asyncio.shield(engine.disconnect(handle))
