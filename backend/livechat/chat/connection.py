"""WebSocket connection hub and per-connection handles.

The hub owns every live socket and its outbound queue. Sends never block
the caller: frames are put on an unbounded per-connection ``asyncio.Queue``
and a dedicated sender task writes them to the socket in order. Because the
room engine enqueues while holding its lock, every listener sees broadcasts
in the same relative order.

Backpressure:
    None. A recipient that stops reading accumulates frames in its queue
    until its socket is closed.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket

from .schemas import Envelope

logger = logging.getLogger(__name__)


class ConnectionHandle:
    """One client's view of the hub: send to self, to others, or to all.

    Attributes:
        connection_id: Opaque id assigned when the socket was registered.
    """

    def __init__(self, connection_id: str, hub: "ConnectionHub") -> None:
        self.connection_id = connection_id
        self._hub = hub

    def emit(self, event: str, data: Any = None) -> None:
        """Unicast to this connection."""
        self._hub.send(self.connection_id, event, data)

    def broadcast(self, event: str, data: Any = None) -> None:
        """Send to every connection except this one."""
        self._hub.broadcast(event, data, exclude=self.connection_id)

    def broadcast_all(self, event: str, data: Any = None) -> None:
        """Send to every connection, including this one."""
        self._hub.broadcast(event, data)

    def __repr__(self) -> str:
        return f"ConnectionHandle({self.connection_id!r})"


class ConnectionHub:
    """Registry of live WebSocket connections with ordered outbound queues."""

    def __init__(self) -> None:
        # connection_id -> websocket
        self._connections: Dict[str, WebSocket] = {}
        # connection_id -> outbound queue and the task draining it
        self._send_queues: Dict[str, asyncio.Queue] = {}
        self._sender_tasks: Dict[str, asyncio.Task] = {}

    def register(self, websocket: WebSocket) -> ConnectionHandle:
        """Track an accepted socket and start its sender task.

        Must be called from within the running event loop.
        """
        connection_id = uuid.uuid4().hex
        queue: asyncio.Queue = asyncio.Queue()
        self._connections[connection_id] = websocket
        self._send_queues[connection_id] = queue
        self._sender_tasks[connection_id] = asyncio.create_task(
            self._sender_loop(connection_id, websocket, queue)
        )
        return ConnectionHandle(connection_id, self)

    def unregister(self, connection_id: str) -> None:
        """Stop delivering to a connection. Unknown ids are ignored."""
        self._connections.pop(connection_id, None)
        queue = self._send_queues.pop(connection_id, None)
        task = self._sender_tasks.pop(connection_id, None)
        if task is not None:
            task.cancel()
        if queue is not None:
            # Release anyone waiting in flush() on frames that will never be sent.
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()

    def send(self, connection_id: str, event: str, data: Any = None) -> None:
        """Queue one frame for one connection."""
        queue = self._send_queues.get(connection_id)
        if queue is None:
            logger.debug("Dropping %s for unknown connection %s", event, connection_id)
            return
        queue.put_nowait(Envelope(event=event, data=data).model_dump(mode="json"))

    def broadcast(self, event: str, data: Any = None, exclude: Optional[str] = None) -> None:
        """Queue one frame for every connection, optionally skipping one."""
        payload = Envelope(event=event, data=data).model_dump(mode="json")
        for connection_id, queue in self._send_queues.items():
            if connection_id != exclude:
                queue.put_nowait(payload)

    async def flush(self) -> None:
        """Wait until every queued frame has been handed to its socket."""
        queues = list(self._send_queues.values())
        if queues:
            await asyncio.gather(*[q.join() for q in queues])

    def close(self) -> None:
        """Cancel every sender task and forget all connections."""
        for connection_id in list(self._connections):
            self.unregister(connection_id)

    @property
    def size(self) -> int:
        """Number of live connections."""
        return len(self._connections)

    async def _sender_loop(
        self, connection_id: str, websocket: WebSocket, queue: asyncio.Queue
    ) -> None:
        while True:
            payload = await queue.get()
            try:
                await websocket.send_json(payload)
            except Exception as e:
                logger.debug(f"Failed to send to connection {connection_id}: {e}")
            finally:
                queue.task_done()


# Global connection hub, created in the app lifespan
_hub: Optional[ConnectionHub] = None


def get_hub() -> Optional[ConnectionHub]:
    """Get the global connection hub instance."""
    return _hub


def set_hub(hub: Optional[ConnectionHub]) -> None:
    """Set (or clear) the global connection hub instance."""
    global _hub
    _hub = hub
