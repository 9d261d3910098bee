"""Room engine: the single entry point for everything that happens in the room.

The engine owns the roster, the bounded message history and the typing
tracker. It reacts to four inbound events (``user:join``, ``message:send``,
``typing:start``, ``typing:stop``) plus the transport's disconnect
notification, and emits outbound events through ``ConnectionHandle``s.

Per-connection state machine::

    Unjoined --join--> Joined --disconnect--> Closed
    Joined   --join--> Joined   (re-announce, record replaced)

Concurrency:
    Every event is handled to completion under one ``asyncio.Lock``: read
    roster/history, mutate, enqueue outbound frames. Handlers never await a
    recipient (the hub only enqueues), so holding the lock is cheap and all
    listeners observe broadcasts in the same order.

Failure model:
    Nothing a client sends is an error. Malformed payloads are accepted as
    they are, and events from connections that have not joined are dropped
    with a debug log.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .connection import ConnectionHandle
from .history import JOIN_HISTORY_SIZE, MAX_HISTORY, HistoryBuffer
from .roster import Roster
from .schemas import (
    InboundEvent,
    Message,
    OutboundEvent,
    Participant,
    SystemMessage,
    SystemMessageType,
)
from .typing_tracker import TypingTracker

logger = logging.getLogger(__name__)

DEFAULT_ROOM_NAME = "marzzXD-LiveChat"


def _as_text(value: Any) -> Optional[str]:
    """Pass strings and None through; stringify anything else."""
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _display_name(participant: Participant) -> str:
    return participant.name if participant.name is not None else "Anonymous"


class RoomEngine:
    """Serialized event processor for the single chat room.

    Attributes:
        room_name: Shown in the welcome message.
        join_history: How many past messages a joining connection receives.
    """

    def __init__(
        self,
        room_name: str = DEFAULT_ROOM_NAME,
        max_history: int = MAX_HISTORY,
        join_history: int = JOIN_HISTORY_SIZE,
    ) -> None:
        self.room_name = room_name
        self.join_history = join_history
        self._roster = Roster()
        self._history = HistoryBuffer(max_history)
        self._typing = TypingTracker(self._roster)
        self._lock = asyncio.Lock()
        self._last_message_id = 0

        self._handlers: Dict[str, Callable[[ConnectionHandle, Dict[str, Any]], Awaitable[Any]]] = {
            InboundEvent.JOIN.value: self.join,
            InboundEvent.MESSAGE_SEND.value: self.send_message,
            InboundEvent.TYPING_START.value: self.typing_start,
            InboundEvent.TYPING_STOP.value: self.typing_stop,
        }

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def dispatch(self, handle: ConnectionHandle, event: str, payload: Any = None) -> bool:
        """Route one inbound event to its handler.

        Args:
            handle: The sending connection.
            event: Inbound event name.
            payload: Event data; anything that is not a dict is treated as ``{}``.

        Returns:
            False if the event name is unknown (it is ignored).
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("[Room] Ignoring unknown event %r from %s", event, handle.connection_id)
            return False
        if not isinstance(payload, dict):
            payload = {}
        await handler(handle, payload)
        return True

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def join(self, handle: ConnectionHandle, payload: Dict[str, Any]) -> Participant:
        """Add (or replace) the sender in the roster and announce it."""
        async with self._lock:
            participant = self._roster.join(
                handle.connection_id,
                name=_as_text(payload.get("name")),
                avatar=_as_text(payload.get("avatar")),
            )
            name = _display_name(participant)
            logger.info(f"[Room] {name} joined ({handle.connection_id}), {len(self._roster)} online")

            handle.emit(
                OutboundEvent.SYSTEM_MESSAGE.value,
                SystemMessage(
                    text=f"Welcome to {self.room_name}, {name}!",
                    type=SystemMessageType.WELCOME,
                ).model_dump(mode="json"),
            )
            handle.emit(
                OutboundEvent.USERS_LIST.value,
                [p.model_dump(mode="json") for p in self._roster.snapshot()],
            )
            handle.broadcast(OutboundEvent.USER_JOINED.value, participant.model_dump(mode="json"))
            handle.broadcast(
                OutboundEvent.SYSTEM_MESSAGE.value,
                SystemMessage(
                    text=f"{name} joined the chat!",
                    type=SystemMessageType.INFO,
                ).model_dump(mode="json"),
            )
            handle.emit(
                OutboundEvent.MESSAGES_HISTORY.value,
                [m.model_dump(mode="json") for m in self._history.recent(self.join_history)],
            )
            return participant

    async def send_message(
        self, handle: ConnectionHandle, payload: Dict[str, Any]
    ) -> Optional[Message]:
        """Store a message from a joined sender and broadcast it to everyone.

        Returns:
            The stored Message, or None if the sender has not joined.
        """
        async with self._lock:
            participant = self._roster.get(handle.connection_id)
            if participant is None:
                logger.debug("[Room] message:send from unjoined connection %s dropped", handle.connection_id)
                return None

            message = Message(
                id=self._next_message_id(),
                senderId=participant.id,
                sender=participant.name,
                avatar=participant.avatar,
                text=_as_text(payload.get("text")),
            )
            self._history.append(message)
            handle.broadcast_all(OutboundEvent.MESSAGE_RECEIVE.value, message.model_dump(mode="json"))
            return message

    async def typing_start(self, handle: ConnectionHandle, payload: Optional[Dict[str, Any]] = None) -> bool:
        async with self._lock:
            return self._typing.on_start(handle)

    async def typing_stop(self, handle: ConnectionHandle, payload: Optional[Dict[str, Any]] = None) -> bool:
        async with self._lock:
            return self._typing.on_stop(handle)

    async def disconnect(self, handle: ConnectionHandle) -> Optional[Participant]:
        """Remove the connection and announce the departure if it had joined.

        Call after the hub has stopped delivering to ``handle`` so the
        broadcast reaches only the remaining connections.
        """
        async with self._lock:
            participant = self._roster.remove(handle.connection_id)
            if participant is None:
                return None

            name = _display_name(participant)
            logger.info(f"[Room] {name} left ({handle.connection_id}), {len(self._roster)} online")
            handle.broadcast_all(OutboundEvent.USER_LEFT.value, participant.id)
            handle.broadcast_all(
                OutboundEvent.SYSTEM_MESSAGE.value,
                SystemMessage(
                    text=f"{name} left the chat",
                    type=SystemMessageType.INFO,
                ).model_dump(mode="json"),
            )
            return participant

    # =========================================================================
    # Read-only queries
    # =========================================================================

    def participants(self) -> List[Participant]:
        """Consistent copy of the roster, in insertion order."""
        return self._roster.snapshot()

    def get_participant(self, connection_id: str) -> Optional[Participant]:
        return self._roster.get(connection_id)

    def recent_messages(self, n: int) -> List[Message]:
        """The last ``n`` messages, oldest first."""
        return self._history.recent(n)

    def get_message_count(self) -> int:
        return len(self._history)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _next_message_id(self) -> int:
        """Wall-clock milliseconds, bumped so ids strictly increase."""
        candidate = int(time.time() * 1000)
        if candidate <= self._last_message_id:
            candidate = self._last_message_id + 1
        self._last_message_id = candidate
        return candidate


# Global room engine, created in the app lifespan
_engine: Optional[RoomEngine] = None


def get_engine() -> Optional[RoomEngine]:
    """Get the global room engine instance."""
    return _engine


def set_engine(engine: Optional[RoomEngine]) -> None:
    """Set (or clear) the global room engine instance."""
    global _engine
    _engine = engine
