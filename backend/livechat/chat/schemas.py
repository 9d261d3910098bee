"""Pydantic models for the chat room and its wire protocol.

Every frame exchanged over the WebSocket is an ``Envelope``:
``{"event": "<name>", "data": <payload>}``. The payload models below are
dumped with ``mode="json"`` before they are queued, so datetimes travel as
ISO-8601 strings.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Event names
# =============================================================================


class InboundEvent(str, Enum):
    """Events a client may send to the room."""
    JOIN = "user:join"
    MESSAGE_SEND = "message:send"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"


class OutboundEvent(str, Enum):
    """Events the room emits to clients."""
    USERS_LIST = "users:list"
    USER_JOINED = "user:joined"
    USER_LEFT = "user:left"
    SYSTEM_MESSAGE = "system:message"
    MESSAGES_HISTORY = "messages:history"
    MESSAGE_RECEIVE = "message:receive"
    TYPING_UPDATE = "typing:update"


class SystemMessageType(str, Enum):
    WELCOME = "welcome"
    INFO = "info"


# =============================================================================
# Room entities
# =============================================================================


class Participant(BaseModel):
    """A joined connection, as shown in the roster.

    Attributes:
        id: Connection id assigned by the transport (identity key).
        name: Client-supplied display name, not validated.
        avatar: Optional client-supplied avatar.
        joinedAt: When the join was processed (UTC).
        online: Always true while the record exists.
    """
    id: str = Field(..., description="Connection id")
    name: Optional[str] = Field(default=None, description="Display name")
    avatar: Optional[str] = Field(default=None, description="Avatar")
    joinedAt: datetime = Field(default_factory=utcnow, description="Join time (UTC)")
    online: bool = Field(default=True, description="Online flag")


class Message(BaseModel):
    """A chat message stored in history and broadcast to everyone.

    Sender fields are a snapshot of the Participant at send time.
    """
    id: int = Field(..., description="Monotonic id derived from wall-clock ms")
    senderId: str = Field(..., description="Sender connection id")
    sender: Optional[str] = Field(default=None, description="Sender name snapshot")
    avatar: Optional[str] = Field(default=None, description="Sender avatar snapshot")
    text: Optional[str] = Field(default=None, description="Message text")
    timestamp: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")


class SystemMessage(BaseModel):
    text: str
    type: SystemMessageType


class TypingUpdate(BaseModel):
    """Typing indicator; ``name`` is only present on start."""
    userId: str
    name: Optional[str] = None
    typing: bool


class Envelope(BaseModel):
    event: str
    data: Any = None


# =============================================================================
# REST responses
# =============================================================================


class UsersResponse(BaseModel):
    total: int
    online: int
    users: List[Participant]


class MessagesResponse(BaseModel):
    count: int
    messages: List[Message]
