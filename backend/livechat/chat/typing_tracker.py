"""Typing indicators.

Nothing is stored: each start/stop is forwarded to everyone but the sender
as it arrives. There is no timeout; clients are expected to send a stop.
"""
import logging

from .connection import ConnectionHandle
from .roster import Roster
from .schemas import OutboundEvent, TypingUpdate

logger = logging.getLogger(__name__)


class TypingTracker:
    def __init__(self, roster: Roster) -> None:
        self._roster = roster

    def on_start(self, handle: ConnectionHandle) -> bool:
        """Forward a typing start with the sender's name.

        Returns:
            False if the connection has not joined (nothing is emitted).
        """
        participant = self._roster.get(handle.connection_id)
        if participant is None:
            logger.debug("[Typing] start from unjoined connection %s dropped", handle.connection_id)
            return False
        update = TypingUpdate(userId=handle.connection_id, name=participant.name, typing=True)
        handle.broadcast(OutboundEvent.TYPING_UPDATE.value, update.model_dump(mode="json"))
        return True

    def on_stop(self, handle: ConnectionHandle) -> bool:
        """Forward a typing stop. Roster membership is not checked."""
        update = TypingUpdate(userId=handle.connection_id, typing=False)
        handle.broadcast(
            OutboundEvent.TYPING_UPDATE.value,
            update.model_dump(mode="json", exclude={"name"}),
        )
        return True
