"""Roster of joined participants, keyed by connection id."""
from typing import Dict, List, Optional

from .schemas import Participant


class Roster:
    """Source of truth for who is in the room.

    Exactly one Participant exists per joined connection; records are
    deleted on disconnect rather than flagged offline. Iteration order is
    insertion order of the underlying dict.
    """

    def __init__(self) -> None:
        self._participants: Dict[str, Participant] = {}

    def join(
        self,
        connection_id: str,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Participant:
        """Create a Participant for ``connection_id``, replacing any existing one.

        Args:
            connection_id: Transport-assigned connection id.
            name: Display name, passed through unvalidated.
            avatar: Avatar, passed through unvalidated.

        Returns:
            The new Participant record.
        """
        participant = Participant(id=connection_id, name=name, avatar=avatar)
        self._participants[connection_id] = participant
        return participant

    def remove(self, connection_id: str) -> Optional[Participant]:
        """Delete and return the record, or None if the connection never joined."""
        return self._participants.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[Participant]:
        return self._participants.get(connection_id)

    def snapshot(self) -> List[Participant]:
        """Point-in-time copy of every participant."""
        return [p.model_copy() for p in self._participants.values()]

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)
