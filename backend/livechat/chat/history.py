"""Bounded, oldest-first message history for the room."""
from collections import deque
from typing import Deque, List

from .schemas import Message

# Maximum number of messages retained; older ones are evicted FIFO
MAX_HISTORY = 1000

# Messages replayed to a connection when it joins
JOIN_HISTORY_SIZE = 50

# Messages returned by the read-only /api/messages endpoint
API_HISTORY_SIZE = 20


class HistoryBuffer:
    """FIFO buffer holding at most ``max_size`` messages.

    Each append adds exactly one message, so at most one eviction is needed
    per call; ``deque.popleft`` keeps that O(1).
    """

    def __init__(self, max_size: int = MAX_HISTORY) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._messages: Deque[Message] = deque()

    def append(self, message: Message) -> Message:
        """Add a message to the tail, evicting from the head past the bound."""
        self._messages.append(message)
        while len(self._messages) > self.max_size:
            self._messages.popleft()
        return message

    def recent(self, n: int) -> List[Message]:
        """Return the last ``n`` messages, oldest first.

        Args:
            n: How many messages to return. ``n`` at or above the buffer size
               returns everything; ``n <= 0`` returns nothing.

        Returns:
            A new list; the buffer itself is not modified.
        """
        if n <= 0:
            return []
        if n >= len(self._messages):
            return list(self._messages)
        start = len(self._messages) - n
        return [self._messages[i] for i in range(start, len(self._messages))]

    def __len__(self) -> int:
        return len(self._messages)
