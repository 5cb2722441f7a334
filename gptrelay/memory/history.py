"""
Conversation History Store
==========================

In-memory storage for each user's conversation with the bot.

- One conversation per Slack user id
- Lives only in RAM (cleared on restart)
- Replaced wholesale on every write; readers always get an immutable tuple
- Optionally capped to the most recent N turns (off by default)

The relay depends only on the ``HistoryStore`` interface, so a bounded or
persistent store can be dropped in without touching any caller.
"""

from gptrelay.relay.turns import Conversation, EMPTY_CONVERSATION
from gptrelay.utils.logger import Logger

logger = Logger("History")


class HistoryStore:
    """
    Interface for conversation history storage.

    Implementations must never raise from ``get`` or ``set``.
    """

    def get(self, user_id: str) -> Conversation:
        """Return the stored conversation, or an empty one for unseen users."""
        raise NotImplementedError

    def set(self, user_id: str, conversation: Conversation) -> None:
        """Replace the stored conversation for ``user_id``."""
        raise NotImplementedError

    def evict(self, user_id: str) -> None:
        """Forget the conversation for ``user_id``."""
        raise NotImplementedError


class InMemoryHistoryStore(HistoryStore):
    """
    Process-local history store backed by a dict.

    Attributes:
        max_turns: Keep at most this many recent turns per user (0 = unbounded).
            Odd caps are rounded down so trimming never splits an exchange;
            any positive cap keeps at least one exchange.

    Example:
        store = InMemoryHistoryStore()
        store.set("U123", (Turn("user", "hi"), Turn("assistant", "Hello!")))
        store.get("U123")     # the two turns
        store.get("U999")     # ()
        store.evict("U123")
    """

    def __init__(self, max_turns: int = 0):
        self.max_turns = max(max_turns - (max_turns % 2), 2) if max_turns > 0 else 0
        self._conversations: dict[str, Conversation] = {}

    def get(self, user_id: str) -> Conversation:
        return self._conversations.get(user_id, EMPTY_CONVERSATION)

    def set(self, user_id: str, conversation: Conversation) -> None:
        conversation = tuple(conversation)
        if self.max_turns and len(conversation) > self.max_turns:
            conversation = conversation[-self.max_turns:]
            logger.debug(f"Trimmed history for {user_id} to {self.max_turns} turns")
        self._conversations[user_id] = conversation

    def evict(self, user_id: str) -> None:
        if self._conversations.pop(user_id, None) is not None:
            logger.info(f"Cleared conversation for {user_id}")

    def clear_all(self) -> None:
        """Forget every conversation (e.g. on shutdown)."""
        self._conversations.clear()

    def get_user_count(self) -> int:
        """Number of users with a stored conversation."""
        return len(self._conversations)
