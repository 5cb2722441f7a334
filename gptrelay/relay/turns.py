"""
Turns and Conversations
=======================

A Turn is one role-tagged message; a Conversation is the ordered tuple of
turns exchanged with one user.

Stored conversations never contain the system prompt (it is added per call)
and always alternate user/assistant, starting with the user:

    (Turn("user", "hello"), Turn("assistant", "Hi there."), ...)

Tuples are used so a conversation handed out by the history store cannot be
changed behind the store's back.
"""

from dataclasses import dataclass
from typing import Sequence

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"

ROLES = (SYSTEM, USER, ASSISTANT)


@dataclass(frozen=True)
class Turn:
    """
    A single message in a conversation.

    Attributes:
        role: "system", "user" or "assistant"
        content: The message text
    """
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown turn role: {self.role!r}")

    def to_dict(self) -> dict:
        """Convert to the message format of the chat completions API."""
        return {"role": self.role, "content": self.content}


Conversation = tuple[Turn, ...]

EMPTY_CONVERSATION: Conversation = ()


class InvalidHistoryState(ValueError):
    """A conversation does not alternate user/assistant turns."""


def validate_conversation(turns: Sequence[Turn]) -> Conversation:
    """
    Check the alternation invariant and return the turns as a tuple.

    Raises:
        InvalidHistoryState: If the turns are not complete user/assistant pairs
    """
    if len(turns) % 2:
        raise InvalidHistoryState(f"Conversation has an odd number of turns ({len(turns)})")

    for index, turn in enumerate(turns):
        expected = USER if index % 2 == 0 else ASSISTANT
        if not isinstance(turn, Turn) or turn.role != expected:
            role = getattr(turn, "role", type(turn).__name__)
            raise InvalidHistoryState(
                f"Turn {index} should be {expected}, got {role}"
            )

    return tuple(turns)


def extend_conversation(history: Conversation, user_message: str, reply: str) -> Conversation:
    """Return a new conversation with one user/assistant exchange appended."""
    return history + (Turn(USER, user_message), Turn(ASSISTANT, reply))


def build_messages(system_prompt: str, prior_turns: Sequence[Turn], new_message: str) -> list[dict]:
    """
    Build the outbound message list for one completion call.

    The result is ``[system] + prior_turns + [user: new_message]``.
    """
    messages = [Turn(SYSTEM, system_prompt).to_dict()]
    messages.extend(turn.to_dict() for turn in prior_turns)
    messages.append(Turn(USER, new_message).to_dict())
    return messages


def exchanges(conversation: Sequence[Turn]) -> list[tuple[Turn, Turn | None]]:
    """Pair each user turn with the assistant turn that answered it."""
    pairs = []
    for index in range(0, len(conversation), 2):
        reply = conversation[index + 1] if index + 1 < len(conversation) else None
        pairs.append((conversation[index], reply))
    return pairs
