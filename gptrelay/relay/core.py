"""
Conversation Relay
==================

Turns Slack interactions into ordered completion calls while keeping each
user's conversation.

Relay flow for one message:
    new message
         │
         ▼
    reject empty input ──────────────► RelayFailure(EMPTY_INPUT)
         │
         ▼
    load history (override, store, or none)
         │
         ▼
    CompletionClient.complete ───────► RelayFailure(COMPLETION_FAILED)
         │                             (history untouched)
         ▼
    task.post_process
         │
         ▼
    history + user turn + assistant turn
         │
         ▼
    store.set  ──►  RelayResult(rendered_text, updated_conversation)

Calls for the same user are serialized with a per-user lock, so a
double-submitted modal cannot overwrite the exchange that finished first.
Different users run concurrently.
"""

import asyncio
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from gptrelay.relay.completion import CompletionClient, CompletionFailed
from gptrelay.relay.tasks import TaskVariant, history_key
from gptrelay.relay.turns import (
    Conversation,
    EMPTY_CONVERSATION,
    InvalidHistoryState,
    extend_conversation,
    validate_conversation,
)
from gptrelay.utils.config import DEFAULT_MODEL
from gptrelay.utils.logger import Logger

if TYPE_CHECKING:
    from gptrelay.memory import HistoryStore

logger = Logger("Relay")


class FailureKind(str, Enum):
    """Why a relay call produced no reply."""
    EMPTY_INPUT = "empty_input"
    COMPLETION_FAILED = "completion_failed"
    NOTHING_TO_REGENERATE = "nothing_to_regenerate"


@dataclass(frozen=True)
class RelayResult:
    """
    A successful relay call.

    Attributes:
        rendered_text: The post-processed reply, ready for display
        updated_conversation: History including the new exchange
    """
    rendered_text: str
    updated_conversation: Conversation

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class RelayFailure:
    """
    A relay call that produced no reply.

    Attributes:
        kind: Failure category
        detail: Diagnostic text for logs (never shown to users)
        cause: The underlying exception, when there is one
    """
    kind: FailureKind
    detail: str
    cause: BaseException | None = None

    @property
    def success(self) -> bool:
        return False


RelayOutcome = RelayResult | RelayFailure


class ConversationRelay:
    """
    Composes stored history with a new message and relays it to the model.

    Example:
        relay = ConversationRelay(InMemoryHistoryStore(), OpenAICompletionClient(api_key))

        outcome = await relay.respond("U123", "hello", get_task("gpt"))
        if outcome.success:
            print(outcome.rendered_text)
    """

    def __init__(
        self,
        store: "HistoryStore",
        client: CompletionClient,
        default_model: str = DEFAULT_MODEL
    ):
        """
        Args:
            store: Where conversations live between calls
            client: Produces one assistant turn per call
            default_model: Model for task variants that do not name one
        """
        self.store = store
        self.client = client
        self.default_model = default_model
        # Entries disappear once no call for the user holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def respond(
        self,
        user_id: str,
        new_message: str,
        task: TaskVariant,
        history: Conversation | None = None
    ) -> RelayOutcome:
        """
        Relay one user message and record the exchange.

        Args:
            user_id: Slack user id that owns the conversation
            new_message: The user's message
            task: Prompt/model/post-processing to use
            history: Explicit history to continue from instead of the stored
                one. Passing ``()`` starts a fresh conversation; passing the
                history from before an earlier turn replaces that turn.

        Returns:
            RelayResult on success, RelayFailure otherwise
        """
        if not new_message or not new_message.strip():
            return RelayFailure(FailureKind.EMPTY_INPUT, "No message text to relay")

        async with self._lock_for(user_id):
            return await self._relay(user_id, new_message, task, history)

    async def regenerate(self, user_id: str, task: TaskVariant) -> RelayOutcome:
        """
        Ask again for the last reply in the user's stored conversation.

        The last exchange is replaced, not appended to, so the stored history
        keeps the same length.
        """
        async with self._lock_for(user_id):
            stored = self._load_history(user_id, task, None)
            if len(stored) < 2:
                return RelayFailure(
                    FailureKind.NOTHING_TO_REGENERATE,
                    f"No stored exchange to regenerate for {user_id}"
                )
            last_message = stored[-2].content
            return await self._relay(user_id, last_message, task, stored[:-2])

    def reset(self, user_id: str, task: TaskVariant | None = None) -> None:
        """Forget the user's stored conversation for ``task`` (the shared chat by default)."""
        self.store.evict(history_key(user_id, task))

    def history_for(self, user_id: str, task: TaskVariant | None = None) -> Conversation:
        """The user's stored conversation for ``task``, as the store currently holds it."""
        return self.store.get(history_key(user_id, task))

    def _load_history(
        self,
        user_id: str,
        task: TaskVariant,
        override: Conversation | None
    ) -> Conversation:
        if override is not None:
            history = override
        elif task.keeps_history:
            history = self.store.get(history_key(user_id, task))
        else:
            history = EMPTY_CONVERSATION

        try:
            return validate_conversation(history)
        except InvalidHistoryState as e:
            logger.warning(
                f"Ignoring malformed history for {user_id}",
                {"task": task.name, "turns": len(history), "reason": str(e)}
            )
            return EMPTY_CONVERSATION

    async def _relay(
        self,
        user_id: str,
        new_message: str,
        task: TaskVariant,
        override: Conversation | None
    ) -> RelayOutcome:
        history = self._load_history(user_id, task, override)
        model = task.model or self.default_model

        logger.info(f"{task.name} request from {user_id} ({len(history)} prior turns)")

        try:
            generated = await self.client.complete(
                task.system_prompt,
                history,
                new_message,
                model
            )
        except CompletionFailed as e:
            logger.error(f"{task.name} completion failed for {user_id}", e)
            return RelayFailure(FailureKind.COMPLETION_FAILED, str(e), cause=e)

        rendered = task.post_process(generated)
        updated = extend_conversation(history, new_message, rendered)

        if task.keeps_history:
            self.store.set(history_key(user_id, task), updated)

        logger.info(f"{task.name} reply for {user_id} ({len(rendered)} chars)")
        return RelayResult(rendered_text=rendered, updated_conversation=updated)
