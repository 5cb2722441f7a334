"""Shared fixtures for the relay tests."""
import pytest

from gptrelay.memory import InMemoryHistoryStore
from gptrelay.relay import CompletionClient, CompletionFailed, ConversationRelay


class StubCompletionClient(CompletionClient):
    """Completion client that replays canned replies and records every call."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def complete(self, system_prompt, prior_turns, new_message, model):
        self.calls.append({
            "system_prompt": system_prompt,
            "prior_turns": tuple(prior_turns),
            "new_message": new_message,
            "model": model,
        })
        if not self.replies:
            return f"reply to {new_message}"
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def stub_client():
    return StubCompletionClient()


@pytest.fixture
def relay(store, stub_client):
    return ConversationRelay(store, stub_client, default_model="test-model")


@pytest.fixture
def failing_client():
    return StubCompletionClient([CompletionFailed("boom", cause=RuntimeError("network down"))])
