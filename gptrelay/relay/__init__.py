"""
Relay System
============

The part of the bot that talks to the language model:
1. Looks up the task variant for the trigger (prompt, model, formatting)
2. Loads the user's conversation
3. Calls the completion API
4. Records the exchange and returns the rendered reply

This module provides:
- ConversationRelay: the per-user, history-backed relay
- OpenAICompletionClient: the completion API wrapper
- TASK_VARIANTS / get_task: the task table
"""

from gptrelay.relay.completion import CompletionClient, CompletionFailed, OpenAICompletionClient
from gptrelay.relay.core import ConversationRelay, FailureKind, RelayFailure, RelayResult
from gptrelay.relay.tasks import TASK_VARIANTS, TaskVariant, get_task
from gptrelay.relay.turns import Conversation, Turn

__all__ = [
    "CompletionClient",
    "CompletionFailed",
    "OpenAICompletionClient",
    "ConversationRelay",
    "FailureKind",
    "RelayFailure",
    "RelayResult",
    "TASK_VARIANTS",
    "TaskVariant",
    "get_task",
    "Conversation",
    "Turn",
]
