"""
Completion Client
=================

One call to a hosted chat-completion endpoint per assistant turn.

    system prompt + prior turns + new user message
                     │
                     ▼
        chat.completions.create (no streaming)
                     │
            ┌────────┴────────┐
            ▼                 ▼
      generated text    CompletionFailed(cause)

Every way the call can go wrong is surfaced as ``CompletionFailed``:
network errors and timeouts, non-2xx responses, a response without usable
text, and a reply stopped by the provider's content filter. Nothing is
retried here; the SDK's own retries are switched off too.
"""

from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from gptrelay.relay.turns import Turn, build_messages
from gptrelay.utils.logger import Logger

logger = Logger("Completion")


class CompletionFailed(Exception):
    """
    The completion call did not produce a usable reply.

    Attributes:
        cause: The underlying exception, or None for malformed/refused replies
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class CompletionClient:
    """
    Interface for producing one assistant turn.

    Implementations raise ``CompletionFailed`` for every failure and hold no
    per-call state.
    """

    async def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[Turn],
        new_message: str,
        model: str
    ) -> str:
        raise NotImplementedError


class OpenAICompletionClient(CompletionClient):
    """
    Completion client for the OpenAI chat completions API.

    Example:
        client = OpenAICompletionClient(api_key="sk-...")
        text = await client.complete(
            system_prompt="You are a helpful assistant.",
            prior_turns=(),
            new_message="hello",
            model="gpt-3.5-turbo",
        )
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        openai_client: AsyncOpenAI | None = None
    ):
        """
        Args:
            api_key: Completion API key (ignored when openai_client is given)
            timeout: Per-request timeout in seconds; None keeps the SDK default
            openai_client: Pre-built SDK client, mainly for tests
        """
        if openai_client is None:
            options = {"api_key": api_key, "max_retries": 0}
            if timeout is not None:
                options["timeout"] = timeout
            openai_client = AsyncOpenAI(**options)
        self.openai = openai_client

    async def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[Turn],
        new_message: str,
        model: str
    ) -> str:
        """
        Generate the next assistant turn.

        Args:
            system_prompt: Leading system message for this call only
            prior_turns: Stored conversation, oldest first
            new_message: The user's new message
            model: Model id to call

        Returns:
            The full generated text

        Raises:
            CompletionFailed: On any transport, remote or content failure
        """
        messages = build_messages(system_prompt, prior_turns, new_message)
        logger.debug(f"Calling {model}", {"messages": len(messages)})

        try:
            response = await self.openai.chat.completions.create(
                model=model,
                messages=messages,
            )
        except OpenAIError as e:
            raise CompletionFailed(f"Completion request to {model} failed", cause=e) from e

        if not response.choices:
            raise CompletionFailed(f"Completion from {model} had no choices")

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise CompletionFailed(f"Completion from {model} was blocked by the content filter")

        content = choice.message.content if choice.message else None
        if not content or not content.strip():
            raise CompletionFailed(f"Completion from {model} returned no text")

        return content
