"""
Task Variants
=============

Every bot capability is a row in ``TASK_VARIANTS``: a system prompt, the model
to call, how to post-process the reply and whether the exchange is remembered.

Adding a capability means adding a row here and binding a Slack trigger to it
in ``gptrelay.slack.handlers``; the relay itself does not change.
"""

from dataclasses import dataclass

from gptrelay.relay.formatting import PostProcessor, plain_text, to_slack_mrkdwn


@dataclass(frozen=True)
class TaskVariant:
    """
    Configuration that selects the bot's behavior for one kind of trigger.

    Attributes:
        name: Identifier used by the Slack handlers
        title: Short human-readable name, used as the modal title
        system_prompt: Prompt sent as the leading system message
        model: Model id, or None to use the configured default
        post_process: Rewrites the generated text before it is shown and stored
        keeps_history: Whether exchanges are read from and written to the store
        history_namespace: Separates this variant's stored conversation from the
            shared chat one; empty means the shared chat conversation
    """
    name: str
    title: str
    system_prompt: str
    model: str | None = None
    post_process: PostProcessor = plain_text
    keeps_history: bool = True
    history_namespace: str = ""


POLISH_PROMPT = (
    "You are a professional editor. Your task is to polish and optimize the given "
    "message to make it more professional, clear, and effective while maintaining "
    "its original meaning. Keep the tone gentle and professional."
)

SLACK_FORMAT_GUIDE = (
    "Format your responses using Slack-compatible markdown when appropriate:\n"
    "- Use *bold* for emphasis\n"
    "- Use `code` for code snippets or technical terms\n"
    "- Use ```language\ncode block``` for multi-line code\n"
    "- Use > for quotes\n"
    "- Use • or - for bullet points\n"
)

CHAT_PROMPT = (
    "You are a helpful assistant. "
    + SLACK_FORMAT_GUIDE
    + "Be concise but thorough in your responses."
)

ASK_PROMPT = (
    "You are a helpful assistant answering a question someone asked you in a "
    "Slack channel. Other people can read your answer, so keep it short and to "
    "the point. "
    + SLACK_FORMAT_GUIDE
)


TASK_VARIANTS: dict[str, TaskVariant] = {
    task.name: task
    for task in (
        TaskVariant(
            name="polish",
            title="Polished Message",
            system_prompt=POLISH_PROMPT,
            post_process=plain_text,
            keeps_history=False,
        ),
        TaskVariant(
            name="gpt",
            title="Chat with GPT",
            system_prompt=CHAT_PROMPT,
            post_process=to_slack_mrkdwn,
        ),
        TaskVariant(
            name="ask",
            title="Ask GPT",
            system_prompt=ASK_PROMPT,
            post_process=to_slack_mrkdwn,
            history_namespace="ask",
        ),
    )
}


def history_key(user_id: str, task: TaskVariant | None = None) -> str:
    """Store key for a user's conversation under ``task``."""
    if task is None or not task.history_namespace:
        return user_id
    return f"{task.history_namespace}:{user_id}"

def get_task(name: str) -> TaskVariant:
    """
    Look up a task variant by name.

    Raises:
        KeyError: If no variant has that name
    """
    try:
        return TASK_VARIANTS[name]
    except KeyError:
        raise KeyError(f"Unknown task variant: {name!r}") from None
