"""
Block Kit Views
===============

Builders for every modal the bot shows. Handlers never assemble blocks
themselves; they pick a builder and hand the result to the presenter.

Slack limits respected here:
- a modal holds at most 100 blocks
- a section's text is at most 3000 characters
- private_metadata is at most 3000 characters
- a button value is at most 2000 characters
"""

import json
from typing import Sequence

from gptrelay.relay.turns import Turn, exchanges

GENERIC_ERROR = "Sorry, there was an error processing your request. Please try again."

MAX_BLOCKS = 100
MAX_SECTION_TEXT = 3000
MAX_METADATA = 3000
MAX_BUTTON_VALUE = 2000
MAX_TITLE = 24

# Callback and action ids shared with the handlers
POLISH_LOADING_CALLBACK = "polish_loading_modal"
POLISH_RESULT_CALLBACK = "polish_confirm_modal"
GPT_LOADING_CALLBACK = "gpt_loading_modal"
GPT_CHAT_CALLBACK = "gpt_chat_modal"
REGENERATE_POLISH_ACTION = "regenerate_polish"
REGENERATE_GPT_ACTION = "regenerate_gpt"
MESSAGE_BLOCK_PREFIX = "message_input"
MESSAGE_ACTION = "message"

POLISH_LOADING_TEXT = "✨ *AI is polishing your message...* ✨\n\nThis will just take a moment."
GPT_LOADING_TEXT = "✨ *GPT is thinking...* ✨"


def clip(text: str, limit: int = MAX_SECTION_TEXT) -> str:
    """Shorten text to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def _plain(text: str, emoji: bool = True) -> dict:
    return {"type": "plain_text", "text": text, "emoji": emoji}


def _title(text: str) -> dict:
    return _plain(clip(text, MAX_TITLE))


def section(text: str, plain: bool = False) -> dict:
    """A section block; mrkdwn unless ``plain`` is set."""
    if plain:
        return {"type": "section", "text": _plain(clip(text))}
    return {"type": "section", "text": {"type": "mrkdwn", "text": clip(text)}}


def divider() -> dict:
    return {"type": "divider"}


def context(text: str) -> dict:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": clip(text)}]}


def button(text: str, action_id: str, value: str | None = None) -> dict:
    element = {"type": "button", "text": _plain(text), "action_id": action_id}
    if value is not None:
        # Kept unmarked so the value can stand in for the text it carries
        element["value"] = value[:MAX_BUTTON_VALUE]
    return element


def encode_metadata(data: dict) -> str:
    """
    Serialize private_metadata, shortening string values until it fits.

    Longest strings are shortened first; keys are never dropped.
    """
    data = dict(data)
    encoded = json.dumps(data)
    while len(encoded) > MAX_METADATA:
        key = max(
            (k for k, v in data.items() if isinstance(v, str)),
            key=lambda k: len(data[k]),
            default=None,
        )
        if key is None or not data[key]:
            break
        value = data[key]
        # Escaped characters take several bytes, so cut in proportion
        ratio = len(json.dumps(value)) / len(value)
        cut = int((len(encoded) - MAX_METADATA) / ratio) + 1
        data[key] = value[:max(len(value) - cut, 0)]
        encoded = json.dumps(data)
    return encoded


def decode_metadata(view: dict) -> dict:
    """Read the private_metadata of a view; malformed or missing metadata is {}."""
    raw = (view or {}).get("private_metadata") or ""
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


# ==============================================================================
# Shared views
# ==============================================================================

def loading_view(title: str, text: str, callback_id: str | None = None) -> dict:
    """A modal that only says the bot is working."""
    view = {
        "type": "modal",
        "title": _title(title),
        "blocks": [section(text)],
    }
    if callback_id:
        view["callback_id"] = callback_id
    return view


def error_view(
    title: str = "Error",
    retry_action_id: str | None = None,
    metadata: dict | None = None
) -> dict:
    """
    The generic apology modal.

    When ``retry_action_id`` is given a "Try again" button is added, and
    ``metadata`` carries whatever the retry needs (such as the user's text).
    """
    blocks = [section(GENERIC_ERROR)]
    if retry_action_id:
        blocks.append({
            "type": "actions",
            "block_id": "retry_actions",
            "elements": [button("Try again", retry_action_id)],
        })

    view = {
        "type": "modal",
        "title": _title(title),
        "close": _plain("Close"),
        "blocks": blocks,
    }
    if metadata:
        view["private_metadata"] = encode_metadata(metadata)
    return view


# ==============================================================================
# /polish
# ==============================================================================

def polish_result_view(original: str, polished: str, channel_id: str | None = None) -> dict:
    """Show the original and polished message with a Regenerate button."""
    return {
        "type": "modal",
        "callback_id": POLISH_RESULT_CALLBACK,
        "title": _title("Polished Message"),
        "close": _plain("Close"),
        "blocks": [
            section("*Original Message:*\n" + original),
            section("✨ *Your polished message is ready:* ✨"),
            section(polished, plain=True),
            context("👆 *Tip:* Select the text above and use Cmd/Ctrl+C to copy"),
            {
                "type": "actions",
                "block_id": "message_actions",
                "elements": [button("Regenerate", REGENERATE_POLISH_ACTION, original)],
            },
        ],
        "private_metadata": encode_metadata({
            "channel_id": channel_id,
            "original_message": original,
        }),
    }


def polish_original(view: dict, action: dict | None = None) -> str:
    """
    The text a polish modal was opened for.

    Both the metadata and the button value may hold a shortened copy; the
    longer of the two is the closest to what the user wrote.
    """
    from_metadata = decode_metadata(view).get("original_message") or ""
    from_button = (action or {}).get("value") or ""
    return max(from_metadata, from_button, key=len)


# ==============================================================================
# /gpt chat
# ==============================================================================

def message_block_id(conversation: Sequence[Turn]) -> str:
    # A new block id per turn makes Slack render an empty input after each send
    return f"{MESSAGE_BLOCK_PREFIX}_{len(conversation)}"


def chat_view(
    conversation: Sequence[Turn],
    title: str = "Chat with GPT",
    draft: str | None = None,
    notice: str | None = None,
    fresh: bool = False
) -> dict:
    """
    The chat transcript with an input for the next message.

    Args:
        conversation: Stored conversation, oldest first
        title: Modal title
        draft: Text to pre-fill the input with (e.g. after a failed send)
        notice: Short status line shown above the input
        fresh: The next send starts a new conversation instead of continuing
            the stored one (set when a /gpt opener failed)
    """
    pairs = exchanges(conversation)

    # Fixed blocks: input + actions, plus optional notice and "earlier" marker
    reserved = 2 + (1 if notice else 0) + 1
    max_pairs = (MAX_BLOCKS - reserved) // 4
    hidden = max(len(pairs) - max_pairs, 0)

    blocks = []
    if hidden:
        blocks.append(context(f"_{hidden} earlier exchange(s) not shown_"))

    for user_turn, reply in pairs[hidden:]:
        blocks.append(section("*You:*\n" + user_turn.content))
        blocks.append(divider())
        if reply is not None:
            blocks.append(section("*GPT:*\n" + reply.content))
            blocks.append(divider())

    if notice:
        blocks.append(context(notice))

    element = {
        "type": "plain_text_input",
        "multiline": True,
        "action_id": MESSAGE_ACTION,
        "placeholder": _plain("Continue the conversation...", emoji=False),
    }
    if draft:
        element["initial_value"] = clip(draft)

    blocks.append({
        "type": "input",
        "block_id": message_block_id(conversation),
        "element": element,
        "label": _plain("Your message"),
    })

    if conversation:
        blocks.append({
            "type": "actions",
            "block_id": "chat_actions",
            "elements": [button("Regenerate", REGENERATE_GPT_ACTION)],
        })

    view = {
        "type": "modal",
        "callback_id": GPT_CHAT_CALLBACK,
        "title": _title(title),
        "submit": _plain("Send"),
        "close": _plain("Close"),
        "blocks": blocks,
    }
    if fresh:
        view["private_metadata"] = encode_metadata({"fresh": True})
    return view


def starts_fresh(view: dict) -> bool:
    """Whether a chat modal's next message should ignore the stored conversation."""
    return bool(decode_metadata(view).get("fresh"))


def chat_message(view: dict) -> tuple[str | None, str]:
    """
    Read the submitted message from a chat modal.

    Returns:
        (block_id, text); block_id is None when the view has no message input
    """
    values = (view.get("state") or {}).get("values") or {}
    for block_id, actions in values.items():
        if block_id.startswith(MESSAGE_BLOCK_PREFIX):
            value = (actions.get(MESSAGE_ACTION) or {}).get("value")
            return block_id, value or ""
    return None, ""
