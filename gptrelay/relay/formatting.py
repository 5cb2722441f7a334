"""
Reply Post-Processing
=====================

Rules applied to generated text before it is shown in Slack.

Models answer in CommonMark, while Slack renders its own "mrkdwn" dialect:

    CommonMark              Slack mrkdwn
    **bold** / __bold__     *bold*
    [label](https://x.y)    <https://x.y|label>
    ## Heading              *Heading*

Every rule here is idempotent: running it over its own output changes
nothing, so a reply can safely be post-processed more than once (for example
when a stored reply is re-rendered).
"""

import re
from typing import Callable

PostProcessor = Callable[[str], str]

_CODE_SPANS = re.compile(r"(```.*?```|`[^`\n]+`)", re.DOTALL)

_MRKDWN_RULES = (
    (re.compile(r"^#{1,6}[ \t]+(\S.*?)[ \t]*#*[ \t]*$", re.MULTILINE), r"*\1*"),
    (re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*"), r"*\1*"),
    (re.compile(r"__(?=\S)(.+?)(?<=\S)__"), r"*\1*"),
    (re.compile(r"\[([^\]\n]+)\]\((https?://[^)\s]+)\)"), r"<\2|\1>"),
)


def _apply_rules(text: str) -> str:
    # Each rule removes the syntax it matches, so this loop terminates
    while True:
        rewritten = text
        for pattern, replacement in _MRKDWN_RULES:
            rewritten = pattern.sub(replacement, rewritten)
        if rewritten == text:
            return text
        text = rewritten


def to_slack_mrkdwn(text: str) -> str:
    """
    Rewrite CommonMark emphasis, links and headings into Slack mrkdwn.

    Fenced code blocks and inline code spans are passed through untouched.

    Example:
        >>> to_slack_mrkdwn("**Note:** see [docs](https://example.com)")
        '*Note:* see <https://example.com|docs>'
    """
    parts = _CODE_SPANS.split(text.strip())
    # Odd indexes are the captured code spans
    return "".join(
        part if index % 2 else _apply_rules(part)
        for index, part in enumerate(parts)
    )


def plain_text(text: str) -> str:
    """Leave the reply as written, minus surrounding whitespace."""
    return text.strip()
