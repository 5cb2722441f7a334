"""
GPT Relay - Slack Bot for Chat Completions
==========================================

Relays Slack slash commands, modals and mentions to a chat completion API
and shows the reply back in Slack.

This package provides:
- A per-user, history-backed conversation relay
- A table of task variants (polish, chat, channel Q&A)
- Slack handlers that present replies through modals and threads
"""

__version__ = "1.0.0"
