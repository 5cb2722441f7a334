"""
Memory System
=============

Per-user conversation history. The bot keeps one conversation per Slack user
in process memory; nothing is written to disk.

Usage:
    from gptrelay.memory import InMemoryHistoryStore

    store = InMemoryHistoryStore()
    history = store.get("U123")
"""

from gptrelay.memory.history import HistoryStore, InMemoryHistoryStore

__all__ = ["HistoryStore", "InMemoryHistoryStore"]
