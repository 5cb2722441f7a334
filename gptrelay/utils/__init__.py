"""
Utilities Module
================

Helpers shared by every layer of the bot:
- logger: context-prefixed console logging
- config: environment-backed configuration
"""

from gptrelay.utils.logger import Logger, logger
from gptrelay.utils.config import get_config, Config

__all__ = ["Logger", "logger", "get_config", "Config"]
