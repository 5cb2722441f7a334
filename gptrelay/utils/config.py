"""
Configuration Management
========================

All environment variables the bot reads are validated and typed here.
Values are loaded from the process environment after ``.env`` has been
applied by python-dotenv.

Required:
    SLACK_BOT_TOKEN       xoxb-... bot token used for every Web API call
    SLACK_SIGNING_SECRET  verifies inbound HTTP requests from Slack
    OPENAI_API_KEY        completion API key (OPENAI_KEY is accepted too)

Optional:
    SLACK_APP_TOKEN         xapp-... token; when set the bot uses Socket Mode
    OPENAI_MODEL            default model for task variants (gpt-3.5-turbo)
    OPENAI_TIMEOUT_SECONDS  per-request timeout for the completion API
    HISTORY_MAX_TURNS       cap on stored turns per user, 0 = unbounded
    PORT                    HTTP port when not using Socket Mode (3000)
    LOG_LEVEL               DEBUG, INFO, WARNING or ERROR (INFO)

Usage:
    from gptrelay.utils.config import get_config

    config = get_config()
    print(config.openai.model)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_PORT = 3000


def _required(name: str, *fallbacks: str) -> str:
    """
    Get a required environment variable.

    Args:
        name: The preferred variable name
        fallbacks: Older names checked in order when ``name`` is unset

    Raises:
        ValueError: If none of the names is set
    """
    for candidate in (name, *fallbacks):
        value = os.getenv(candidate)
        if value:
            return value
    raise ValueError(
        f"Missing required environment variable: {name}\n"
        f"Please ensure {name} is set in your .env file."
    )


def _optional(name: str, default: str | None) -> str | None:
    return os.getenv(name) or default


def _optional_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"Warning: {name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"Warning: {name} is not a valid number, using default: {default}")
        return default


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class SlackConfig:
    """Slack API configuration."""
    bot_token: str           # xoxb-... token for bot operations
    signing_secret: str      # For verifying Slack requests
    app_token: str | None    # xapp-... token, enables Socket Mode

    @property
    def socket_mode(self) -> bool:
        return self.app_token is not None


@dataclass(frozen=True)
class OpenAIConfig:
    """Completion API configuration."""
    api_key: str
    model: str                      # Default model when a task names none
    timeout_seconds: float | None   # None keeps the SDK default


@dataclass(frozen=True)
class HistoryConfig:
    """Conversation history configuration."""
    max_turns: int   # 0 means unbounded


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server configuration (used only outside Socket Mode)."""
    port: int


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.slack.bot_token
        config.openai.model
        config.history.max_turns
    """
    slack: SlackConfig
    openai: OpenAIConfig
    history: HistoryConfig
    server: ServerConfig
    log_level: str


def load_config() -> Config:
    """
    Load and validate configuration from the environment.

    Raises:
        ValueError: If required configuration is missing
    """
    load_dotenv()

    return Config(
        slack=SlackConfig(
            bot_token=_required("SLACK_BOT_TOKEN"),
            signing_secret=_required("SLACK_SIGNING_SECRET"),
            app_token=_optional("SLACK_APP_TOKEN", None),
        ),
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY", "OPENAI_KEY"),
            model=_optional("OPENAI_MODEL", DEFAULT_MODEL),
            timeout_seconds=_optional_float("OPENAI_TIMEOUT_SECONDS", None),
        ),
        history=HistoryConfig(
            max_turns=max(_optional_int("HISTORY_MAX_TURNS", 0), 0),
        ),
        server=ServerConfig(
            port=_optional_int("PORT", DEFAULT_PORT),
        ),
        log_level=_optional("LOG_LEVEL", "INFO"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Load the configuration on first use and return the cached instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
