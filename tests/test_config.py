"""Unit tests for environment configuration."""
from unittest.mock import patch

import pytest

from gptrelay.utils import config as config_module
from gptrelay.utils.config import DEFAULT_MODEL, load_config

REQUIRED = {
    "SLACK_BOT_TOKEN": "xoxb-test",
    "SLACK_SIGNING_SECRET": "secret",
    "OPENAI_API_KEY": "sk-test",
}

OPTIONAL = [
    "SLACK_APP_TOKEN",
    "OPENAI_KEY",
    "OPENAI_MODEL",
    "OPENAI_TIMEOUT_SECONDS",
    "HISTORY_MAX_TURNS",
    "PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def env(monkeypatch):
    """A clean environment holding only the required variables."""
    for name in OPTIONAL + list(REQUIRED):
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    with patch.object(config_module, "load_dotenv"):
        yield monkeypatch


class TestLoadConfig:

    def test_defaults(self, env):
        config = load_config()

        assert config.slack.bot_token == "xoxb-test"
        assert config.slack.socket_mode is False
        assert config.openai.model == DEFAULT_MODEL
        assert config.openai.timeout_seconds is None
        assert config.history.max_turns == 0
        assert config.server.port == 3000

    def test_missing_required(self, env):
        env.delenv("SLACK_BOT_TOKEN")

        with pytest.raises(ValueError, match="SLACK_BOT_TOKEN"):
            load_config()

    def test_legacy_openai_key_name(self, env):
        env.delenv("OPENAI_API_KEY")
        env.setenv("OPENAI_KEY", "sk-legacy")

        assert load_config().openai.api_key == "sk-legacy"

    def test_optional_values(self, env):
        env.setenv("SLACK_APP_TOKEN", "xapp-test")
        env.setenv("OPENAI_MODEL", "gpt-4o-mini")
        env.setenv("OPENAI_TIMEOUT_SECONDS", "30")
        env.setenv("HISTORY_MAX_TURNS", "20")
        env.setenv("PORT", "8080")

        config = load_config()

        assert config.slack.socket_mode is True
        assert config.openai.model == "gpt-4o-mini"
        assert config.openai.timeout_seconds == 30.0
        assert config.history.max_turns == 20
        assert config.server.port == 8080

    def test_invalid_numbers_fall_back(self, env):
        env.setenv("PORT", "eighty")
        env.setenv("OPENAI_TIMEOUT_SECONDS", "soon")
        env.setenv("HISTORY_MAX_TURNS", "-4")

        config = load_config()

        assert config.server.port == 3000
        assert config.openai.timeout_seconds is None
        assert config.history.max_turns == 0

    def test_get_config_is_cached(self, env):
        config_module.reset_config()
        try:
            assert config_module.get_config() is config_module.get_config()
        finally:
            config_module.reset_config()
