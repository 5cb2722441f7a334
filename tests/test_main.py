"""Tests for application wiring."""
from unittest.mock import MagicMock, patch

from gptrelay.main import build_relay, create_app
from gptrelay.memory import InMemoryHistoryStore
from gptrelay.relay import OpenAICompletionClient
from gptrelay.utils.config import Config, HistoryConfig, OpenAIConfig, ServerConfig, SlackConfig


def _config(max_turns=0):
    return Config(
        slack=SlackConfig(bot_token="xoxb-test", signing_secret="secret", app_token=None),
        openai=OpenAIConfig(api_key="sk-test", model="gpt-4o-mini", timeout_seconds=None),
        history=HistoryConfig(max_turns=max_turns),
        server=ServerConfig(port=3000),
        log_level="INFO",
    )


class TestWiring:

    def test_build_relay(self):
        relay = build_relay(_config(max_turns=10))

        assert isinstance(relay.store, InMemoryHistoryStore)
        assert relay.store.max_turns == 10
        assert isinstance(relay.client, OpenAICompletionClient)
        assert relay.default_model == "gpt-4o-mini"

    @patch("gptrelay.main.create_slack_app")
    def test_create_app_registers_handlers(self, mock_create_slack_app):
        app = MagicMock()
        mock_create_slack_app.return_value = app

        assert create_app(_config()) is app
        app.command.assert_any_call("/gpt")
        app.event.assert_called_once_with("app_mention")
