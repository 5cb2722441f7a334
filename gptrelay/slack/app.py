"""
Slack Bolt App
==============

Creates the Bolt application and the connection it runs on.

Two ways to receive events:
- Socket Mode (SLACK_APP_TOKEN set): a WebSocket to Slack, no public URL
- HTTP (default): Bolt's aiohttp server on PORT, for Events API and
  Interactivity request URLs

Request signature verification is done by Bolt in both modes.
"""

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from gptrelay.utils.config import Config, get_config
from gptrelay.utils.logger import Logger

logger = Logger("SlackApp")


def create_slack_app(config: Config | None = None) -> AsyncApp:
    """
    Create the Bolt app for the workspace bot token.

    Args:
        config: Configuration to use; loaded from the environment if omitted
    """
    config = config or get_config()

    app = AsyncApp(
        token=config.slack.bot_token,
        signing_secret=config.slack.signing_secret,
    )

    logger.info("Slack Bolt app created")

    return app


def create_socket_handler(app: AsyncApp, config: Config | None = None) -> AsyncSocketModeHandler:
    """
    Create a Socket Mode handler for the app.

    Raises:
        ValueError: If SLACK_APP_TOKEN is not configured
    """
    config = config or get_config()
    if not config.slack.socket_mode:
        raise ValueError("Socket Mode requires SLACK_APP_TOKEN")

    handler = AsyncSocketModeHandler(
        app=app,
        app_token=config.slack.app_token
    )

    logger.info("Socket Mode handler created")

    return handler
