"""
GPT Relay Bot - Main Entry Point
================================

1. Loads configuration
2. Builds the history store, completion client and relay
3. Creates the Slack app and registers handlers
4. Serves over Socket Mode or HTTP

Run with:
    python -m gptrelay.main

Or after installing:
    gptrelay
"""

import asyncio
import signal
import sys

from gptrelay.memory import InMemoryHistoryStore
from gptrelay.relay import ConversationRelay, OpenAICompletionClient
from gptrelay.slack.app import create_slack_app, create_socket_handler
from gptrelay.slack.handlers import RelayHandlers
from gptrelay.utils.config import Config, get_config
from gptrelay.utils.logger import Logger

main_logger = Logger("Main")


def build_relay(config: Config) -> ConversationRelay:
    """Wire the relay to an in-memory store and the OpenAI client."""
    store = InMemoryHistoryStore(max_turns=config.history.max_turns)
    client = OpenAICompletionClient(
        api_key=config.openai.api_key,
        timeout=config.openai.timeout_seconds,
    )
    return ConversationRelay(store, client, default_model=config.openai.model)


def create_app(config: Config):
    """Build the Bolt app with every handler registered."""
    main_logger.info("Creating relay...")
    relay = build_relay(config)

    main_logger.info("Creating Slack app...")
    app = create_slack_app(config)
    RelayHandlers(relay).register(app)

    return app


async def serve_socket_mode(app, config: Config) -> None:
    """Run the app over Socket Mode until interrupted."""
    handler = create_socket_handler(app, config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(_shutdown(handler))
        )

    main_logger.info("GPT Relay is running in Socket Mode! Press Ctrl+C to stop.")
    await handler.start_async()


async def _shutdown(handler) -> None:
    main_logger.info("Shutting down...")
    await handler.close_async()
    main_logger.info("Shutdown complete")


def run() -> None:
    """Synchronous entry point used by the ``gptrelay`` command."""
    main_logger.info("Starting GPT Relay...")

    try:
        config = get_config()
        app = create_app(config)
    except ValueError as e:
        main_logger.error("Failed to start bot", e)
        sys.exit(1)

    try:
        if config.slack.socket_mode:
            asyncio.run(serve_socket_mode(app, config))
        else:
            main_logger.info(f"GPT Relay is listening on port {config.server.port}")
            app.start(port=config.server.port)
    except KeyboardInterrupt:
        main_logger.info("Received interrupt signal")


if __name__ == "__main__":
    run()
