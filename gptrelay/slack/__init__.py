"""
Slack Integration
=================

Everything that talks to Slack:
- Bolt app and connection setup
- Trigger handlers (commands, actions, modal submissions, mentions)
- Block Kit views and the loading-then-result modal presenter
"""

from gptrelay.slack.app import create_slack_app, create_socket_handler
from gptrelay.slack.handlers import RelayHandlers
from gptrelay.slack.presenter import ModalPresenter

__all__ = ["create_slack_app", "create_socket_handler", "RelayHandlers", "ModalPresenter"]
