"""
Modal Presenter
===============

The two-phase UI flow used by every modal trigger:

    1. open (or switch to) a loading view   ──  must happen within 3 seconds
    2. replace it with the final view       ──  whenever the relay returns

The relay knows nothing about this timing; handlers call ``open_loading`` /
``show_loading`` before relaying and ``show`` afterwards.
"""

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from gptrelay.slack.views import GENERIC_ERROR, loading_view
from gptrelay.utils.logger import Logger

logger = Logger("Presenter")


class ModalPresenter:
    """
    Shows and updates modals and ephemeral notices for one request.

    Example:
        presenter = ModalPresenter(client)
        view_id = await presenter.open_loading(trigger_id, "Chat with GPT", "Thinking...")
        ...
        await presenter.show(view_id, chat_view(conversation))
    """

    def __init__(self, client: AsyncWebClient):
        self.client = client

    async def open_loading(
        self,
        trigger_id: str,
        title: str,
        text: str,
        callback_id: str | None = None
    ) -> str:
        """
        Open a new modal in its loading state.

        Returns:
            The view id to update once the reply is ready

        Raises:
            SlackApiError: If Slack refuses to open the modal
        """
        response = await self.client.views_open(
            trigger_id=trigger_id,
            view=loading_view(title, text, callback_id),
        )
        view_id = response["view"]["id"]
        logger.debug(f"Opened loading modal {view_id}")
        return view_id

    async def show_loading(self, view_id: str, title: str, text: str) -> bool:
        """Switch an open modal back to a loading state."""
        return await self.show(view_id, loading_view(title, text))

    async def show(self, view_id: str, view: dict) -> bool:
        """
        Replace the content of an open modal.

        Returns:
            False if Slack rejected the update (the error is logged)
        """
        try:
            await self.client.views_update(view_id=view_id, view=view)
        except SlackApiError as e:
            logger.error(f"Failed to update modal {view_id}", e)
            return False
        return True

    async def notify(self, channel_id: str, user_id: str, text: str = GENERIC_ERROR) -> bool:
        """
        Post an ephemeral message only ``user_id`` can see.

        Returns:
            False if the message could not be posted (the error is logged)
        """
        try:
            await self.client.chat_postEphemeral(channel=channel_id, user=user_id, text=text)
        except SlackApiError as e:
            logger.error(f"Failed to post ephemeral message to {user_id}", e)
            return False
        return True
