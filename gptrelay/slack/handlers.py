"""
Slack Handlers
==============

Binds Slack triggers to task variants of the relay.

Triggers:
- /polish <text>            polish task, result modal with Regenerate
- regenerate_polish action  polish the same text again
- /gpt <text>               start a new chat in a modal
- /gpt clear                forget the stored chat
- gpt_chat_modal submit     continue the chat
- regenerate_gpt action     replace the last chat reply
- app_mention               answer in the thread (ask task)
- message containing hello  greet the user

Handler Pattern:
    1. Acknowledge within 3 seconds (ack(), or a loading view)
    2. Relay the user's text
    3. Show the reply, or the generic apology on any failure

The user's text is never lost on failure: polish keeps it for "Try again",
chat puts it back into the message input.
"""

import re

from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncSay
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from gptrelay.relay import ConversationRelay, TaskVariant, get_task
from gptrelay.slack import views
from gptrelay.slack.presenter import ModalPresenter
from gptrelay.utils.logger import Logger

logger = Logger("Handlers")

MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+(?:\|[^>]*)?>")

POLISH_USAGE = "Please provide a message to polish. Usage: `/polish <message>`"
GPT_USAGE = "Please provide a message with the /gpt command. Usage: `/gpt <message>` or `/gpt clear`"
GPT_CLEARED = "Conversation history cleared! Starting fresh."
MENTION_GREETING = "Hi! Ask me anything by mentioning me with your question."
EMPTY_MESSAGE_ERROR = "Please enter a message."


def strip_mentions(text: str) -> str:
    """Remove ``<@U123>`` user mentions and surrounding whitespace."""
    return MENTION_PATTERN.sub("", text or "").strip()


class RelayHandlers:
    """
    Slack listeners for every trigger the bot supports.

    Example:
        handlers = RelayHandlers(relay)
        handlers.register(app)
    """

    def __init__(
        self,
        relay: ConversationRelay,
        polish_task: TaskVariant | None = None,
        chat_task: TaskVariant | None = None,
        ask_task: TaskVariant | None = None
    ):
        self.relay = relay
        self.polish_task = polish_task or get_task("polish")
        self.chat_task = chat_task or get_task("gpt")
        self.ask_task = ask_task or get_task("ask")

    def register(self, app: AsyncApp) -> None:
        """Attach all listeners to the Bolt app."""
        app.command("/polish")(self.handle_polish_command)
        app.action(views.REGENERATE_POLISH_ACTION)(self.handle_regenerate_polish)
        app.command("/gpt")(self.handle_gpt_command)
        app.view(views.GPT_CHAT_CALLBACK)(self.handle_chat_submission)
        app.action(views.REGENERATE_GPT_ACTION)(self.handle_regenerate_chat)
        app.event("app_mention")(self.handle_mention)
        app.message("hello")(self.handle_hello)

        logger.info("Registered Slack handlers")

    # ==========================================================================
    # /polish
    # ==========================================================================

    async def handle_polish_command(
        self,
        ack: AsyncAck,
        command: dict,
        client: AsyncWebClient
    ) -> None:
        await ack()

        presenter = ModalPresenter(client)
        user_id = command.get("user_id")
        channel_id = command.get("channel_id")
        text = (command.get("text") or "").strip()

        if not text:
            await presenter.notify(channel_id, user_id, POLISH_USAGE)
            return

        try:
            view_id = await presenter.open_loading(
                command.get("trigger_id"),
                "Polishing Message...",
                views.POLISH_LOADING_TEXT,
                callback_id=views.POLISH_LOADING_CALLBACK,
            )
        except SlackApiError as e:
            logger.error("Could not open the polish modal", e, {"user": user_id})
            await presenter.notify(channel_id, user_id)
            return

        await self._polish_into(presenter, view_id, user_id, text, channel_id)

    async def handle_regenerate_polish(
        self,
        ack: AsyncAck,
        body: dict,
        client: AsyncWebClient
    ) -> None:
        await ack()

        presenter = ModalPresenter(client)
        view = body.get("view") or {}
        actions = body.get("actions") or [{}]
        user_id = body["user"]["id"]
        text = views.polish_original(view, actions[0])
        channel_id = views.decode_metadata(view).get("channel_id")

        if not text.strip():
            logger.warning(f"Regenerate without original text from {user_id}")
            await presenter.show(view["id"], views.error_view())
            return

        await presenter.show_loading(view["id"], "Polishing Message...", views.POLISH_LOADING_TEXT)
        await self._polish_into(presenter, view["id"], user_id, text, channel_id)

    async def _polish_into(
        self,
        presenter: ModalPresenter,
        view_id: str,
        user_id: str,
        text: str,
        channel_id: str | None
    ) -> None:
        outcome = await self.relay.respond(user_id, text, self.polish_task)

        if outcome.success:
            await presenter.show(
                view_id,
                views.polish_result_view(text, outcome.rendered_text, channel_id),
            )
        else:
            await presenter.show(
                view_id,
                views.error_view(
                    retry_action_id=views.REGENERATE_POLISH_ACTION,
                    metadata={"channel_id": channel_id, "original_message": text},
                ),
            )

    # ==========================================================================
    # /gpt chat
    # ==========================================================================

    async def handle_gpt_command(
        self,
        ack: AsyncAck,
        command: dict,
        client: AsyncWebClient
    ) -> None:
        await ack()

        presenter = ModalPresenter(client)
        user_id = command.get("user_id")
        channel_id = command.get("channel_id")
        text = (command.get("text") or "").strip()

        if text.lower() == "clear":
            self.relay.reset(user_id, self.chat_task)
            await presenter.notify(channel_id, user_id, GPT_CLEARED)
            return

        if not text:
            await presenter.notify(channel_id, user_id, GPT_USAGE)
            return

        try:
            view_id = await presenter.open_loading(
                command.get("trigger_id"),
                self.chat_task.title,
                views.GPT_LOADING_TEXT,
                callback_id=views.GPT_LOADING_CALLBACK,
            )
        except SlackApiError as e:
            logger.error("Could not open the chat modal", e, {"user": user_id})
            await presenter.notify(channel_id, user_id)
            return

        # A slash command always starts a new conversation
        outcome = await self.relay.respond(user_id, text, self.chat_task, history=())

        if outcome.success:
            await presenter.show(view_id, views.chat_view(outcome.updated_conversation, self.chat_task.title))
        else:
            await presenter.show(view_id, views.chat_view(
                (), self.chat_task.title, draft=text, notice=views.GENERIC_ERROR, fresh=True,
            ))

    async def handle_chat_submission(
        self,
        ack: AsyncAck,
        body: dict,
        view: dict,
        client: AsyncWebClient
    ) -> None:
        block_id, message = views.chat_message(view)

        if not message.strip():
            await ack(
                response_action="errors",
                errors={block_id or views.MESSAGE_BLOCK_PREFIX: EMPTY_MESSAGE_ERROR},
            )
            return

        await ack(
            response_action="update",
            view=views.loading_view("Processing...", views.GPT_LOADING_TEXT),
        )

        presenter = ModalPresenter(client)
        user_id = body["user"]["id"]
        # The opener of a failed /gpt never reached the store, so start over
        fresh = views.starts_fresh(view)
        outcome = await self.relay.respond(
            user_id, message, self.chat_task, history=() if fresh else None,
        )

        if outcome.success:
            await presenter.show(view["id"], views.chat_view(outcome.updated_conversation, self.chat_task.title))
        else:
            await presenter.show(view["id"], views.chat_view(
                () if fresh else self.relay.history_for(user_id, self.chat_task),
                self.chat_task.title,
                draft=message,
                notice=views.GENERIC_ERROR,
                fresh=fresh,
            ))

    async def handle_regenerate_chat(
        self,
        ack: AsyncAck,
        body: dict,
        client: AsyncWebClient
    ) -> None:
        await ack()

        presenter = ModalPresenter(client)
        user_id = body["user"]["id"]
        view_id = body["view"]["id"]

        await presenter.show_loading(view_id, self.chat_task.title, views.GPT_LOADING_TEXT)
        outcome = await self.relay.regenerate(user_id, self.chat_task)

        if outcome.success:
            await presenter.show(view_id, views.chat_view(outcome.updated_conversation, self.chat_task.title))
        else:
            await presenter.show(view_id, views.chat_view(
                self.relay.history_for(user_id, self.chat_task),
                self.chat_task.title,
                notice=views.GENERIC_ERROR,
            ))

    # ==========================================================================
    # Events
    # ==========================================================================

    async def handle_mention(self, event: dict, say: AsyncSay) -> None:
        """Answer an @mention in the thread it came from."""
        user_id = event.get("user")
        thread_ts = event.get("thread_ts") or event.get("ts")
        text = strip_mentions(event.get("text", ""))

        if not text:
            await say(text=MENTION_GREETING, thread_ts=thread_ts)
            return

        logger.info(f"Mention from {user_id} in {event.get('channel')}: {text[:50]}...")
        outcome = await self.relay.respond(user_id, text, self.ask_task)

        reply = outcome.rendered_text if outcome.success else views.GENERIC_ERROR
        try:
            await say(text=reply, thread_ts=thread_ts)
        except SlackApiError as e:
            logger.error("Could not reply to mention", e, {"user": user_id})

    async def handle_hello(self, message: dict, say: AsyncSay) -> None:
        await say(f"Hey there <@{message.get('user')}>! 👋")
