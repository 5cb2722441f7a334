"""Tests for the Slack trigger handlers, with mocked Slack clients."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from slack_sdk.errors import SlackApiError

from conftest import StubCompletionClient
from gptrelay.memory import InMemoryHistoryStore
from gptrelay.relay import CompletionFailed, ConversationRelay, Turn
from gptrelay.slack import views
from gptrelay.slack.handlers import (
    GPT_CLEARED,
    POLISH_USAGE,
    RelayHandlers,
    strip_mentions,
)


def _slack_client():
    client = MagicMock()
    client.views_open = AsyncMock(return_value={"view": {"id": "V1"}})
    client.views_update = AsyncMock(return_value={"ok": True})
    client.chat_postEphemeral = AsyncMock(return_value={"ok": True})
    return client


def _last_view(client):
    return client.views_update.await_args.kwargs["view"]


def _section_texts(view):
    return [b["text"]["text"] for b in view["blocks"] if b["type"] == "section"]


@pytest.fixture
def completion():
    return StubCompletionClient()


@pytest.fixture
def history():
    return InMemoryHistoryStore()


@pytest.fixture
def handlers(history, completion):
    return RelayHandlers(ConversationRelay(history, completion))


@pytest.fixture
def client():
    return _slack_client()


@pytest.fixture
def ack():
    return AsyncMock()


def _command(text, **extra):
    command = {"user_id": "U1", "channel_id": "C1", "trigger_id": "T1", "text": text}
    command.update(extra)
    return command


class TestPolishCommand:
    """Test suite for /polish and its Regenerate button."""

    @pytest.mark.asyncio
    async def test_loading_then_result(self, handlers, completion, client, ack):
        completion.replies = ["Polished."]

        await handlers.handle_polish_command(ack, _command("fix this pls"), client)

        ack.assert_awaited_once()
        loading = client.views_open.await_args.kwargs["view"]
        assert loading["callback_id"] == views.POLISH_LOADING_CALLBACK
        assert client.views_update.await_args.kwargs["view_id"] == "V1"
        result = _last_view(client)
        assert result["callback_id"] == views.POLISH_RESULT_CALLBACK
        assert "Polished." in _section_texts(result)

    @pytest.mark.asyncio
    async def test_empty_text_shows_usage(self, handlers, completion, client, ack):
        await handlers.handle_polish_command(ack, _command("  "), client)

        client.chat_postEphemeral.assert_awaited_once_with(channel="C1", user="U1", text=POLISH_USAGE)
        client.views_open.assert_not_awaited()
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_failure_shows_apology_with_retry(self, handlers, completion, client, ack):
        completion.replies = [CompletionFailed("down")]

        await handlers.handle_polish_command(ack, _command("fix this"), client)

        view = _last_view(client)
        assert _section_texts(view) == [views.GENERIC_ERROR]
        assert views.polish_original(view) == "fix this"

    @pytest.mark.asyncio
    async def test_modal_open_failure_falls_back_to_ephemeral(self, handlers, completion, client, ack):
        client.views_open.side_effect = SlackApiError("expired", {"ok": False, "error": "expired_trigger_id"})

        await handlers.handle_polish_command(ack, _command("fix this"), client)

        client.chat_postEphemeral.assert_awaited_once_with(channel="C1", user="U1", text=views.GENERIC_ERROR)
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_regenerate_uses_original_text(self, handlers, completion, client, ack):
        completion.replies = ["Second try."]
        view = views.polish_result_view("fix this", "First try.", channel_id="C1")
        view["id"] = "V9"
        body = {
            "user": {"id": "U1"},
            "view": view,
            "actions": [{"action_id": views.REGENERATE_POLISH_ACTION, "value": "fix this"}],
        }

        await handlers.handle_regenerate_polish(ack, body, client)

        assert completion.calls[0]["new_message"] == "fix this"
        assert client.views_update.await_count == 2
        assert client.views_update.await_args_list[0].kwargs["view"]["blocks"][0]["text"]["text"] == views.POLISH_LOADING_TEXT
        assert "Second try." in _section_texts(_last_view(client))


class TestGptCommand:
    """Test suite for /gpt and the chat modal."""

    @pytest.mark.asyncio
    async def test_starts_fresh_conversation(self, handlers, history, completion, client, ack):
        history.set("U1", (Turn("user", "old"), Turn("assistant", "old reply")))
        completion.replies = ["Hello!"]

        await handlers.handle_gpt_command(ack, _command("hi"), client)

        assert completion.calls[0]["prior_turns"] == ()
        assert history.get("U1") == (Turn("user", "hi"), Turn("assistant", "Hello!"))
        assert _section_texts(_last_view(client)) == ["*You:*\nhi", "*GPT:*\nHello!"]

    @pytest.mark.asyncio
    async def test_clear(self, handlers, history, client, ack):
        history.set("U1", (Turn("user", "old"), Turn("assistant", "old reply")))

        await handlers.handle_gpt_command(ack, _command("clear"), client)

        assert history.get("U1") == ()
        client.chat_postEphemeral.assert_awaited_once_with(channel="C1", user="U1", text=GPT_CLEARED)

    @pytest.mark.asyncio
    async def test_submission_continues_conversation(self, handlers, history, completion, client, ack):
        history.set("U1", (Turn("user", "hi"), Turn("assistant", "Hello!")))
        completion.replies = ["Fine, thanks."]
        view = {
            "id": "V1",
            "state": {"values": {"message_input_2": {"message": {"value": "how are you?"}}}},
        }

        await handlers.handle_chat_submission(ack, {"user": {"id": "U1"}}, view, client)

        assert ack.await_args.kwargs["response_action"] == "update"
        assert completion.calls[0]["prior_turns"] == (Turn("user", "hi"), Turn("assistant", "Hello!"))
        assert len(history.get("U1")) == 4
        assert _section_texts(_last_view(client))[-1] == "*GPT:*\nFine, thanks."

    @pytest.mark.asyncio
    async def test_blank_submission_returns_field_error(self, handlers, completion, client, ack):
        view = {"id": "V1", "state": {"values": {"message_input_0": {"message": {"value": "  "}}}}}

        await handlers.handle_chat_submission(ack, {"user": {"id": "U1"}}, view, client)

        ack.assert_awaited_once()
        assert ack.await_args.kwargs["response_action"] == "errors"
        assert "message_input_0" in ack.await_args.kwargs["errors"]
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_failed_submission_keeps_draft(self, handlers, history, completion, client, ack):
        history.set("U1", (Turn("user", "hi"), Turn("assistant", "Hello!")))
        completion.replies = [CompletionFailed("down")]
        view = {"id": "V1", "state": {"values": {"message_input_2": {"message": {"value": "and you?"}}}}}

        await handlers.handle_chat_submission(ack, {"user": {"id": "U1"}}, view, client)

        updated = _last_view(client)
        input_block = [b for b in updated["blocks"] if b["type"] == "input"][0]
        assert input_block["element"]["initial_value"] == "and you?"
        assert len(history.get("U1")) == 2

    @pytest.mark.asyncio
    async def test_resend_after_failed_opener_starts_fresh(self, handlers, history, completion, client, ack):
        history.set("U1", (Turn("user", "old"), Turn("assistant", "old reply")))
        completion.replies = [CompletionFailed("down"), CompletionFailed("still down"), "Hello!"]

        await handlers.handle_gpt_command(ack, _command("hi"), client)
        failed_view = _last_view(client)
        assert views.starts_fresh(failed_view)

        for _ in range(2):
            submitted = dict(failed_view, id="V1", state={
                "values": {"message_input_0": {"message": {"value": "hi"}}},
            })
            await handlers.handle_chat_submission(ack, {"user": {"id": "U1"}}, submitted, client)
            failed_view = _last_view(client)

        assert [call["prior_turns"] for call in completion.calls] == [(), (), ()]
        assert history.get("U1") == (Turn("user", "hi"), Turn("assistant", "Hello!"))
        assert not views.starts_fresh(failed_view)

    @pytest.mark.asyncio
    async def test_regenerate_replaces_last_reply(self, handlers, history, completion, client, ack):
        history.set("U1", (Turn("user", "hi"), Turn("assistant", "Hello!")))
        completion.replies = ["Hey!"]

        await handlers.handle_regenerate_chat(ack, {"user": {"id": "U1"}, "view": {"id": "V1"}}, client)

        assert history.get("U1") == (Turn("user", "hi"), Turn("assistant", "Hey!"))
        assert _section_texts(_last_view(client)) == ["*You:*\nhi", "*GPT:*\nHey!"]


class TestEvents:

    @pytest.mark.asyncio
    async def test_mention_answered_in_thread(self, handlers, completion):
        completion.replies = ["42."]
        say = AsyncMock()

        await handlers.handle_mention(
            {"user": "U1", "channel": "C1", "ts": "111.1", "text": "<@UBOT> what is the answer?"},
            say,
        )

        assert completion.calls[0]["new_message"] == "what is the answer?"
        say.assert_awaited_once_with(text="42.", thread_ts="111.1")

    @pytest.mark.asyncio
    async def test_mention_does_not_touch_chat_history(self, handlers, history, completion):
        history.set("U1", (Turn("user", "hi"), Turn("assistant", "Hello!")))

        await handlers.handle_mention({"user": "U1", "ts": "1.0", "text": "<@UBOT> unrelated"}, AsyncMock())

        assert completion.calls[0]["prior_turns"] == ()
        assert history.get("U1") == (Turn("user", "hi"), Turn("assistant", "Hello!"))

    @pytest.mark.asyncio
    async def test_mention_failure_apologizes(self, handlers, completion):
        completion.replies = [CompletionFailed("down")]
        say = AsyncMock()

        await handlers.handle_mention(
            {"user": "U1", "channel": "C1", "ts": "1.0", "thread_ts": "0.5", "text": "<@UBOT> hi"},
            say,
        )

        say.assert_awaited_once_with(text=views.GENERIC_ERROR, thread_ts="0.5")

    @pytest.mark.asyncio
    async def test_bare_mention_greets(self, handlers, completion):
        say = AsyncMock()

        await handlers.handle_mention({"user": "U1", "ts": "1.0", "text": "<@UBOT>"}, say)

        assert completion.calls == []
        say.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hello(self, handlers):
        say = AsyncMock()

        await handlers.handle_hello({"user": "U1", "text": "hello bot"}, say)

        say.assert_awaited_once_with("Hey there <@U1>! 👋")

    def test_strip_mentions(self):
        assert strip_mentions("<@U123ABC> hi <@U9|bob>") == "hi"


class TestRegistration:

    def test_registers_every_trigger(self, handlers):
        app = MagicMock()

        handlers.register(app)

        app.command.assert_any_call("/polish")
        app.command.assert_any_call("/gpt")
        app.action.assert_any_call(views.REGENERATE_POLISH_ACTION)
        app.action.assert_any_call(views.REGENERATE_GPT_ACTION)
        app.view.assert_called_once_with(views.GPT_CHAT_CALLBACK)
        app.event.assert_called_once_with("app_mention")
        app.message.assert_called_once_with("hello")
