# tests/test_slack_client.py
"""Tests for the Slack Web API client wrapper."""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import tenacity
from slack_sdk.errors import SlackApiError

from communicator.services.base import MessagingError
from communicator.services.slack import SlackClient


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Retry immediately instead of backing off."""
    monkeypatch.setattr(SlackClient._call.retry, "wait", tenacity.wait_none())


@pytest.fixture
def web_client() -> MagicMock:
    client = MagicMock()
    client.auth_test = AsyncMock(return_value={"ok": True, "user_id": "UBOT"})
    client.chat_postMessage = AsyncMock(return_value={"ok": True})
    client.conversations_history = AsyncMock()
    client.users_conversations = AsyncMock()
    client.search_messages = AsyncMock()
    client.users_info = AsyncMock()
    client.conversations_info = AsyncMock()
    return client


@pytest.fixture
def slack(web_client) -> SlackClient:
    return SlackClient(client=web_client)


def _slack_error(code: str) -> SlackApiError:
    return SlackApiError(f"The request failed: {code}", {"ok": False, "error": code})


class TestSendMessage:
    """Tests for SlackClient.send_message."""

    @pytest.mark.asyncio
    async def test_plain_text_converted_to_sections(self, slack, web_client):
        await slack.send_message("C1", "# Title\n- **one**\n\nplain")

        kwargs = web_client.chat_postMessage.await_args.kwargs
        assert kwargs["channel"] == "C1"
        assert kwargs["text"] == "# Title\n- **one**\n\nplain"
        assert [b["text"]["text"] for b in kwargs["blocks"]] == ["*Title*", "• *one*", "plain"]

    @pytest.mark.asyncio
    async def test_block_kit_json_posted_as_blocks(self, slack, web_client):
        blocks = [
            {"type": "header", "text": {"type": "plain_text", "text": "Slack Summary"}},
            {"type": "divider"},
        ]

        await slack.send_message("C1", json.dumps(blocks))

        kwargs = web_client.chat_postMessage.await_args.kwargs
        assert kwargs["blocks"] == blocks
        assert kwargs["text"] == "Slack Summary"

    @pytest.mark.asyncio
    async def test_empty_message_skipped(self, slack, web_client):
        await slack.send_message("C1", "   \n ")

        web_client.chat_postMessage.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_slack_error_translated(self, slack, web_client):
        web_client.chat_postMessage.side_effect = _slack_error("channel_not_found")

        with pytest.raises(MessagingError) as exc_info:
            await slack.send_message("C404", "hello")

        assert exc_info.value.code == "channel_not_found"


class TestRetries:
    """Tests for timeout retries."""

    @pytest.mark.asyncio
    async def test_timeout_retried(self, slack, web_client):
        web_client.auth_test.side_effect = [asyncio.TimeoutError(), {"ok": True, "user_id": "UBOT"}]

        assert await slack.auth_test() == "UBOT"
        assert web_client.auth_test.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_timeout_raises(self, slack, web_client):
        web_client.auth_test.side_effect = asyncio.TimeoutError()

        with pytest.raises(MessagingError) as exc_info:
            await slack.auth_test()

        assert exc_info.value.code == "timeout"
        assert web_client.auth_test.await_count == 3

    @pytest.mark.asyncio
    async def test_slack_errors_not_retried(self, slack, web_client):
        web_client.auth_test.side_effect = _slack_error("invalid_auth")

        with pytest.raises(MessagingError):
            await slack.auth_test()

        assert web_client.auth_test.await_count == 1


class TestHistory:
    """Tests for SlackClient.get_history."""

    @pytest.mark.asyncio
    async def test_pages_returned_oldest_first(self, slack, web_client):
        web_client.conversations_history.side_effect = [
            {
                "messages": [{"text": "newest", "ts": "3"}, {"text": "middle", "ts": "2"}],
                "has_more": True,
                "response_metadata": {"next_cursor": "page2"},
            },
            {"messages": [{"text": "oldest", "ts": "1"}], "has_more": False},
        ]
        start = datetime(2024, 5, 1, tzinfo=timezone.utc)
        end = datetime(2024, 5, 2, tzinfo=timezone.utc)

        messages = await slack.get_history("C1", start, end)

        assert [m.text for m in messages] == ["oldest", "middle", "newest"]
        assert all(m.channel == "C1" for m in messages)
        first_call, second_call = web_client.conversations_history.await_args_list
        assert first_call.kwargs["oldest"] == f"{start.timestamp():.6f}"
        assert first_call.kwargs["latest"] == f"{end.timestamp():.6f}"
        assert "cursor" not in first_call.kwargs
        assert second_call.kwargs["cursor"] == "page2"


class TestChannelsAndSearch:
    """Tests for channel discovery, search and name lookups."""

    @pytest.mark.asyncio
    async def test_member_channels_limited(self, slack, web_client):
        web_client.users_conversations.side_effect = [
            {
                "channels": [{"id": f"C{i}", "name": f"c{i}"} for i in range(3)],
                "response_metadata": {"next_cursor": "more"},
            },
            {
                "channels": [{"id": f"C{i}", "name": f"c{i}"} for i in range(3, 6)],
                "response_metadata": {"next_cursor": "even-more"},
            },
        ]

        channels = await slack.list_member_channels(limit=4)

        assert channels == ["C0", "C1", "C2", "C3"]
        assert web_client.users_conversations.await_count == 2
        assert await slack.get_channel_name("C2") == "c2"
        web_client.conversations_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_uses_user_token_client(self, web_client):
        search_client = MagicMock()
        search_client.search_messages = AsyncMock(
            return_value={
                "messages": {
                    "matches": [
                        {"text": "hi <@U1>", "channel": {"id": "C1", "name": "general"}, "user": "U2"}
                    ]
                }
            }
        )
        slack = SlackClient(client=web_client, search_client=search_client)

        matches = await slack.search("<@U1>")

        search_client.search_messages.assert_awaited_once_with(
            query="<@U1>", sort="timestamp", count=20
        )
        web_client.search_messages.assert_not_awaited()
        assert matches[0].channel_name == "general"
        assert matches[0].user == "U2"

    @pytest.mark.asyncio
    async def test_search_permission_error(self, slack, web_client):
        web_client.search_messages.side_effect = _slack_error("not_allowed_token_type")

        with pytest.raises(MessagingError) as exc_info:
            await slack.search("<@U1>")

        assert exc_info.value.code == "not_allowed_token_type"

    @pytest.mark.asyncio
    async def test_user_name_cached(self, slack, web_client):
        web_client.users_info.return_value = {"user": {"name": "alice"}}

        assert await slack.get_user_name("U1") == "alice"
        assert await slack.get_user_name("U1") == "alice"
        assert web_client.users_info.await_count == 1

    @pytest.mark.asyncio
    async def test_user_name_falls_back_to_id(self, slack, web_client):
        web_client.users_info.side_effect = _slack_error("user_not_found")

        assert await slack.get_user_name("U404") == "U404"
