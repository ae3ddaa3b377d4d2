# tests/test_processor.py
"""Tests for intent routing, summaries, mention lookup and conversation."""

import json
from datetime import timedelta

import pytest

from communicator.core.agent import Intent
from communicator.core.agent.processor import (
    CHANNEL_LIST_FAILED_REPLY,
    MENTIONS_MISSING_SCOPE_REPLY,
    MENTIONS_SEARCH_FAILED_REPLY,
    MENTIONS_TOKEN_TYPE_REPLY,
    NO_MENTIONS_REPLY,
    NO_MESSAGES_REPLY,
    SUMMARY_GENERATION_FAILED_REPLY,
)
from communicator.core.session import ConversationTurn, Speaker, SummaryContext
from communicator.services.base import ChannelMessage, MessagingError, SearchMatch
from communicator.services.llm import GENERATION_FAILED_REPLY

SUMMARY_BLOCKS = json.dumps([{"type": "header", "text": {"type": "plain_text", "text": "Slack Summary"}}])


def _history(*texts: str) -> list[ChannelMessage]:
    return [ChannelMessage(text=t, user="U9") for t in texts]


class TestSummarize:
    """Tests for Processor.summarize and the summary DM intent."""

    @pytest.mark.asyncio
    async def test_summary_intent_uses_day_window(self, processor, messaging, fixed_now):
        """Test "summarize last 3 d" reads 72 hours back."""
        messaging.list_member_channels.return_value = ["C1"]
        messaging.get_history.return_value = _history("deploy done")

        reply = await processor.process_direct_message("U1", "D1", "summarize last 3 d")

        assert reply.intent is Intent.SUMMARY
        messaging.get_history.assert_awaited_once_with(
            "C1", fixed_now - timedelta(hours=72), fixed_now
        )

    @pytest.mark.asyncio
    async def test_no_messages_returns_fixed_reply(self, processor, messaging, store, generator):
        """Test an empty channel set yields the fixed reply and stores nothing."""
        messaging.list_member_channels.return_value = ["C1", "C2"]
        messaging.get_history.return_value = []

        reply = await processor.process_direct_message("U1", "D1", "summarize last 3 d")

        assert reply.text == NO_MESSAGES_REPLY
        assert generator.prompts == []
        assert not store.has_summary("U1")

    @pytest.mark.asyncio
    async def test_summary_stored_for_follow_up(self, processor, messaging, store, generator):
        generator.reply = SUMMARY_BLOCKS
        messaging.list_member_channels.return_value = ["C1", "C2"]
        messaging.get_history.side_effect = [
            _history("first", "second"),
            _history("ping <@U1>"),
        ]

        reply = await processor.summarize("U1", timedelta(days=1))

        assert reply == SUMMARY_BLOCKS
        context = store.take_summary("U1")
        assert context.summary_text == SUMMARY_BLOCKS
        assert context.source_messages == ("first", "second", "ping *<@U1>*")
        assert context.channel_id is None

    @pytest.mark.asyncio
    async def test_prompt_highlights_mentions_and_window(self, processor, messaging, generator):
        messaging.list_member_channels.return_value = ["C1"]
        messaging.get_history.return_value = _history("hey <@U1> review please")

        await processor.summarize("U1", timedelta(hours=72))

        prompt = generator.prompts[0]
        assert "*<@U1>*" in prompt
        assert "the last 3 days" in prompt

    @pytest.mark.asyncio
    async def test_code_fences_stripped(self, processor, messaging, generator):
        generator.reply = f"```json\n{SUMMARY_BLOCKS}\n```"
        messaging.list_member_channels.return_value = ["C1"]
        messaging.get_history.return_value = _history("hello")

        reply = await processor.summarize("U1", timedelta(days=1))

        assert reply == SUMMARY_BLOCKS

    @pytest.mark.asyncio
    async def test_generation_failure_reported_and_not_stored(self, processor, messaging, store, generator):
        generator.reply = GENERATION_FAILED_REPLY
        messaging.list_member_channels.return_value = ["C1"]
        messaging.get_history.return_value = _history("hello")

        reply = await processor.summarize("U1", timedelta(days=1))

        assert reply == SUMMARY_GENERATION_FAILED_REPLY
        assert not store.has_summary("U1")

    @pytest.mark.asyncio
    async def test_channel_list_failure(self, processor, messaging):
        messaging.list_member_channels.side_effect = MessagingError("ratelimited")

        reply = await processor.summarize("U1", timedelta(days=1))

        assert reply == CHANNEL_LIST_FAILED_REPLY

    @pytest.mark.asyncio
    async def test_failing_channel_skipped(self, processor, messaging, generator):
        messaging.list_member_channels.return_value = ["C1", "C2"]
        messaging.get_history.side_effect = [
            MessagingError("not_in_channel"),
            _history("still here"),
        ]

        await processor.summarize("U1", timedelta(days=1))

        assert "- still here" in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_channel_scoped_summary(self, processor, messaging, store):
        messaging.get_history.return_value = _history("scoped")

        await processor.summarize("U1", timedelta(days=1), channel_id="C7")

        messaging.list_member_channels.assert_not_awaited()
        assert messaging.get_history.await_args.args[0] == "C7"
        assert store.take_summary("U1").channel_id == "C7"

    @pytest.mark.asyncio
    async def test_channel_fan_out_capped(self, processor, messaging):
        messaging.list_member_channels.return_value = [f"C{i}" for i in range(40)]

        await processor.summarize("U1", timedelta(days=1))

        messaging.list_member_channels.assert_awaited_once_with(30)
        assert messaging.get_history.await_count == 30


class TestFindMentions:
    """Tests for Processor.find_mentions and the mentions DM intent."""

    @pytest.mark.asyncio
    async def test_lists_and_truncates(self, processor, messaging):
        messaging.search.return_value = [
            SearchMatch(text=f"hi <@U1> #{i}", channel_id=f"C{i}", channel_name=f"team{i}", user="U2")
            for i in range(7)
        ]

        reply = await processor.process_direct_message("U1", "D1", "any mentions?")

        messaging.search.assert_awaited_once_with("<@U1>")
        assert reply.intent is Intent.MENTIONS
        assert reply.text.startswith("Here are some recent mentions of you:\n\n")
        assert '- In #team0, <@U2> said: "hi *<@U1>* #0"' in reply.text
        assert "#team4" in reply.text
        assert "#team5" not in reply.text
        assert "...and 2 more." in reply.text

    @pytest.mark.asyncio
    async def test_channel_id_used_without_name(self, processor, messaging):
        messaging.search.return_value = [
            SearchMatch(text="yo", channel_id="C42", channel_name="", user="U2")
        ]

        reply = await processor.find_mentions("U1")

        assert "In #C42" in reply
        assert "more." not in reply

    @pytest.mark.asyncio
    async def test_no_matches(self, processor, messaging):
        assert await processor.find_mentions("U1") == NO_MENTIONS_REPLY

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, expected",
        [
            (MessagingError("missing_scope"), MENTIONS_MISSING_SCOPE_REPLY),
            (MessagingError("not_allowed_token_type"), MENTIONS_TOKEN_TYPE_REPLY),
            (
                MessagingError("slack_api_error", "search failed: missing_scope"),
                MENTIONS_MISSING_SCOPE_REPLY,
            ),
            (MessagingError("ratelimited"), MENTIONS_SEARCH_FAILED_REPLY),
        ],
    )
    async def test_search_errors(self, processor, messaging, error, expected):
        messaging.search.side_effect = error

        assert await processor.find_mentions("U1") == expected


class TestConversation:
    """Tests for conversational DM turns and @mentions."""

    @pytest.mark.asyncio
    async def test_history_in_prompt_and_not_appended(self, processor, store, generator):
        store.append_turn("U1", ConversationTurn(Speaker.USER, "earlier question"))
        store.append_turn("U1", ConversationTurn(Speaker.ASSISTANT, "earlier answer"))

        reply = await processor.process_direct_message("U1", "D1", "and then?")

        assert reply.intent is Intent.CONVERSATION
        assert reply.text == "generated reply"
        prompt = generator.prompts[0]
        assert "User: earlier question\nAssistant: earlier answer\nUser: and then?\n" in prompt
        assert len(store.get_history("U1")) == 2

    @pytest.mark.asyncio
    async def test_summary_consumed_once(self, processor, store, generator):
        store.set_summary("U1", SummaryContext(user_id="U1", summary_text="Launch moved"))

        await processor.converse("U1", "why was it moved?")
        await processor.converse("U1", "ok thanks")

        assert "Launch moved" in generator.prompts[0]
        assert "Launch moved" not in generator.prompts[1]
        assert not store.has_summary("U1")

    @pytest.mark.asyncio
    async def test_mention_is_context_free(self, processor, store, generator):
        store.append_turn("U1", ConversationTurn(Speaker.USER, "secret history"))
        store.set_summary("U1", SummaryContext(user_id="U1", summary_text="secret summary"))

        reply = await processor.process_mention("summarize this channel")

        assert reply == "generated reply"
        prompt = generator.prompts[0]
        assert 'User message: "summarize this channel"' in prompt
        assert "secret" not in prompt
        assert store.has_summary("U1")
