"""Intent routing and context assembly for inbound Slack text.

The Processor decides what context to assemble for each message, calls the
generation service and records summaries for follow-up questions. It never
sends messages itself; callers post the returned text and update history.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from communicator.core.agent.intents import Intent, classify_intent, extract_day_window
from communicator.core.agent.prompts import (
    build_conversation_prompt,
    build_mention_prompt,
    build_summary_prompt,
    highlight_mentions,
    strip_code_fences,
)
from communicator.core.session import SessionStore, SummaryContext
from communicator.core.time_parser import format_window
from communicator.services.base import MessagingClient, MessagingError, TextGenerator
from communicator.services.llm import is_fallback

logger = logging.getLogger(__name__)

DEFAULT_MAX_SUMMARY_CHANNELS = 30
DEFAULT_MENTION_DISPLAY_LIMIT = 5

NO_MESSAGES_REPLY = (
    "I couldn't find any messages in the public channels for the specified time period."
)
CHANNEL_LIST_FAILED_REPLY = "Sorry, I couldn't fetch the list of public channels."
SUMMARY_GENERATION_FAILED_REPLY = (
    "I was able to fetch the messages, but I encountered an error while "
    "generating the summary."
)

MENTIONS_TOKEN_TYPE_REPLY = (
    "I can't search for your mentions because I'm missing the `search:read` "
    "permission or the token type is not allowed. Please ensure I have the "
    "`search:read` scope and that your workspace allows bot tokens for search."
)
MENTIONS_MISSING_SCOPE_REPLY = (
    "I can't search for your mentions because I'm missing the `search:read` "
    "permission. Please add it to my Slack App configuration."
)
MENTIONS_SEARCH_FAILED_REPLY = "Sorry, I couldn't search for your mentions."
NO_MENTIONS_REPLY = "I couldn't find any recent mentions of you."
MENTIONS_HEADER = "Here are some recent mentions of you:\n\n"
MENTIONS_TRUNCATED_TEMPLATE = (
    "\n...and {remaining} more. Ask me to summarize if you want to know more!"
)

PERMISSION_ERROR_REPLIES = {
    "not_allowed_token_type": MENTIONS_TOKEN_TYPE_REPLY,
    "missing_scope": MENTIONS_MISSING_SCOPE_REPLY,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProcessorReply:
    """Reply to a direct message and the intent that produced it."""

    intent: Intent
    text: str


class Processor:
    """Turns inbound Slack text into replies.

    Usage:
        processor = Processor(store, slack_client, generation_client)
        reply = await processor.process_direct_message("U1", "D1", "summarize 3d")
    """

    def __init__(
        self,
        store: SessionStore,
        messaging: MessagingClient,
        generator: TextGenerator,
        max_summary_channels: int = DEFAULT_MAX_SUMMARY_CHANNELS,
        mention_display_limit: int = DEFAULT_MENTION_DISPLAY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the processor.

        Args:
            store: Session store shared by every request.
            messaging: Messaging client for history, channel listing and search.
            generator: Generation client.
            max_summary_channels: Channels read when a summary fans out.
            mention_display_limit: Mentions listed before truncating.
            clock: Returns the current time; injectable for tests.
        """
        self.store = store
        self.messaging = messaging
        self.generator = generator
        self.max_summary_channels = max_summary_channels
        self.mention_display_limit = mention_display_limit
        self._clock = clock

    async def _generate(self, prompt: str) -> str:
        reply = await self.generator.generate(prompt)
        return strip_code_fences(reply)

    async def process_mention(self, text: str) -> str:
        """Answer an @mention without session context.

        Mentions happen in busy channels, so they never run intent
        classification or read history or summaries.
        """
        return await self._generate(build_mention_prompt(text))

    async def process_direct_message(
        self, user_id: str, channel_id: str, text: str
    ) -> ProcessorReply:
        """Classify a direct message and produce a reply.

        Args:
            user_id: Sender's Slack user ID.
            channel_id: DM channel ID.
            text: Raw message text.

        Returns:
            ProcessorReply with the classified intent and reply text.
        """
        intent = classify_intent(text)
        logger.info("Classified DM from %s in %s as %s", user_id, channel_id, intent.value)

        if intent is Intent.SUMMARY:
            reply = await self.summarize(user_id, extract_day_window(text))
        elif intent is Intent.MENTIONS:
            reply = await self.find_mentions(user_id)
        else:
            reply = await self.converse(user_id, text)
        return ProcessorReply(intent=intent, text=reply)

    async def _summary_channels(self, channel_id: str | None) -> list[str]:
        if channel_id:
            return [channel_id]
        channels = await self.messaging.list_member_channels(self.max_summary_channels)
        return channels[: self.max_summary_channels]

    async def summarize(
        self, user_id: str, window: timedelta, channel_id: str | None = None
    ) -> str:
        """Summarize recent channel activity for a user.

        Reads only channel_id when given, otherwise every channel the bot
        is a member of (up to max_summary_channels). Channels whose history
        cannot be fetched are skipped.

        Args:
            user_id: User the summary is for; their mentions are highlighted.
            window: How far back to read.
            channel_id: Restrict to this channel.

        Returns:
            Summary text (Block Kit JSON on success) or a fixed message.
        """
        end = self._clock()
        start = end - window

        try:
            channels = await self._summary_channels(channel_id)
        except MessagingError as e:
            logger.error("Error fetching member channels: %s", e.code)
            return CHANNEL_LIST_FAILED_REPLY

        all_messages: list[str] = []
        for channel in channels:
            try:
                history = await self.messaging.get_history(channel, start, end)
            except MessagingError as e:
                logger.warning("Error fetching history for channel %s: %s", channel, e.code)
                continue
            all_messages.extend(
                highlight_mentions(message.text, user_id)
                for message in history
                if message.text
            )

        if not all_messages:
            return NO_MESSAGES_REPLY

        logger.info(
            "Summarizing %d messages from %d channel(s) for %s",
            len(all_messages),
            len(channels),
            user_id,
        )
        summary = await self._generate(
            build_summary_prompt(all_messages, format_window(window))
        )
        if is_fallback(summary):
            return SUMMARY_GENERATION_FAILED_REPLY

        self.store.set_summary(
            user_id,
            SummaryContext(
                user_id=user_id,
                summary_text=summary,
                channel_id=channel_id,
                source_messages=tuple(all_messages),
            ),
        )
        return summary

    async def find_mentions(self, user_id: str) -> str:
        """List recent messages that mention the user."""
        try:
            matches = await self.messaging.search(f"<@{user_id}>")
        except MessagingError as e:
            logger.error("Error searching for mentions for user %s: %s", user_id, e.code)
            for signature, reply in PERMISSION_ERROR_REPLIES.items():
                if signature == e.code or signature in str(e):
                    return reply
            return MENTIONS_SEARCH_FAILED_REPLY

        if not matches:
            return NO_MENTIONS_REPLY

        lines = [MENTIONS_HEADER]
        for match in matches[: self.mention_display_limit]:
            channel = match.channel_name or match.channel_id
            text = highlight_mentions(match.text, user_id)
            lines.append(f'- In #{channel}, <@{match.user}> said: "{text}"\n')

        remaining = len(matches) - self.mention_display_limit
        if remaining > 0:
            lines.append(MENTIONS_TRUNCATED_TEMPLATE.format(remaining=remaining))
        return "".join(lines)

    async def converse(self, user_id: str, text: str) -> str:
        """Continue a DM conversation.

        Injects the user's pending summary context (consuming it) and the
        bounded history. Does not record the turn; the caller appends both
        the user's message and the reply afterwards.
        """
        summary = self.store.take_summary(user_id)
        history = self.store.get_history(user_id)
        prompt = build_conversation_prompt(history, text, summary)
        return await self._generate(prompt)
