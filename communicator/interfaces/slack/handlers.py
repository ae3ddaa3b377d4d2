# communicator/interfaces/slack/handlers.py
"""Background jobs for Slack deliveries.

Each job runs after the delivery has been acknowledged:
- @mentions: context-free answer posted to the channel
- direct messages: intent routing, reply, then history update
- /summary: channel-scoped summary posted to the invoking channel

Failures end the job with a fixed error reply; nothing propagates to the
event loop.
"""

import logging
import re

from communicator.core.agent import Intent, Processor
from communicator.core.session import ConversationTurn, Speaker
from communicator.core.time_parser import DEFAULT_LOOKBACK, parse_lookback
from communicator.services.base import MessagingClient, MessagingError

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, something went wrong while handling your message."
INVALID_RANGE_REPLY = (
    "Error: Invalid time range format. Please use a format like '48h' or '7d'. "
    "Using default of 24h."
)


def _extract_user_message(text: str, bot_user_id: str = "") -> str:
    """Remove the bot's own @mention from message text.

    Args:
        text: Raw message text including the mention.
        bot_user_id: Bot user ID; all leading user mentions are removed when empty.

    Returns:
        Cleaned message, or the original text if nothing else remains.
    """
    pattern = rf"<@{re.escape(bot_user_id)}>" if bot_user_id else r"^\s*<@[A-Z0-9]+>"
    cleaned = re.sub(pattern, "", text or "").strip()
    return cleaned if cleaned else text


async def _send_error(messaging: MessagingClient, channel: str, event_type: str) -> None:
    try:
        await messaging.send_message(channel, ERROR_REPLY)
    except MessagingError as e:
        logger.warning("Failed to send %s error reply to %s: %s", event_type, channel, e.code)


async def process_mention(
    processor: Processor,
    messaging: MessagingClient,
    channel: str,
    text: str,
    bot_user_id: str = "",
) -> None:
    """Answer an @mention in a channel."""
    try:
        user_message = _extract_user_message(text, bot_user_id)
        logger.info("Processing mention in %s: %s", channel, user_message[:100])
        reply = await processor.process_mention(user_message)
        await messaging.send_message(channel, reply)
    except Exception as e:
        logger.exception("Error processing mention: %s", e)
        await _send_error(messaging, channel, "mention")


async def process_dm(
    processor: Processor,
    messaging: MessagingClient,
    user_id: str,
    channel: str,
    text: str,
) -> None:
    """Handle one direct-message turn.

    Conversational turns are recorded in the user's history after the reply
    is posted: first the user's message, then the reply.
    """
    try:
        logger.info("Processing DM from %s: %s", user_id, text[:100])
        reply = await processor.process_direct_message(user_id, channel, text)
        await messaging.send_message(channel, reply.text)

        if reply.intent is Intent.CONVERSATION:
            processor.store.append_turn(user_id, ConversationTurn(Speaker.USER, text))
            processor.store.append_turn(
                user_id, ConversationTurn(Speaker.ASSISTANT, reply.text)
            )
    except Exception as e:
        logger.exception("Error processing DM: %s", e)
        await _send_error(messaging, channel, "DM")


async def process_summary_command(
    processor: Processor,
    messaging: MessagingClient,
    user_id: str,
    channel: str,
    text: str,
) -> None:
    """Run /summary for the invoking channel and post the result there.

    An unparsable time range is reported and replaced by the 24h default.
    """
    try:
        window = DEFAULT_LOOKBACK
        range_text = (text or "").strip()
        if range_text:
            try:
                window = parse_lookback(range_text)
            except ValueError:
                await messaging.send_message(channel, INVALID_RANGE_REPLY)

        logger.info("Processing /summary from %s in %s (%s)", user_id, channel, window)
        summary = await processor.summarize(user_id, window, channel_id=channel)
        await messaging.send_message(channel, summary)
    except Exception as e:
        logger.exception("Error processing /summary: %s", e)
        await _send_error(messaging, channel, "/summary")
