"""Prompt templates and text post-processing for the generation service."""

import re
from collections.abc import Sequence

from communicator.core.session import ConversationTurn, SummaryContext

CONVERSATION_PREAMBLE = (
    "You are a helpful and friendly conversational AI assistant. "
    "Continue the following conversation naturally.\n\n"
)

SUMMARY_CONTEXT_TEMPLATE = (
    "CONTEXT: The user was just shown the following summary after using the "
    "/summary command. Use this summary to answer any follow-up questions.\n"
    "--- SUMMARY START ---\n"
    "{summary}\n"
    "--- SUMMARY END ---\n\n"
)

MENTION_PROMPT_TEMPLATE = (
    "A user mentioned the bot with the following message. "
    "Please provide a helpful response.\n\n"
    'User message: "{message}"'
)

SUMMARY_PROMPT_TEMPLATE = """You are summarizing Slack activity for a busy teammate.
Summarize the following Slack messages from the last {window}.
Mentions of the reader are wrapped in asterisks, e.g. *<@U123>*; call those out explicitly.

Respond ONLY with a JSON array of Slack Block Kit blocks, with no code fences and no prose around it.
Use exactly this structure:
1. {{"type": "header", "text": {{"type": "plain_text", "text": "Slack Summary"}}}}
2. {{"type": "section", "text": {{"type": "mrkdwn", "text": "<two or three sentence overview>"}}}}
3. {{"type": "divider"}}
4. {{"type": "section", "text": {{"type": "mrkdwn", "text": "*Key Topics*\\n• <topic>\\n• <topic>"}}}}
5. {{"type": "section", "text": {{"type": "mrkdwn", "text": "*Action Items & Mentions*\\n• <item>"}}}}
6. {{"type": "context", "elements": [{{"type": "mrkdwn", "text": "Covering the last {window}"}}]}}

Slack messages:
{messages}
"""

LEADING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")


def highlight_mentions(text: str, user_id: str) -> str:
    """Bold every mention of user_id in Slack mrkdwn.

    Args:
        text: Message text.
        user_id: Slack user ID to highlight.

    Returns:
        Text with each "<@user_id>" replaced by "*<@user_id>*".
    """
    if not user_id:
        return text
    tag = f"<@{user_id}>"
    return text.replace(tag, f"*{tag}*")


def strip_code_fences(text: str) -> str:
    """Remove a code fence wrapped around a generated reply.

    Handles a leading fence with an optional language tag ("```json") and a
    trailing fence, plus surrounding whitespace. Fences inside the reply
    are left alone.

    Examples:
        >>> strip_code_fences('```json\\n[{"type": "divider"}]\\n```')
        '[{"type": "divider"}]'
        >>> strip_code_fences("plain reply")
        'plain reply'
    """
    if not text:
        return text
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = LEADING_FENCE.sub("", stripped, count=1)
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip()


def build_mention_prompt(message: str) -> str:
    """Build a context-free prompt for an @mention in a channel."""
    return MENTION_PROMPT_TEMPLATE.format(message=message)


def build_conversation_prompt(
    history: Sequence[ConversationTurn],
    latest_message: str,
    summary: SummaryContext | None = None,
) -> str:
    """Build the prompt for a conversational DM turn.

    Args:
        history: Previous turns, oldest first.
        latest_message: The user's new message.
        summary: Summary context to inject once, if the user just saw one.

    Returns:
        Preamble, optional CONTEXT block, history, the new user line and a
        final "Assistant:" cue.
    """
    parts = [CONVERSATION_PREAMBLE]
    if summary is not None:
        parts.append(SUMMARY_CONTEXT_TEMPLATE.format(summary=summary.summary_text))

    parts.append("--- CONVERSATION HISTORY ---\n")
    for turn in history:
        parts.append(turn.render() + "\n")
    parts.append(f"User: {latest_message}\n")
    parts.append("--- END HISTORY ---\n\n")
    parts.append("Assistant:")
    return "".join(parts)


def build_summary_prompt(messages: Sequence[str], window: str) -> str:
    """Build the prompt asking for a Block Kit formatted summary.

    Args:
        messages: Message texts, already mention-highlighted.
        window: Human readable look-back window, e.g. "3 days".

    Returns:
        Prompt text.
    """
    lines = "\n".join(f"- {message}" for message in messages)
    return SUMMARY_PROMPT_TEMPLATE.format(window=window, messages=lines)
