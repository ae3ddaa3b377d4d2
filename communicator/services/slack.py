"""Slack Web API client used by the processor and the outbound relay.

Wraps slack_sdk's AsyncWebClient with:
- retry on transient timeouts (tenacity)
- SlackApiError -> MessagingError translation carrying the Slack error code
- chronological history fetching and bounded channel discovery
- cached user/channel name lookups
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import tenacity
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from communicator.services.base import ChannelMessage, MessagingError, SearchMatch
from communicator.utils.slack_formatter import (
    blocks_fallback_text,
    parse_blocks,
    text_to_blocks,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
HISTORY_PAGE_SIZE = 200
MAX_HISTORY_PAGES = 5
CHANNEL_PAGE_SIZE = 100
DEFAULT_CHANNEL_LIMIT = 30
SEARCH_RESULT_COUNT = 20
CONVERSATION_TYPES = "public_channel,private_channel,mpim,im"
FALLBACK_TEXT_LIMIT = 3000


def _next_cursor(response: Any) -> str:
    metadata = response.get("response_metadata") or {}
    return metadata.get("next_cursor") or ""


class SlackClient:
    """Messaging client backed by the Slack Web API.

    Args:
        bot_token: Bot token (xoxb-*) used for posting and reading history.
        user_token: Optional user token (xoxp-*) for search.messages, which
            Slack does not allow with bot tokens.
        client: Pre-built AsyncWebClient, mainly for tests.
    """

    def __init__(
        self,
        bot_token: str = "",
        user_token: str = "",
        client: AsyncWebClient | None = None,
        search_client: AsyncWebClient | None = None,
    ) -> None:
        self.client = client or AsyncWebClient(token=bot_token or None)
        if search_client is not None:
            self.search_client = search_client
        elif user_token:
            self.search_client = AsyncWebClient(token=user_token)
        else:
            self.search_client = self.client
        self._user_cache: dict[str, str] = {}
        self._channel_cache: dict[str, str] = {}

    @tenacity.retry(
        stop=tenacity.stop_after_attempt(MAX_RETRIES),
        wait=tenacity.wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=tenacity.retry_if_exception_type((TimeoutError, asyncio.TimeoutError)),
        reraise=True,
    )
    async def _call(self, method: Callable, **kwargs: Any) -> Any:
        """Invoke a Slack API method, retrying on timeouts."""
        return await method(**kwargs)

    async def _api(self, method: Callable, **kwargs: Any) -> Any:
        """Invoke a Slack API method and translate Slack errors.

        Raises:
            MessagingError: If Slack returns an error or the call keeps timing out.
        """
        name = getattr(method, "__name__", "slack_api")
        logger.debug("Calling Slack API: %s", name)
        try:
            return await self._call(method, **kwargs)
        except SlackApiError as e:
            code = ""
            if e.response is not None:
                code = e.response.get("error") or ""
            raise MessagingError(code or "slack_api_error", f"{name} failed: {code}") from e
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise MessagingError("timeout", f"{name} timed out") from e

    async def auth_test(self) -> str:
        """Return the bot's own user ID."""
        response = await self._api(self.client.auth_test)
        return response.get("user_id", "")

    async def send_message(self, destination: str, message: str) -> None:
        """Post a message to a channel.

        Block Kit JSON replies are posted as blocks; anything else is
        converted line by line into section blocks.

        Args:
            destination: Channel ID.
            message: Reply text or Block Kit JSON.
        """
        blocks = parse_blocks(message)
        if blocks is not None:
            fallback = blocks_fallback_text(blocks) or "New message"
        else:
            logger.debug("Message is not Block Kit JSON, formatting as text")
            blocks = text_to_blocks(message)
            fallback = message[:FALLBACK_TEXT_LIMIT]

        if not blocks:
            logger.warning("Skipping empty message to %s", destination)
            return

        logger.info("Posting message to channel %s", destination)
        await self._api(
            self.client.chat_postMessage,
            channel=destination,
            text=fallback,
            blocks=blocks,
        )

    async def get_history(
        self, channel: str, start: datetime, end: datetime
    ) -> list[ChannelMessage]:
        """Fetch messages posted in a channel between start and end.

        Args:
            channel: Channel ID.
            start: Oldest message time (inclusive).
            end: Newest message time (inclusive).

        Returns:
            Messages in chronological order, oldest first.
        """
        collected: list[dict[str, Any]] = []
        cursor = ""
        for _ in range(MAX_HISTORY_PAGES):
            kwargs: dict[str, Any] = {
                "channel": channel,
                "oldest": f"{start.timestamp():.6f}",
                "latest": f"{end.timestamp():.6f}",
                "inclusive": True,
                "limit": HISTORY_PAGE_SIZE,
            }
            if cursor:
                kwargs["cursor"] = cursor
            response = await self._api(self.client.conversations_history, **kwargs)
            collected.extend(response.get("messages", []))

            cursor = _next_cursor(response)
            if not response.get("has_more") or not cursor:
                break

        # Slack returns newest first
        return [
            ChannelMessage(
                text=msg.get("text", ""),
                user=msg.get("user", ""),
                ts=msg.get("ts", ""),
                channel=channel,
                metadata={
                    key: msg[key]
                    for key in ("subtype", "bot_id", "thread_ts")
                    if key in msg
                },
            )
            for msg in reversed(collected)
        ]

    async def list_member_channels(self, limit: int = DEFAULT_CHANNEL_LIMIT) -> list[str]:
        """List conversations the bot is a member of.

        Pages through users.conversations until `limit` channels are found
        or there are no more pages.

        Args:
            limit: Maximum number of channel IDs to return.

        Returns:
            Channel IDs in discovery order.
        """
        channel_ids: list[str] = []
        cursor = ""
        while len(channel_ids) < limit:
            kwargs: dict[str, Any] = {
                "types": CONVERSATION_TYPES,
                "exclude_archived": True,
                "limit": CHANNEL_PAGE_SIZE,
            }
            if cursor:
                kwargs["cursor"] = cursor
            response = await self._api(self.client.users_conversations, **kwargs)

            for channel in response.get("channels", []):
                logger.debug(
                    "Bot is a member of channel: %s (%s)",
                    channel.get("name", ""),
                    channel.get("id"),
                )
                channel_ids.append(channel["id"])
                if channel.get("name"):
                    self._channel_cache[channel["id"]] = channel["name"]
                if len(channel_ids) >= limit:
                    break

            cursor = _next_cursor(response)
            if not cursor:
                break

        return channel_ids

    async def search(self, query: str) -> list[SearchMatch]:
        """Search messages across the workspace.

        Args:
            query: Slack search query, e.g. "<@U123>".

        Returns:
            Matches ranked by recency.
        """
        logger.info("Searching messages with query '%s'", query)
        response = await self._api(
            self.search_client.search_messages,
            query=query,
            sort="timestamp",
            count=SEARCH_RESULT_COUNT,
        )
        matches = (response.get("messages") or {}).get("matches") or []
        results = []
        for match in matches:
            channel = match.get("channel") or {}
            results.append(
                SearchMatch(
                    text=match.get("text", ""),
                    channel_id=channel.get("id", ""),
                    channel_name=channel.get("name", ""),
                    user=match.get("user") or match.get("username", ""),
                )
            )
        return results

    async def get_user_name(self, user_id: str) -> str:
        """Resolve a user's display name, falling back to the ID."""
        if user_id in self._user_cache:
            return self._user_cache[user_id]
        try:
            response = await self._api(self.client.users_info, user=user_id)
        except MessagingError as e:
            logger.warning("Error getting user info for %s: %s", user_id, e.code)
            return user_id
        name = (response.get("user") or {}).get("name") or user_id
        self._user_cache[user_id] = name
        return name

    async def get_channel_name(self, channel_id: str) -> str:
        """Resolve a channel's name, falling back to the ID."""
        if channel_id in self._channel_cache:
            return self._channel_cache[channel_id]
        try:
            response = await self._api(self.client.conversations_info, channel=channel_id)
        except MessagingError as e:
            logger.warning("Error getting channel info for %s: %s", channel_id, e.code)
            return channel_id
        name = (response.get("channel") or {}).get("name") or channel_id
        self._channel_cache[channel_id] = name
        return name
