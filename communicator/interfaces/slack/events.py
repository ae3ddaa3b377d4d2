# communicator/interfaces/slack/events.py
"""Slack Events API endpoint.

Handles:
- url_verification handshakes (challenge echoed as plain text)
- app_mention events -> context-free answer
- message events in DMs (channel_type="im") -> full intent routing

Every delivery is acknowledged before any processing starts; the work
itself is handed to the app's TaskRunner.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response

from communicator.interfaces.api.security import verify_slack_signature
from communicator.interfaces.slack.handlers import process_dm, process_mention
from communicator.utils.logging import set_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

RETRY_HEADER = "X-Slack-Retry-Num"


def _parse_json(body: bytes) -> dict[str, Any]:
    try:
        value = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload"
        ) from exc
    if not isinstance(value, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload"
        )
    return value


def _is_ignored(event: dict[str, Any], bot_user_id: str) -> bool:
    """Events from the bot itself, other bots or edits never get a reply."""
    user = event.get("user") or ""
    if not user:
        return True
    if bot_user_id and user == bot_user_id:
        return True
    return bool(event.get("bot_id") or event.get("subtype"))


def dispatch_event(request: Request, event: dict[str, Any]) -> bool:
    """Submit the background job for an event callback.

    Args:
        request: Current request; app state holds the processor and runner.
        event: Inner Slack event.

    Returns:
        True if a job was submitted.
    """
    state = request.app.state
    bot_user_id = state.bot_user_id
    if _is_ignored(event, bot_user_id):
        logger.debug("Ignoring %s event from %s", event.get("type"), event.get("user"))
        return False

    event_type = event.get("type")
    channel = str(event.get("channel") or "")
    text = event.get("text") or ""
    if not channel:
        return False

    if event_type == "app_mention":
        state.tasks.submit(
            process_mention,
            state.processor,
            state.messaging,
            channel,
            text,
            bot_user_id,
            name="mention",
        )
        return True

    if event_type == "message" and event.get("channel_type") == "im":
        state.tasks.submit(
            process_dm,
            state.processor,
            state.messaging,
            event["user"],
            channel,
            text,
            name="dm",
        )
        return True

    return False


@router.post("/events")
async def slack_events(request: Request) -> Response:
    """Receive an Events API delivery and acknowledge it immediately."""
    body = await request.body()
    app_settings = request.app.state.settings
    if app_settings.verify_event_signatures:
        verify_slack_signature(request, body, app_settings.slack_signing_secret.strip())

    payload = _parse_json(body)

    if payload.get("type") == "url_verification":
        challenge = payload.get("challenge")
        if not isinstance(challenge, str) or not challenge:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Slack challenge"
            )
        logger.info("Responding to URL verification challenge")
        return PlainTextResponse(challenge)

    # Slack re-delivers when an ack is late; the first delivery already ran.
    if request.headers.get(RETRY_HEADER):
        logger.info("Ignoring Slack retry #%s", request.headers.get(RETRY_HEADER))
        return Response(status_code=status.HTTP_200_OK)

    if payload.get("type") == "event_callback":
        event = payload.get("event")
        if isinstance(event, dict):
            set_request_id(str(payload.get("event_id") or ""))
            dispatch_event(request, event)

    return Response(status_code=status.HTTP_200_OK)
