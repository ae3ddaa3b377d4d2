# communicator/interfaces/slack/commands.py
"""Slack slash command endpoint.

The request signature is verified against the raw body before any form
field is read. The only supported command is /summary, which is
acknowledged immediately and summarized in the background.
"""

import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response

from communicator.interfaces.api.security import verify_slack_signature
from communicator.interfaces.slack.handlers import process_summary_command
from communicator.utils.logging import set_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

SUMMARY_COMMAND = "/summary"


def _parse_form(body: bytes) -> dict[str, str]:
    """Parse an x-www-form-urlencoded body into single values."""
    try:
        form = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid form payload"
        ) from exc
    return {key: values[0] for key, values in form.items() if values}


@router.post("/command")
async def slack_command(request: Request) -> Response:
    """Receive a slash command submission."""
    app_settings = request.app.state.settings
    body = await request.body()
    verify_slack_signature(request, body, app_settings.slack_signing_secret.strip())

    form = _parse_form(body)
    command = form.get("command", "").strip()
    if not command:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing command"
        )

    if command != SUMMARY_COMMAND:
        logger.warning("Unsupported command %s", command)
        return PlainTextResponse("Unsupported command", status_code=status.HTTP_400_BAD_REQUEST)

    user_id = form.get("user_id", "")
    channel_id = form.get("channel_id", "")
    if not channel_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing channel_id"
        )

    set_request_id(form.get("trigger_id", ""))
    state = request.app.state
    state.tasks.submit(
        process_summary_command,
        state.processor,
        state.messaging,
        user_id,
        channel_id,
        form.get("text", ""),
        name="summary-command",
    )
    return Response(status_code=status.HTTP_200_OK)
