# communicator/interfaces/api/security.py
"""API security: Slack request signatures, API keys and rate limiting."""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from slack_sdk.signature import SignatureVerifier
from slowapi import Limiter
from slowapi.util import get_remote_address

from communicator.config import settings

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

limiter = Limiter(key_func=get_remote_address)


def verify_slack_signature(request: Request, body: bytes, signing_secret: str) -> None:
    """Verify a Slack request signature against the raw body.

    Must run before any field of the body is trusted.

    Args:
        request: Incoming request carrying the signature headers.
        body: Raw request body.
        signing_secret: Slack app signing secret.

    Raises:
        HTTPException: 500 if no secret is configured, 401 if the signature
            is missing, stale or does not match.
    """
    if not signing_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="SLACK_SIGNING_SECRET not set",
        )

    timestamp = request.headers.get(TIMESTAMP_HEADER, "")
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not timestamp.isdigit() or not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Slack signature",
        )

    verifier = SignatureVerifier(signing_secret)
    if not verifier.is_valid(body=body, timestamp=timestamp, signature=signature):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Slack signature",
        )


def verify_api_key(
    request: Request, api_key: Annotated[str | None, Depends(api_key_header)]
) -> str:
    """Guard the outbound relay with the configured API_AUTH_KEY.

    The relay is open when no key is configured.

    Raises:
        HTTPException: 401 without an X-API-Key header, 403 on a mismatch.
    """
    expected = request.app.state.settings.api_auth_key
    if not expected:
        return ""

    if not api_key:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "X-API-Key header required")
    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "API key rejected")
    return api_key


def get_rate_limit_string() -> str:
    """Per-client limit for /send and /health, e.g. "60/minute"."""
    return f"{settings.api_rate_limit}/minute"
