"""Optional tracing through Pydantic Logfire."""

import logging
from typing import Any

from communicator import __version__
from communicator.config import settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "service-communicator"


def setup_logfire(app: Any = None, token: str | None = None) -> bool:
    """Send traces to Logfire when a token is configured.

    Instruments the given FastAPI app and outbound httpx calls, which
    carry litellm's provider requests. Setup problems are logged and
    tracing stays off.

    Returns:
        True if Logfire was configured.
    """
    token = settings.logfire_token if token is None else token
    if not token:
        return False

    try:
        import logfire

        logfire.configure(
            token=token,
            service_name=SERVICE_NAME,
            service_version=__version__,
            send_to_logfire="if-token-present",
        )
        if app is not None:
            logfire.instrument_fastapi(app)
        logfire.instrument_httpx(capture_all=True)
    except Exception as e:
        logger.warning("Logfire disabled, setup failed: %s", e)
        return False

    logger.info("Logfire tracing enabled for %s", SERVICE_NAME)
    return True
