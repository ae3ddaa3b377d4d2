# communicator/interfaces/api/main.py
"""FastAPI application wiring Slack endpoints to the processor.

Provides:
- POST /slack/events and POST /slack/command (see interfaces.slack)
- POST /send to relay a message through a registered communicator
- GET /health

All collaborators live on app.state so tests can build an app around fakes
with create_app().
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from communicator.config import Settings, settings
from communicator.core.agent import Processor
from communicator.core.lifecycle import LifecycleManager
from communicator.core.session import SessionStore
from communicator.core.tasks import TaskRunner
from communicator.interfaces.api.schemas import HealthResponse, SendRequest, SendResponse
from communicator.interfaces.api.security import (
    get_rate_limit_string,
    limiter,
    verify_api_key,
)
from communicator.interfaces.slack import router as slack_router
from communicator.services.base import MessagingClient, MessagingError, TextGenerator
from communicator.services.llm import GenerationClient
from communicator.services.slack import SlackClient
from communicator.utils.logging import configure_logging
from communicator.utils.observability import setup_logfire

# litellm reads provider settings from os.environ
load_dotenv()
# Also covers `uvicorn communicator.interfaces.api.main:app` without __main__
configure_logging(settings.log_level, json_format=settings.log_json)

logger = logging.getLogger(__name__)

ApiKey = Annotated[str, Depends(verify_api_key)]

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Resolve the bot identity, then drain background jobs on shutdown."""
    if not app.state.bot_user_id:
        try:
            app.state.bot_user_id = await app.state.messaging.auth_test()
            logger.info("Resolved bot user ID %s", app.state.bot_user_id)
        except MessagingError as e:
            logger.warning("Could not resolve bot user ID: %s", e.code)

    if not app.state.settings.api_key:
        logger.warning("GOOGLE_API_KEY not set - replies will be a configuration notice")

    lifecycle = LifecycleManager()
    lifecycle.register("tasks", app.state.tasks)
    await lifecycle.startup()

    yield

    await lifecycle.shutdown()
    logger.info("Shutting down...")


@router.post("/send", response_model=SendResponse)
@limiter.limit(get_rate_limit_string)
async def send_message(
    request: Request, send_request: SendRequest, _api_key: ApiKey
) -> SendResponse:
    """Deliver a message through a registered communicator.

    Raises:
        HTTPException: 400 for an unknown service, 500 if delivery fails.
    """
    communicators = request.app.state.communicators
    service = communicators.get(send_request.service)
    if service is None:
        raise HTTPException(
            status_code=400, detail=f"service not found: {send_request.service}"
        )

    try:
        await service.send_message(send_request.destination, send_request.message)
    except MessagingError as e:
        logger.error("Failed to send via %s: %s", send_request.service, e.code)
        raise HTTPException(status_code=500, detail=e.code) from e

    return SendResponse(status="message sent")


@router.get("/health", response_model=HealthResponse)
@limiter.limit(get_rate_limit_string)
async def health_check(request: Request) -> HealthResponse:
    """Report service status."""
    state = request.app.state
    return HealthResponse(
        status="healthy",
        generation_configured=bool(state.settings.api_key),
        bot_user_id=state.bot_user_id,
        pending_jobs=state.tasks.pending,
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    messaging: MessagingClient | None = None,
    generator: TextGenerator | None = None,
    store: SessionStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Settings to use. Defaults to the module singleton.
        messaging: Messaging client. Defaults to a SlackClient.
        generator: Generation client. Defaults to a GenerationClient.
        store: Session store. Defaults to a new SessionStore.

    Returns:
        Configured FastAPI app.
    """
    app_settings = app_settings or settings
    if messaging is None:
        messaging = SlackClient(
            bot_token=app_settings.slack_bot_token,
            user_token=app_settings.slack_user_token,
        )
    if generator is None:
        generator = GenerationClient(
            api_key=app_settings.api_key, model=app_settings.gemini_model
        )
    if store is None:
        store = SessionStore(history_limit=app_settings.history_limit)

    app = FastAPI(
        title="Service Communicator",
        description="Slack assistant with summaries, mention lookup and DM conversations",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.messaging = messaging
    app.state.generator = generator
    app.state.store = store
    app.state.tasks = TaskRunner()
    app.state.processor = Processor(
        store,
        messaging,
        generator,
        max_summary_channels=app_settings.max_summary_channels,
        mention_display_limit=app_settings.mention_display_limit,
    )
    app.state.bot_user_id = app_settings.slack_bot_user_id
    app.state.communicators = {"slack": messaging}

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(slack_router)
    app.include_router(router)

    setup_logfire(app)
    return app


app = create_app()
