# communicator/interfaces/slack/__init__.py
"""Slack HTTP endpoints: Events API and slash commands.

Both routers acknowledge within Slack's three second budget and hand the
actual work to background jobs in handlers.py.
"""

from fastapi import APIRouter

from communicator.interfaces.slack.commands import router as commands_router
from communicator.interfaces.slack.events import router as events_router

router = APIRouter()
router.include_router(events_router)
router.include_router(commands_router)

__all__ = ["router"]
