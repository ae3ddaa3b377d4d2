# communicator/interfaces/api/schemas.py
"""Pydantic models for FastAPI request/response validation."""

from pydantic import BaseModel, Field


class SendRequest(BaseModel):
    """Request body for POST /send.

    Attributes:
        service: Registered communicator name (e.g. "slack").
        destination: Service-specific destination, e.g. a channel ID.
        message: Text to deliver.
    """

    service: str = Field(..., description="Registered service name, e.g. 'slack'")
    destination: str = Field(..., min_length=1, description="Destination such as a channel ID")
    message: str = Field(..., min_length=1, description="Message text to deliver")


class SendResponse(BaseModel):
    """Response body for POST /send."""

    status: str = Field(..., description="Delivery status")


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = Field(..., description="Service status")
    generation_configured: bool = Field(
        ..., description="Whether a generation API key is configured"
    )
    bot_user_id: str = Field("", description="Resolved Slack bot user ID")
    pending_jobs: int = Field(0, description="Background jobs still running")
