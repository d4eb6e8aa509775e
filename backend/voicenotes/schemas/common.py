"""
VoiceNotes — Shared Response Schemas
======================================

What:  Error, message and health payloads used across routers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for every handled error.

    Example:
        {
            "error": "not_found",
            "message": "Note not found",
            "requestId": "1a2b3c4d"
        }

    `details` only ever carries values that are safe to show (e.g. retry_after).
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(
        default=None, alias="requestId", description="Request correlation ID"
    )

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
