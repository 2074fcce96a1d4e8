"""
Tadoku Backend — Shared Response Schemas
=========================================

What:  Response models used across routers: the error envelope returned by
       every global exception handler, and the health check payload.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "generation_limit_exceeded",
            "message": "Daily generation limit of 10 reached. ...",
            "details": {"limit": 10, "current_count": 10},
            "request_id": "1a2b3c4d"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    generator: str = Field(description="Story generator status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
