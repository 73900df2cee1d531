"""Service status models."""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    service: str
    timestamp: datetime
    version: str


class InfoResponse(BaseModel):
    """Response model for the service information endpoint."""

    name: str
    description: str
    version: str
