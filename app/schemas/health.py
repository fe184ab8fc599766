"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    service: str = Field(default="keygate", description="Service name")
    environment: str = Field(description="Current app environment (dev, test or prod)")
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Credential store connectivity when the check is performed",
    )
