"""Common Pydantic schemas used across API endpoints."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body of the extraction endpoint: `{"error": "..."}`."""

    error: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str = Field(description="Service status")
    version: str = Field(description="Application version")
