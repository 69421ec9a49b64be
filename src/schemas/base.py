"""Base Pydantic schemas and the JSON:API error envelope."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    class Config:
        from_attributes = True
        populate_by_name = True
        str_strip_whitespace = True
        validate_assignment = True


class JSONAPIError(BaseSchema):
    """JSON:API error object."""

    id: Optional[str] = Field(None, description="Unique error identifier")
    status: Optional[str] = Field(None, description="HTTP status code")
    code: Optional[str] = Field(None, description="Application-specific error code")
    title: Optional[str] = Field(None, description="Short, human-readable summary")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    source: Optional[Dict[str, str]] = Field(
        None, description="References to the source of the error"
    )
    meta: Optional[Dict[str, Any]] = Field(
        None, description="Additional metadata about the error"
    )


class JSONAPIErrorResponse(BaseSchema):
    """JSON:API error response."""

    errors: List[JSONAPIError] = Field(description="Array of error objects")
    meta: Optional[Dict[str, Any]] = Field(
        None, description="Metadata about the error response"
    )


class CollectionMeta(BaseSchema):
    """Metadata for unpaginated collections."""

    count: int = Field(description="Number of items returned")


class HealthCheckResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(description="Service status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(description="Health check timestamp")
    version: str = Field(description="Service version")
    environment: str = Field(description="Environment name")

    dependencies: Dict[str, Dict[str, Any]] = Field(
        description="Dependency health status"
    )

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        valid_statuses = {"healthy", "degraded", "unhealthy"}
        if v not in valid_statuses:
            raise ValueError(f"Status must be one of: {valid_statuses}")
        return v
