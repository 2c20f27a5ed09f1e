"""
Natours Backend: Shared Response Schemas
==========================================

What:  Base model configuration, the error response contract and the health
       probe response.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serializes to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def serialize(schema: type[CamelModel], obj: Any) -> Dict[str, Any]:
    """ORM object → JSON-ready dict with camelCase keys."""
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


class ErrorResponse(BaseModel):
    """
    The one error shape every API request receives.

    ``error`` and ``stack`` are present only in development.

    Example (production):
        {"status": "fail", "message": "Can't find /api/v2 on this server!"}
    """

    status: str = Field(description="'fail' for 4xx, 'error' for 5xx")
    message: str = Field(description="Client-safe description")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Development only")
    stack: Optional[str] = Field(default=None, description="Development only")


# Documented on every /api/v1 router; the body is produced by natours.errors.
API_ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    413: {"model": ErrorResponse, "description": "Request body over the size limit"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
}


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    environment: str = Field(description="Deployment environment")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
