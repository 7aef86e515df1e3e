from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialising to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["ok"])
    version: str = Field(..., examples=["1.0.0"])
    timestamp: str = Field(..., description="Current server time, ISO 8601")
    uptime: float = Field(..., description="Seconds since the process started")


class ErrorBody(BaseModel):
    code: str = Field(..., examples=["NOT_FOUND"])
    message: str
    details: Optional[Dict[str, Any]] = None
    requestId: Optional[str] = None


class ErrorResponse(BaseModel):
    """Shape of every error response, used for OpenAPI documentation."""

    error: ErrorBody


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Insufficient permissions"},
}
