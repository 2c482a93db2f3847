"""
Response envelopes.
Operational endpoints (health) use the standard envelope; error bodies use
the flat {"message", "error"} shape dashboard clients already parse.
"""

from typing import Any, Optional, TypeVar, Generic
from pydantic import BaseModel, ConfigDict


T = TypeVar('T')


class StandardResponse(BaseModel, Generic[T]):
    """
    Standardized envelope for operational endpoints.

    Example:
        {
            "success": true,
            "data": {...},
            "error": null,
            "message": "All services healthy"
        }
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "data": {"database": "connected", "push_gateway": "initialized"},
                "error": None,
                "message": "All services healthy"
            }
        }
    )


class ErrorBody(BaseModel):
    message: str
    error: Optional[str] = None


def success_response(data: Any, message: str = "Success") -> StandardResponse:
    """Create a successful response"""
    return StandardResponse(success=True, data=data, error=None, message=message)


def error_response(
    error: str,
    message: str = "An error occurred",
    data: Any = None
) -> StandardResponse:
    """Create an error response"""
    return StandardResponse(success=False, data=data, error=error, message=message)


def error_body(message: str, error: Optional[Exception] = None) -> dict:
    """Flat error body for failed notification/device-token requests"""
    return ErrorBody(message=message, error=str(error) if error else None).model_dump(exclude_none=True)
