"""
Error envelope schemas used to document failures in the OpenAPI output.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """One offending field of a validation failure."""

    field: Optional[str] = Field(None, description="Dotted path of the field", examples=["email"])
    message: str = Field(..., description="Human-readable error message", examples=["Field required"])
    type: Optional[str] = Field(None, description="Error type identifier", examples=["missing"])


class ErrorResponse(BaseModel):
    code: str = Field(..., description="Error code identifier", examples=["NOT_FOUND"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="UTC timestamp in ISO format", examples=["2024-01-01T00:00:00Z"])
    request_id: Optional[str] = Field(None, description="Request identifier for tracing", examples=["a1b2c3d4"])
    details: Optional[List[ErrorDetail]] = None


class APIErrorResponse(BaseModel):
    """Wrapper every error response uses."""

    error: ErrorResponse


def _response(description: str, code: str, message: str, **extra: Any) -> Dict[str, Any]:
    error = {
        "code": code,
        "message": message,
        "timestamp": "2024-01-01T00:00:00Z",
        "request_id": "a1b2c3d4",
    }
    error.update(extra)
    return {
        "description": description,
        "model": APIErrorResponse,
        "content": {"application/json": {"example": {"error": error}}},
    }


COMMON_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: _response("Bad Request - business rule rejected the request", "BAD_REQUEST",
                   "Unit is already booked"),
    401: _response("Unauthorized - missing or invalid bearer token", "UNAUTHORIZED", "Invalid token"),
    403: _response("Forbidden - caller may not perform this action", "FORBIDDEN",
                   "Insufficient individual credits. Please purchase a subscription plan to post properties."),
    404: _response("Not Found", "NOT_FOUND", "Property not found"),
    409: _response("Conflict - concurrent modification or protected record", "CONFLICT",
                   "Project was modified by someone else (expected version 3, current version 4). "
                   "Reload and try again."),
    422: _response("Unprocessable Entity - request body failed validation", "VALIDATION_ERROR",
                   "Request validation failed",
                   details=[{"field": "email", "message": "Field required", "type": "missing"}]),
    429: _response("Too Many Requests", "RATE_LIMIT_EXCEEDED", "Too many requests, please try again later"),
    500: _response("Internal Server Error", "INTERNAL_SERVER_ERROR",
                   "An unexpected error occurred. Please try again later."),
    502: _response("Bad Gateway - upstream integration failed", "EXTERNAL_SERVICE_ERROR",
                   "Nominatim request failed"),
    503: _response("Service Unavailable", "SERVICE_UNAVAILABLE", "Database unavailable"),
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """Documentation entries for the given status codes."""
    return {code: COMMON_ERROR_RESPONSES[code] for code in status_codes if code in COMMON_ERROR_RESPONSES}


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(401, 403, 422, 429)


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(400, 401, 403, 404, 422, 429, 500)


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(400, 401, 403, 404, 409, 422, 429, 500)
