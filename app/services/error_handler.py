"""
Error rendering for the API.
Every failure leaves the service as {"error": {code, message, timestamp, details?, request_id?}}.
"""

from typing import Dict, Any, Optional, List
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from fastapi.exceptions import RequestValidationError
from app.utils.exceptions import APIException
from app.utils.timeutils import utc_now
from typing import Union
import logging
import uuid

logger = logging.getLogger(__name__)

_CONSTRAINT_MESSAGES = {
    "unique": "Duplicate value for unique field",
    "foreign key": "Referenced record does not exist",
    "not null": "Required field cannot be empty",
    "check constraint": "Value does not meet validation requirements",
}


class ErrorHandlerService:
    """Formats exceptions into JSON error envelopes and logs them at the right level."""

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": utc_now().isoformat().replace("+00:00", "Z"),
        }
        if details:
            body["details"] = details
        if request_id:
            body["request_id"] = request_id
        return {"error": body}

    @staticmethod
    def request_id_for(request: Optional[Request]) -> str:
        """Reuse the id assigned by the request middleware, or mint a short one."""
        if request is not None:
            existing = getattr(request.state, "request_id", None)
            if existing:
                return existing
        return uuid.uuid4().hex[:8]

    @staticmethod
    def handle_api_exception(exception: APIException, request: Optional[Request] = None) -> JSONResponse:
        request_id = ErrorHandlerService.request_id_for(request)
        log = logger.error if exception.status_code >= 500 else logger.warning
        log(
            f"API error [{request_id}] {exception.status_code} {exception.error_code}: {exception.detail}",
            extra={"request_id": request_id, "path": request.url.path if request else None}
        )
        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(
                error_code=exception.error_code or "API_ERROR",
                message=str(exception.detail),
                request_id=request_id
            ),
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: Union[RequestValidationError, PydanticValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Schema failures keep 422 and list every offending field."""
        request_id = ErrorHandlerService.request_id_for(request)
        details = []
        for error in exception.errors():
            details.append({
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg"),
                "type": error.get("type"),
            })

        logger.warning(f"Validation error [{request_id}]: {len(details)} field error(s) on "
                       f"{request.url.path if request else '-'}")
        return JSONResponse(
            status_code=422,
            content=ErrorHandlerService.format_error_response(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                details=details,
                request_id=request_id
            )
        )

    @staticmethod
    def handle_database_error(exception: SQLAlchemyError, request: Optional[Request] = None) -> JSONResponse:
        request_id = ErrorHandlerService.request_id_for(request)

        if isinstance(exception, IntegrityError):
            status_code, error_code = 409, "INTEGRITY_ERROR"
            message = "Data integrity constraint violation"
            hint = ErrorHandlerService._constraint_hint(exception)
            if hint:
                message = f"Constraint violation: {hint}"
        else:
            status_code, error_code = 500, "DATABASE_ERROR"
            message = "Database operation failed"

        logger.error(f"Database error [{request_id}] {type(exception).__name__}: {exception}", exc_info=True)
        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(error_code, message, request_id=request_id)
        )

    @staticmethod
    def handle_http_exception(exception: HTTPException, request: Optional[Request] = None) -> JSONResponse:
        request_id = ErrorHandlerService.request_id_for(request)
        logger.warning(f"HTTP {exception.status_code} [{request_id}]: {exception.detail}")
        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(
                error_code=f"HTTP_{exception.status_code}",
                message=str(exception.detail),
                request_id=request_id
            ),
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(exception: Exception, request: Optional[Request] = None) -> JSONResponse:
        request_id = ErrorHandlerService.request_id_for(request)
        logger.error(f"Unhandled error [{request_id}] {type(exception).__name__}: {exception}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorHandlerService.format_error_response(
                error_code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred. Please try again later.",
                request_id=request_id
            )
        )

    @staticmethod
    def _constraint_hint(exception: IntegrityError) -> Optional[str]:
        text = str(getattr(exception, "orig", exception)).lower()
        for marker, message in _CONSTRAINT_MESSAGES.items():
            if marker in text:
                return message
        return None
