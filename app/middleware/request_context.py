"""
Request context middleware: request ids, body size limit and access logging.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from app.middleware.rate_limit import get_client_ip
from app.services.error_handler import ErrorHandlerService
from app.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a short id (echoed as `X-Request-ID`), rejects
    oversized bodies and logs one line per request and response.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 50 * 1024 * 1024,  # multipart uploads carry several files
        enable_request_logging: bool = True,
        slow_request_threshold: float = 1.0
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.time()

        try:
            self._validate_request_size(request)
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
            response.headers["X-Request-ID"] = request_id
            return response

        if self.enable_request_logging:
            logger.info(
                f"Request [{request_id}]: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "client_ip": get_client_ip(request),
                    "user_agent": request.headers.get("user-agent", "unknown")
                }
            )

        response = await call_next(request)

        processing_time = time.time() - start_time
        if self.enable_request_logging:
            logger.info(f"Response [{request_id}]: {response.status_code} - {processing_time:.3f}s")
        if processing_time > self.slow_request_threshold:
            logger.warning(f"Slow request [{request_id}]: {request.method} {request.url.path} took {processing_time:.3f}s")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{processing_time:.4f}"
        return response

    def _validate_request_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If the declared body size exceeds the limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return
        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")
        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )
