"""
Error handling service: maps domain errors to JSON API responses.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..security.auth import ApiAuthError, RateLimitError
from ..security.secure_logging import get_structured_logger
from .validators import ImmutableEntryError, NotFoundError, ValidationError

logger = get_structured_logger().get_logger(__name__)


class ErrorHandler:
    """Centralized error handling service."""

    def __init__(self):
        self.logger = logger

    @staticmethod
    def _generate_error_id() -> str:
        return str(uuid.uuid4())[:8]

    def handle_exception(
        self,
        exception: Exception,
        context: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log an unexpected exception; the response never carries its detail."""
        error_id = self._generate_error_id()
        self.logger.error(
            "Exception occurred",
            error_id=error_id,
            error_type=type(exception).__name__,
            context=context or "unknown context",
            user_id=user_id,
            operation="handle_exception",
            exc_info=exception,
        )
        return {
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def to_response(self, exception: Exception, context: Optional[str] = None) -> JSONResponse:
        """Translate any exception raised while serving a request"""
        if isinstance(exception, RateLimitError):
            return JSONResponse(
                {"error": exception.message},
                status_code=exception.status,
                headers={"Retry-After": str(exception.retry_after)},
            )
        if isinstance(exception, ApiAuthError):
            return JSONResponse({"error": exception.message}, status_code=exception.status)
        if isinstance(exception, ValidationError):
            return JSONResponse(
                {"error": exception.message, "issues": exception.issues},
                status_code=400,
            )
        if isinstance(exception, NotFoundError):
            return JSONResponse({"error": "Not found"}, status_code=404)
        if isinstance(exception, ImmutableEntryError):
            return JSONResponse({"error": str(exception)}, status_code=409)

        self.handle_exception(exception, context=context)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)


def _request_validation_issues(error: RequestValidationError):
    issues = []
    for issue in error.errors():
        # drop the leading "body"/"query" location
        loc = [str(part) for part in issue.get("loc", ())][1:]
        issues.append({"path": ".".join(loc) or "root", "message": issue.get("msg", "")})
    return issues


def register_exception_handlers(app: FastAPI, error_handler: Optional[ErrorHandler] = None) -> None:
    """Install the error mapping on a FastAPI app"""
    handler = error_handler or ErrorHandler()

    async def domain_error(request: Request, exc: Exception) -> JSONResponse:
        return handler.to_response(exc, context=request.url.path)

    async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return handler.to_response(ValidationError(_request_validation_issues(exc)))

    for exc_type in (
        RateLimitError,
        ApiAuthError,
        ValidationError,
        NotFoundError,
        ImmutableEntryError,
        Exception,
    ):
        app.add_exception_handler(exc_type, domain_error)
    app.add_exception_handler(RequestValidationError, request_validation_error)
