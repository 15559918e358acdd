"""
app/core/errors.py

Purpose: Maps exceptions to the ErrorResponse body

- SawaPayError subclasses keep their status and code
- Auth provider and callable function failures (502) are logged as errors,
  denied access as warnings
- Request validation errors are flattened to field/message pairs
- Anything else is a 500 that hides internals in production
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import SawaPayError
from app.core.logging import get_logger, current_log_context
from app.schemas.response import ErrorResponse, field_issues

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        code=code,
        details=details,
        request_id=current_log_context().get("request_id"),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body.model_dump()))


async def unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """
    500 body for exceptions without a dedicated handler. Also called by the request
    middleware so the response keeps its request id.
    """
    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown"
        },
        exc_info=True
    )
    message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
    return error_response(500, message, "INTERNAL_ERROR")


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(SawaPayError)
    async def sawapay_exception_handler(request: Request, exc: SawaPayError):
        context = {"method": request.method, "path": request.url.path, "code": exc.code}

        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}", extra={**context, "details": exc.details})
        elif exc.status_code in (401, 403):
            logger.warning(f"Access denied: {exc.message}", extra=context)

        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Unknown routes, wrong methods and other framework-raised errors."""
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        issues = field_issues(exc.errors())
        message = issues[0].message if len(issues) == 1 else "Input validation failed"
        return error_response(422, message, "VALIDATION_ERROR", [issue.model_dump() for issue in issues])

    app.add_exception_handler(Exception, unhandled_exception_response)
