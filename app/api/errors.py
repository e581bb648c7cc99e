"""
Exception handlers rendering every failure as an API envelope.
"""

from typing import Any, Dict, List

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.userop import UserOpError, ValidationError
from ..types import ApiEnvelope

logger = structlog.stdlib.get_logger(__name__)


def _envelope(status_code: int, code: str, message: str) -> JSONResponse:
    body = ApiEnvelope.fail(code, message).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def _format_validation_errors(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        # Drop the leading "body" / "path" segment
        loc = [str(part) for part in error.get("loc", ())[1:]]
        parts.append(f"{'.'.join(loc) or 'body'}: {error.get('msg')}")
    return "Validation error: " + ", ".join(parts)


async def user_op_error_handler(request: Request, exc: UserOpError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "api_error",
        code=exc.code,
        message=exc.message,
        path=request.url.path,
    )
    return _envelope(exc.status_code, exc.code, exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation_errors(exc.errors())
    logger.warning("api_validation_error", path=request.url.path, message=message)
    return _envelope(status.HTTP_400_BAD_REQUEST, ValidationError.code, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api_unhandled_error", path=request.url.path)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserOpError, user_op_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
