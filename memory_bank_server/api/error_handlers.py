"""Error conversion for HTTP responses and stream error events."""

import logging
import re
from functools import wraps
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from memory_bank_server.core.errors import MemoryBankError
from memory_bank_server.models.api import ErrorPayload

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"
INTERNAL_ERROR_MESSAGE = "Internal server error"

# Absolute POSIX or Windows paths with at least two segments
_ABSOLUTE_PATH = re.compile(
    r"(?<![\w:/])(?:[A-Za-z]:\\(?:[^\\\s'\"]+\\)+[^\\\s'\"]*|/(?:[\w.\-]+/)+[\w.\-]*)"
)


def scrub_message(message: str) -> str:
    """Replace absolute filesystem paths in a client-facing message."""
    return _ABSOLUTE_PATH.sub("<path>", message)


def error_payload(exc: BaseException) -> ErrorPayload:
    """Client-safe description of ``exc``.

    Unknown exceptions are logged with their traceback and reported as a
    generic internal error.
    """
    if isinstance(exc, MemoryBankError):
        return ErrorPayload(
            code=exc.code,
            type=exc.kind,
            message=scrub_message(exc.message),
            details=exc.details,
        )

    logger.error(f"Unhandled exception: {exc!r}", exc_info=(type(exc), exc, exc.__traceback__))
    return ErrorPayload(
        code=INTERNAL_ERROR_CODE,
        type="InternalError",
        message=INTERNAL_ERROR_MESSAGE,
    )


def status_code_for(exc: BaseException) -> int:
    if isinstance(exc, MemoryBankError):
        return exc.status_code
    return 500


def error_response(exc: BaseException) -> JSONResponse:
    payload = error_payload(exc)
    return JSONResponse(
        status_code=status_code_for(exc),
        content={"error": payload.model_dump(mode="json")},
    )


def handle_api_errors(operation_name: str) -> Callable[[F], F]:
    """Decorator for standardized endpoint error handling.

    :class:`MemoryBankError` and :class:`HTTPException` pass through to the
    registered handlers; anything else is logged and becomes a 500 with a
    generic message.

    Usage:
        @handle_api_errors("post message")
        async def post_message(request: Request):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (HTTPException, MemoryBankError):
                raise
            except Exception as e:
                logger.error(f"Failed to {operation_name}: {e}", exc_info=True)
                raise HTTPException(
                    status_code=500, detail=f"Failed to {operation_name}"
                )

        return wrapper

    return decorator


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MemoryBankError)
    async def memory_bank_error_handler(request: Request, exc: MemoryBankError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
        return error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        return error_response(exc)


__all__ = [
    "INTERNAL_ERROR_CODE",
    "INTERNAL_ERROR_MESSAGE",
    "scrub_message",
    "error_payload",
    "status_code_for",
    "error_response",
    "handle_api_errors",
    "register_exception_handlers",
]
