"""
Error taxonomy and the JSON error envelope
Services raise these; the app turns them into {"error": "..."} responses
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class FluencyError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FluencyError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(FluencyError):
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(FluencyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AggregateLoadError(InternalError):
    """Raised when a question aggregate cannot be assembled from the database."""


def format_validation_errors(errors) -> str:
    """Flatten pydantic error dicts into one readable line."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid request"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(FluencyError)
    async def fluency_error_handler(request: Request, exc: FluencyError):
        if exc.status_code >= 500:
            log.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": format_validation_errors(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error(f"[API] Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal server error"},
        )
