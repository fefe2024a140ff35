"""Global exception handlers for FastAPI."""

import logging

import psycopg2
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_code_for(message: str) -> tuple[int, str]:
    """Map a service ValueError message onto (status, code)."""
    lowered = message.lower()
    if "not found" in lowered:
        return 404, ErrorCodes.NOT_FOUND
    if "paid or cancelled" in lowered:
        return 400, ErrorCodes.INVOICE_FINALIZED
    if lowered.startswith("cannot transition"):
        return 400, ErrorCodes.INVALID_STATUS_TRANSITION
    return 400, ErrorCodes.INVALID_REQUEST


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        status_code, code = _error_code_for(message)
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, message, _request_id(request)).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(psycopg2.OperationalError)
    async def database_unavailable_handler(request: Request, exc: psycopg2.OperationalError):
        logger.error(f"Database unavailable: {exc}")
        return JSONResponse(
            status_code=503,
            content=error_response(
                ErrorCodes.SERVICE_UNAVAILABLE,
                "Database is unavailable",
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                _request_id(request),
            ).model_dump(mode="json"),
        )
