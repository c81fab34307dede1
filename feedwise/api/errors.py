"""Translate package exceptions into the JSON error envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from feedwise.api.schemas import ErrorBody, ErrorDetail, ErrorResponse
from feedwise.errors import InvalidRequestError, RecommendationUnavailableError

logger = logging.getLogger(__name__)


def validation_details(exc: ValidationError | RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{"field", "message"}`` pairs."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("query", "body")]
        details.append({"field": ".".join(loc) or "request", "message": error.get("msg", "")})
    return details


def _envelope(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(
            code=code,
            message=message,
            details=[ErrorDetail(**d) for d in details or []],
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidRequestError)
    async def invalid_request(_: Request, exc: InvalidRequestError) -> JSONResponse:
        return _envelope(
            status.HTTP_400_BAD_REQUEST, exc.code, exc.message, exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            InvalidRequestError.code,
            "Invalid request parameters",
            validation_details(exc),
        )

    @app.exception_handler(RecommendationUnavailableError)
    async def unavailable(_: Request, exc: RecommendationUnavailableError) -> JSONResponse:
        logger.error("Recommendation request failed: %s", exc.message)
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            exc.code,
            "Failed to fetch recommendations",
        )
