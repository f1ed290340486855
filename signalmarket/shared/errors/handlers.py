"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
Every error response is ``{"error": message, "code": code}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from signalmarket.domain.marketplace.errors import (
    ForbiddenError,
    InsufficientFundsError,
    InvalidStateError,
    MarketplaceDomainError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from signalmarket.shared.security.auth import AuthenticationError

logger = logging.getLogger(__name__)

HTTP_401 = 401
HTTP_402 = 402
HTTP_403 = 403
HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, code: str) -> JSONResponse:
    """Build a consistent JSON error response."""
    return JSONResponse(status_code=status_code, content={"error": error, "code": code})


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(
        _request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle missing or invalid bearer tokens."""
        return _error_response(HTTP_401, exc.message, exc.code)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle unknown signals, users, plans and transactions."""
        logger.warning("%s not found: %s", exc.entity, exc.identifier)
        return _error_response(HTTP_404, exc.message, exc.code)

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(_request: Request, exc: ForbiddenError) -> JSONResponse:
        """Handle self-trades, missing roles and ownership violations."""
        logger.warning("Forbidden (%s): %s", exc.code, exc.message)
        return _error_response(HTTP_403, exc.message, exc.code)

    @app.exception_handler(InvalidStateError)
    async def handle_invalid_state(
        _request: Request, exc: InvalidStateError
    ) -> JSONResponse:
        """Handle duplicates and lifecycle conflicts."""
        logger.warning("Conflict (%s): %s", exc.code, exc.message)
        return _error_response(HTTP_409, exc.message, exc.code)

    @app.exception_handler(InsufficientFundsError)
    async def handle_insufficient_funds(
        _request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        """Handle wallet balances below the required debit."""
        logger.warning("Insufficient funds: required %s", exc.required)
        return _error_response(HTTP_402, "Insufficient wallet balance", exc.code)

    @app.exception_handler(UpstreamUnavailableError)
    async def handle_upstream(
        _request: Request, exc: UpstreamUnavailableError
    ) -> JSONResponse:
        """Handle an unreachable price or blockchain service."""
        logger.error("Upstream unavailable: %s (%s)", exc.service, exc.reason)
        return _error_response(HTTP_503, f"{exc.service} unavailable", exc.code)

    @app.exception_handler(ValidationError)
    async def handle_validation(
        _request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle malformed operation parameters."""
        return _error_response(HTTP_422, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle schema validation failures without echoing the payload."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return _error_response(HTTP_422, message, "invalid_request")

    @app.exception_handler(MarketplaceDomainError)
    async def handle_marketplace_domain(
        _request: Request, exc: MarketplaceDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled marketplace domain errors."""
        logger.error("Unhandled marketplace domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error", "internal_error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error", "internal_error")
