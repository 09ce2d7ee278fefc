"""Global error handlers: consistent JSON error responses.

Domain errors raised by the services are mapped to HTTP status codes here so
routers never translate them by hand.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tsquest.errors import (
    AccessDeniedError,
    AuthenticationError,
    ConflictError,
    DomainError,
    InconsistentStateError,
    NotFoundError,
)

logger = structlog.get_logger()

_STATUS_BY_ERROR: dict[type[DomainError], int] = {
    NotFoundError: 404,
    AccessDeniedError: 403,
    ConflictError: 409,
    AuthenticationError: 401,
    InconsistentStateError: 500,
}


def _status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]  # type: ignore[index]
    return 400


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(_request: Request, exc: AccessDeniedError) -> JSONResponse:
        """403 with the paywall fields the client needs to render an upsell or lock."""
        return JSONResponse(
            status_code=403,
            content={
                "detail": exc.message,
                "error": exc.error_code,
                "requires_subscription": exc.result.requires_subscription,
                "subscription_status": exc.result.subscription_status,
                "reason": exc.result.reason,
                "level_order": exc.level_order,
                "locked_by_level_order": exc.result.locked_by_level_order,
            },
        )

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error("domain_error", path=request.url.path, error=exc.message, error_code=exc.error_code)
        content: dict[str, object] = {"detail": exc.message, "error": exc.error_code}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, always JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
