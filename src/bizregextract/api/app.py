"""FastAPI application factory."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bizregextract import __version__, logger
from bizregextract.api.models import ErrorResponse
from bizregextract.api.routes import router
from bizregextract.exceptions import RequestError, ResultValidationError, SettingsError
from bizregextract.logging import bound_request, configure_logging
from bizregextract.settings import get_settings
from bizregextract.typing.enums import ErrorCode

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"


def _error_response(request: Request, status_code: int, body: ErrorResponse) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))
    response.headers[REQUEST_ID_HEADER] = body.request_id
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


async def _handle_request_error(request: Request, exc: RequestError) -> JSONResponse:
    """Report caller-facing errors with their stable code."""
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, request_id=_request_id(request))
    if isinstance(exc, ResultValidationError):
        body.provider = exc.provider
        body.client_request_id = exc.client_request_id
        body.x_request_id = exc.x_request_id
    logger.warning("Request rejected", extra={"error_code": exc.error_code.to_str(), "status_code": exc.status_code})
    return _error_response(request, exc.status_code, body)


async def _handle_settings_error(request: Request, exc: SettingsError) -> JSONResponse:
    """Report configuration problems without leaking details."""
    logger.error("Configuration error", extra={"error": str(exc)})
    body = ErrorResponse(
        error_code=ErrorCode.CONFIGURATION_ERROR,
        message="Server configuration error. Please contact administrator.",
        request_id=_request_id(request),
    )
    return _error_response(request, 500, body)


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Apply logging settings on startup and release the HTTP client on shutdown."""
    try:
        configure_logging(settings=get_settings(), force=True)
    except SettingsError as exc:
        logger.error("Configuration error at startup", extra={"error": str(exc)})
    try:
        yield
    finally:
        if get_settings.cache_info().currsize:
            get_settings().close_http_client()


def create_app() -> FastAPI:
    """Build the FastAPI application.

    Returns:
        FastAPI: Configured application.
    """
    app = FastAPI(
        title="Business Registration Number Extraction API",
        description="Extract business registration numbers mapped to product codes from table images",
        version=__version__,
        lifespan=_lifespan,
    )

    app.add_exception_handler(RequestError, _handle_request_error)
    app.add_exception_handler(SettingsError, _handle_settings_error)

    @app.middleware("http")
    async def request_context(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        with bound_request(request_id):
            logger.info("Request started", extra={"method": request.method, "path": request.url.path})
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Unexpected error")
                body = ErrorResponse(
                    error_code=ErrorCode.INTERNAL_ERROR,
                    message="An unexpected error occurred",
                    request_id=request_id,
                )
                return _error_response(request, 500, body)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
