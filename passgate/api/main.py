"""HTTP application for Passgate.

``create_app`` wires the auth routes, middleware and error envelope. The
process-wide instance is built lazily by ``get_app`` (uvicorn runs it as a
factory).

Middleware, outermost first:
    request tracing -> correlation id -> security headers -> body limit
    -> CORS -> session cookie -> routes
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from passgate import __version__
from passgate.api.cookies import apply_session_cookie
from passgate.api.middleware import MAX_REQUEST_BODY_BYTES, RequestTracingMiddleware
from passgate.api.routes import api_router
from passgate.auth.config import AuthConfig
from passgate.exceptions import PassgateError
from passgate.settings import Settings, get_settings
from passgate.storage import close_db, create_tables, init_db

# Per-request correlation id, readable from any layer during the request
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_app: FastAPI | None = None

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare the database on startup and release the pool on shutdown.

    SQLite deployments get their tables created; other databases are only
    checked for connectivity (schema comes from alembic). Nothing is done
    under ``environment=testing``.
    """
    settings: Settings = app.state.settings

    if settings.environment != "testing":
        if settings.database_url.startswith("sqlite"):
            await create_tables()
        else:
            await init_db()

    yield

    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build a configured application.

    Args:
        settings: Settings to use instead of get_settings()

    Raises:
        ConfigurationError: If production runs without SESSION_SECRET.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Passgate",
        description="Passwordless authentication with WebAuthn passkeys",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth_config = AuthConfig.from_settings(settings)

    # Registered innermost-first
    app.middleware("http")(_session_cookie_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
    )
    app.middleware("http")(_body_size_limit_middleware)
    app.middleware("http")(_security_headers_middleware)
    app.middleware("http")(_correlation_middleware)
    app.add_middleware(RequestTracingMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    _register_exception_handlers(app)

    return app


def _cors_origins(settings: Settings) -> list[str]:
    """ALLOWED_ORIGINS (comma-separated) if set, else the WebAuthn origin.

    The session cookie is credentialed, so a wildcard is never used.
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return [settings.webauthn_origin]


# =============================================================================
# Middleware
# =============================================================================


async def _session_cookie_middleware(request: Request, call_next):
    # Runs inside the exception handlers, so error responses carry the cookie too
    response = await call_next(request)
    apply_session_cookie(request, response, request.app.state.auth_config)
    return response


async def _body_size_limit_middleware(request: Request, call_next):
    """Answer 413 when Content-Length exceeds MAX_REQUEST_BODY_BYTES."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > MAX_REQUEST_BODY_BYTES:
        return _error_response(
            413,
            "REQUEST_TOO_LARGE",
            f"Request body too large. Maximum size is {MAX_REQUEST_BODY_BYTES} bytes.",
            "request_too_large",
            get_correlation_id() or str(uuid.uuid4()),
        )
    return await call_next(request)


async def _security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    _apply_security_headers(request, response)
    return response


def _apply_security_headers(request: Request, response: Response) -> None:
    headers = response.headers

    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    if request.app.state.settings.environment in ("production", "staging"):
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    # Ceremony options and session state must never be cached
    if request.url.path.startswith("/api/"):
        headers["Cache-Control"] = "no-store, no-cache, must-revalidate"


async def _correlation_middleware(request: Request, call_next):
    """Adopt the caller's X-Correlation-ID or mint one, and echo it back."""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    _correlation_id.set(correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def get_correlation_id() -> str | None:
    """Correlation id of the current request, or None outside a request."""
    return _correlation_id.get()


# =============================================================================
# Error envelope
# =============================================================================


def _error_response(
    status_code: int,
    code: str,
    message: str,
    error_type: str,
    correlation_id: str,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "type": error_type,
                "correlation_id": correlation_id,
            }
        },
        headers={"X-Correlation-ID": correlation_id},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": {code, message, type, correlation_id}}``."""

    @app.exception_handler(PassgateError)
    async def passgate_error_handler(request: Request, exc: PassgateError) -> JSONResponse:
        correlation_id = get_correlation_id() or exc.correlation_id
        error_type = exc.__class__.__name__.replace("Error", "_error").lower()
        status_code = getattr(exc, "status_code", 500)
        code = getattr(exc, "code", "INTERNAL_ERROR")

        if status_code < 500:
            logger.info(
                "request_rejected",
                code=code,
                path=request.url.path,
                correlation_id=correlation_id,
            )
            return _error_response(status_code, code, exc.message, error_type, correlation_id)

        logger.error(
            "passgate_error",
            error_type=error_type,
            correlation_id=correlation_id,
            exc_info=exc,
        )
        if request.app.state.settings.debug:
            message = str(exc)
        else:
            message = f"An error occurred. Correlation ID: {correlation_id}"
        return _error_response(status_code, code, message, error_type, correlation_id)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Malformed bodies share the envelope and code of domain validation."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        if field:
            message = f"{field}: {message}"
        return _error_response(
            400,
            "VALIDATION_ERROR",
            message,
            "validation_error",
            get_correlation_id() or str(uuid.uuid4()),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(
            exc.status_code,
            "HTTP_ERROR",
            str(exc.detail),
            "http_error",
            get_correlation_id() or str(uuid.uuid4()),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Answer 500 from outside every ``app.middleware`` layer.

        Starlette runs this handler in ServerErrorMiddleware, so the session
        cookie and security headers those layers add are applied here.
        """
        correlation_id = (
            get_correlation_id()
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        logger.exception("unhandled_exception", correlation_id=correlation_id, exc_info=exc)

        message = str(exc) if request.app.state.settings.debug else "Internal server error"
        response = _error_response(500, "INTERNAL_ERROR", message, "internal_error", correlation_id)
        apply_session_cookie(request, response, request.app.state.auth_config)
        _apply_security_headers(request, response)
        return response


def get_app() -> FastAPI:
    """The process-wide application, created on first call."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str) -> Any:
    # "passgate.api.main:app" builds the app on first access, not at import
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
