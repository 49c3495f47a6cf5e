"""Request tracing for the HTTP API.

One structlog event per request with method, path, status, duration and
correlation id. Cookies, headers and bodies are never logged: they carry
session blobs and WebAuthn payloads.
"""

import time
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

# Ceremony payloads are a few KB; anything far beyond that is not a browser.
MAX_REQUEST_BODY_BYTES = 64 * 1024


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Log every request once it has a response (or has failed)."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Imported here: passgate.api.main imports this module
        from passgate.api.main import get_correlation_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(start),
                correlation_id=get_correlation_id(),
                error_type=type(e).__name__,
                exc_info=e,
            )
            raise

        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=_elapsed_ms(start),
            correlation_id=get_correlation_id(),
        )
        return response
