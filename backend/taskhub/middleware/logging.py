"""Request tracing and structured access logging."""

import time
import uuid
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

# Probes are logged at debug level to keep access logs readable
QUIET_PATH_SUFFIXES = ("/health", "/health/ready")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns each request an ID and logs it with timing.

    The request ID is taken from the ``X-Request-ID`` header when the client
    sends one, stored on ``request.state`` and echoed back in the response.
    It is bound into structlog contextvars so every event logged while the
    request is handled carries it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )

        quiet = request.url.path.endswith(QUIET_PATH_SUFFIXES)
        log = logger.debug if quiet else logger.info
        log("request_started")

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "request_failed",
                error=str(exc),
                duration_ms=elapsed_ms(start_time),
            )
            raise

        duration_ms = elapsed_ms(start_time)
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[PROCESS_TIME_HEADER] = str(duration_ms)
        return response


def elapsed_ms(start_time: float) -> float:
    """Milliseconds since start_time, rounded for logging."""
    return round((time.perf_counter() - start_time) * 1000, 2)
