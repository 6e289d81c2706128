"""
Request logging middleware
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from focuslane.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by load balancers; logged at DEBUG only
QUIET_PATHS = frozenset({"/health"})


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with its id and logs one summary line per request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        path = request.url.path
        started = time.perf_counter()

        with LoggingConfig.request_scope(request_id=request_id, method=request.method, path=path):
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request failed",
                    exc_info=True,
                    extra={"error_type": type(e).__name__, "duration_ms": _elapsed_ms(started)},
                )
                raise

            status_code = response.status_code
            if status_code >= 500:
                level = "error"
            elif status_code >= 400:
                level = "warning"
            elif path in QUIET_PATHS:
                level = "debug"
            else:
                level = "info"
            getattr(logger, level)(
                f"{request.method} {path} -> {status_code}",
                extra={"status_code": status_code, "duration_ms": _elapsed_ms(started)},
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
