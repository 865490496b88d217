"""
Logging setup and request logging middleware shared by both services.
"""
import logging
import os
import sys
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings
from .metrics import observe_request, route_label

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging for a service.

    Logs always go to stdout. When ``LOG_DIR`` is set a file handler is added
    as well; if the directory cannot be created the service keeps running with
    stdout only.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "requests.log")))
        except (OSError, PermissionError) as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag every request with a trace id, log it and record its request metrics."""

    def __init__(self, app, trace_header: str = "X-Trace-Id"):
        super().__init__(app)
        self.trace_header = trace_header

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(self.trace_header) or uuid.uuid4().hex
        request.state.trace_id = trace_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            observe_request(request.method, route_label(request), 500, time.perf_counter() - started)
            raise

        elapsed = time.perf_counter() - started
        observe_request(request.method, route_label(request), response.status_code, elapsed)
        duration_ms = elapsed * 1000
        response.headers[self.trace_header] = trace_id
        logger.info(
            "Request: %s %s - Status: %s (%.1f ms) trace_id=%s",
            request.method, request.url.path, response.status_code, duration_ms, trace_id
        )
        return response
