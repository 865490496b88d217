"""
Lightweight per-route spans.

A span groups the named steps of one handler (``validating_input``,
``saving_user``, ...) under the request's trace id and is written to the log
as a single line when the handler finishes.
"""
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from fastapi import Request

logger = logging.getLogger(__name__)


class RouteSpan:
    def __init__(self, operation: str, trace_id: Optional[str] = None):
        self.operation = operation
        self.trace_id = trace_id or uuid.uuid4().hex
        self.events: List[str] = []
        self.tags: Dict[str, Any] = {}
        self.error = False
        self.finished = False
        self._started = time.perf_counter()
        self.duration_ms: Optional[float] = None

    def log(self, event: str) -> None:
        self.events.append(event)

    def set_tag(self, key: str, value: Any) -> None:
        self.tags[key] = value

    def set_error(self, event: Optional[str] = None) -> None:
        self.error = True
        if event:
            self.log(event)

    def finish(self) -> None:
        if self.finished:
            return
        self.finished = True
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        log = logger.warning if self.error else logger.info
        log(
            "SPAN %s trace_id=%s duration_ms=%.1f error=%s events=%s tags=%s",
            self.operation, self.trace_id, self.duration_ms, self.error,
            ",".join(self.events), self.tags
        )


@contextmanager
def route_span(request: Request, operation: str) -> Iterator[RouteSpan]:
    """
    Open a span for ``operation`` bound to the request's trace id.

    The span is marked as an error if the block raises; the exception is
    re-raised for the service error handlers.
    """
    span = RouteSpan(operation, getattr(request.state, "trace_id", None))
    try:
        yield span
    except Exception as exc:
        span.set_error(f"error:{type(exc).__name__}")
        raise
    finally:
        span.finish()
