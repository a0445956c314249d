import re
import time
import uuid
from typing import Callable, Optional

import structlog
from django.http import HttpRequest, HttpResponse

REQUEST_ID_HEADER = "X-Request-ID"

# Client supplied request ids must match this to be echoed back.
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")

logger = structlog.get_logger(__name__)


def resolve_request_id(raw: Optional[str]) -> str:
    """Return the caller's request id when it is usable, else a new uuid4."""
    if raw and _REQUEST_ID_PATTERN.fullmatch(raw):
        return raw
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Tag every request, its log lines and its response with one request id.

    The id is bound into structlog's context variables for the lifetime of
    the request (so checkout, payment and webhook logs can be joined up),
    exposed as ``request.correlation_id`` and echoed in the
    ``X-Request-ID`` response header.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        correlation_id = resolve_request_id(request.META.get("HTTP_X_REQUEST_ID"))
        request.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        log = logger.bind(method=request.method, path=request.path)

        started = time.monotonic()
        log.info("http.request_started")
        try:
            response = self.get_response(request)
            duration_ms = round((time.monotonic() - started) * 1000, 2)
            if response.status_code >= 500:
                log.warning(
                    "http.request_failed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            else:
                log.info(
                    "http.request_finished",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            response[REQUEST_ID_HEADER] = correlation_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()
