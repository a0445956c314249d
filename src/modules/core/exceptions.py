"""Translation of errors into the public JSON error envelope.

Every error response has the shape::

    {"error": {"message": "...", "status": 404}}

Domain errors carry their own status; DRF errors (authentication, parsing,
serializer validation) are re-shaped by ``api_exception_handler``, which is
registered as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from shared.domain.exceptions import DomainError

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred."


def error_payload(message: str, status: int) -> dict[str, Any]:
    return {"error": {"message": message, "status": status}}


def error_response(exc: DomainError) -> Response:
    """Build the error response for a domain exception."""
    status = exc.status_code
    message = exc.message if status < 500 else INTERNAL_ERROR_MESSAGE
    logger.info(
        "api.domain_error",
        error_type=type(exc).__name__,
        status_code=status,
    )
    return Response(error_payload(message, status), status=status)


def _flatten_detail(detail: Any) -> str:
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            text = _flatten_detail(value)
            parts.append(text if field == "non_field_errors" else f"{field}: {text}")
        return "; ".join(parts)
    if isinstance(detail, list):
        return " ".join(_flatten_detail(item) for item in detail)
    return str(detail)


def pydantic_error_message(exc: PydanticValidationError) -> str:
    """Join pydantic errors as ``field: message`` pairs."""
    parts = []
    for error in exc.errors():
        text = str(error.get("msg", "")).removeprefix("Value error, ")
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {text}" if location else text)
    return "; ".join(parts)


def api_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """DRF exception handler producing the ``{"error": {...}}`` envelope."""
    if isinstance(exc, DomainError):
        return error_response(exc)
    if isinstance(exc, PydanticValidationError):
        message = pydantic_error_message(exc)
        return Response(error_payload(message, 400), status=400)

    response = exception_handler(exc, context)
    if response is None:
        logger.exception(
            "api.unhandled_error",
            error_type=type(exc).__name__,
            view=type(context.get("view")).__name__,
        )
        return Response(error_payload(INTERNAL_ERROR_MESSAGE, 500), status=500)

    if isinstance(exc, DRFValidationError):
        message = _flatten_detail(exc.detail)
    else:
        message = _flatten_detail(getattr(exc, "detail", str(exc)))

    response.data = error_payload(message, response.status_code)
    return response
