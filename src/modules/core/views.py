import time
from typing import Any, Dict

import structlog
from django.conf import settings
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger(__name__)


def _check_database() -> Dict[str, Any]:
    started = time.monotonic()
    try:
        connection = connections["default"]
        connection.ensure_connection()
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        logger.error("health.database_unreachable", error=str(exc))
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - started) * 1000, 2),
    }


def _check_payment_gateway() -> Dict[str, Any]:
    """Configuration check only; the gateway itself is never called here."""
    adapter = str(getattr(settings, "PAYMENT_GATEWAY", "fake")).lower()
    if adapter != "stripe":
        return {"status": "up", "adapter": adapter}
    missing = [
        name
        for name in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET")
        if not getattr(settings, name, "")
    ]
    if missing:
        logger.error("health.gateway_misconfigured", missing=missing)
        return {"status": "down", "adapter": adapter, "missing": missing}
    return {"status": "up", "adapter": adapter}


def health_check(request: HttpRequest) -> JsonResponse:
    services = {
        "database": _check_database(),
        "payment_gateway": _check_payment_gateway(),
    }
    healthy = all(service["status"] == "up" for service in services.values())
    status = "healthy" if healthy else "unhealthy"

    logger.info("health.check_completed", status=status)
    return JsonResponse(
        {
            "status": status,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )
