"""Payment gateway factory.

Provides ``get_gateway()`` / ``set_gateway()`` to swap implementations:
- ``FakeGateway`` for development and testing
- ``StripeGateway`` for production

``settings.PAYMENT_GATEWAY`` (``"stripe"`` or ``"fake"``) selects the
default adapter.
"""

from __future__ import annotations

from typing import Optional

from django.conf import settings

from modules.payments.gateway.fake_adapter import FakeGateway
from modules.payments.gateway.port import IntentResult, PaymentGateway, RefundResult

_current_gateway: Optional[PaymentGateway] = None


def build_gateway() -> PaymentGateway:
    """Build the adapter named by ``settings.PAYMENT_GATEWAY``."""
    if getattr(settings, "PAYMENT_GATEWAY", "fake") == "stripe":
        from modules.payments.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            timeout=settings.STRIPE_TIMEOUT_SECONDS,
            max_network_retries=settings.STRIPE_MAX_NETWORK_RETRIES,
        )
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured default gateway."""
    global _current_gateway
    _current_gateway = None


__all__ = [
    "FakeGateway",
    "IntentResult",
    "PaymentGateway",
    "RefundResult",
    "build_gateway",
    "get_gateway",
    "reset_gateway",
    "set_gateway",
]
