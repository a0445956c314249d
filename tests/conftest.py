import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.customers.models import Customer
from modules.orders.dtos import GuestCustomerDTO, OrderDraftDTO
from modules.orders.services import build_order_service
from modules.payments.gateway import FakeGateway, reset_gateway, set_gateway
from modules.products.models import Product, ProductStatus


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def fake_gateway():
    """Fresh in-memory payment gateway for every test."""
    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make_product(**overrides) -> Product:
        counter["n"] += 1
        data = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "price": Decimal("10.00"),
            "currency": "USD",
            "stock_quantity": 100,
            "status": ProductStatus.ACTIVE,
        }
        data.update(overrides)
        return Product.objects.create(**data)

    return _make_product


@pytest.fixture()
def make_customer():
    User = get_user_model()

    def _make_customer(
        email: str = "shopper@example.com",
        password: str = "correct-horse-1",
        is_active: bool = True,
    ) -> Customer:
        user = User.objects.create_user(username=email, email=email, password=password)
        return Customer.objects.create(
            user=user,
            email=email,
            first_name="Sam",
            last_name="Shopper",
            is_active=is_active,
        )

    return _make_customer


@pytest.fixture()
def staff_user():
    User = get_user_model()
    return User.objects.create_user(
        username="staff", password="staff-pass-123", is_staff=True
    )


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def guest_order(make_product):
    """A pending guest order of 2 x 10.00 + 5.00 shipping (25.00 USD)."""
    product = make_product()
    draft = OrderDraftDTO(
        items=[{"product_id": product.id, "quantity": 2}],
        shipping_amount="5.00",
    )
    guest = GuestCustomerDTO(
        email="guest@example.com", first_name="Gina", last_name="Guest"
    )
    return build_order_service().create_guest_order(draft, guest)


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


@pytest.fixture()
def sign_webhook():
    """Build a ``Stripe-Signature`` header for a payload."""

    def _sign(payload: str, secret: str = None, timestamp: int = None) -> str:
        secret = secret or settings.STRIPE_WEBHOOK_SECRET
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f"{timestamp}.{payload}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign


@pytest.fixture()
def webhook_event():
    """Serialize a Stripe-style event envelope."""

    def _event(event_type: str, obj: dict, event_id: str = "evt_test_1") -> str:
        return json.dumps(
            {
                "id": event_id,
                "object": "event",
                "type": event_type,
                "data": {"object": obj},
            }
        )

    return _event
