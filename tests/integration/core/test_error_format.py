"""Integration tests for the ``{"error": {"message", "status"}}`` envelope."""

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

pytestmark = pytest.mark.integration

User = get_user_model()


@pytest.fixture()
def auth_client():
    """APIClient with a force-authenticated user without a customer profile."""
    client = APIClient()
    user = User.objects.create_user(username="errorformat", password="testpass123")
    client.force_authenticate(user=user)
    return client


def _assert_envelope(response, status):
    assert response.status_code == status
    body = response.json()
    assert set(body) == {"error"}
    assert body["error"]["status"] == status
    assert isinstance(body["error"]["message"], str)
    assert body["error"]["message"]


class TestErrorEnvelope:
    def test_authentication_error(self, api_client):
        _assert_envelope(api_client.get("/api/v1/orders/"), 401)

    def test_malformed_json(self, auth_client):
        response = auth_client.post(
            "/api/v1/orders/", data="{", content_type="application/json"
        )
        _assert_envelope(response, 400)

    def test_serializer_validation_names_field(self, api_client):
        response = api_client.post("/api/v1/accounts/register/", {}, format="json")

        _assert_envelope(response, 400)
        assert "email" in response.json()["error"]["message"]

    def test_dto_validation(self, api_client, make_product):
        product = make_product()
        response = api_client.post(
            "/api/v1/checkout/guest/",
            {
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_amount": "-1.00",
                "guest": {
                    "email": "a@example.com",
                    "first_name": "Al",
                    "last_name": "Bo",
                },
            },
            format="json",
        )

        _assert_envelope(response, 400)
        assert "shipping_amount" in response.json()["error"]["message"]

    def test_domain_not_found(self, api_client):
        _assert_envelope(api_client.get("/api/v1/orders/ORD-NOPE/"), 404)

    def test_missing_customer_profile(self, auth_client):
        _assert_envelope(auth_client.get("/api/v1/orders/"), 404)

    def test_permission_denied(self, auth_client, guest_order):
        response = auth_client.patch(
            f"/api/v1/orders/{guest_order.order_number}/status/",
            {"status": "confirmed"},
            format="json",
        )
        _assert_envelope(response, 403)
