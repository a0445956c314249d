import pytest
from django.core.management import call_command

from modules.customers.models import Customer
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_healthy_database(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"]["database"]["status"] == "up"

    def test_reports_payment_gateway_adapter(self, client):
        body = client.get("/health").json()

        assert body["services"]["payment_gateway"] == {
            "status": "up",
            "adapter": "fake",
        }

    def test_stripe_without_keys_is_unhealthy(self, client, settings):
        settings.PAYMENT_GATEWAY = "stripe"
        settings.STRIPE_SECRET_KEY = ""
        settings.STRIPE_WEBHOOK_SECRET = "whsec_present"

        response = client.get("/health")

        assert response.status_code == 503
        gateway = response.json()["services"]["payment_gateway"]
        assert gateway["status"] == "down"
        assert gateway["missing"] == ["STRIPE_SECRET_KEY"]


class TestSeedData:
    def test_seeds_catalog_accounts_and_orders(self):
        call_command("seed_data", "--orders", "4")

        assert Product.objects.count() == 8
        assert Customer.objects.filter(email="demo@example.com").exists()
        assert Order.objects.count() == 4
        assert Order.objects.filter(customer__isnull=True).count() == 2

    def test_is_rerunnable(self):
        call_command("seed_data", "--orders", "0")
        call_command("seed_data", "--orders", "0")

        assert Product.objects.count() == 8
        assert Customer.objects.count() == 1
