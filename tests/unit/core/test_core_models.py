from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.events import OrderCreated
from modules.products.models import Product

pytestmark = pytest.mark.unit


class TestSoftDelete:
    def test_delete_retires_row(self):
        product = Product.objects.create(sku="soft-1", name="Soft", price=Decimal("1"))
        product.delete()

        assert Product.objects.filter(id=product.id).exists()
        assert not Product.objects.alive().filter(id=product.id).exists()
        product.refresh_from_db()
        assert product.is_deleted

    def test_queryset_delete_is_soft(self):
        Product.objects.create(sku="soft-2", name="Soft", price=Decimal("1"))
        count, _ = Product.objects.alive().delete()
        assert count == 1
        assert Product.objects.count() == 1


class TestOutboxEvent:
    def test_record_serializes_event(self):
        aggregate_id = uuid4()
        event = OrderCreated(aggregate_id=aggregate_id, order_number="ORD-1")

        row = OutboxEvent.record(event, topic="orders")

        assert row.event_type == "OrderCreated"
        assert row.aggregate_id == str(aggregate_id)
        assert row.status == EventStatus.PENDING
        assert row.payload["order_number"] == "ORD-1"
        assert row.payload["aggregate_id"] == str(aggregate_id)
