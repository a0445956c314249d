"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from typing import Any, Optional

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory
from shared.domain.money import Money


class MoneyField(serializers.Field):
    """Read-only rendering of a ``Money`` attribute."""

    def __init__(self, **kwargs: Any) -> None:
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value: Money) -> dict[str, Any]:
        return money_representation(value)


def money_representation(value: Money) -> dict[str, Any]:
    return value.to_dict()


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderItemInputSerializer(serializers.Serializer):
    """Validates a single item in a checkout request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class OrderDraftSerializer(serializers.Serializer):
    """Validates the shape of a checkout request.

    Money and address values are parsed by ``OrderDraftDTO``.
    """

    items = OrderItemInputSerializer(many=True, allow_empty=False)
    currency = serializers.CharField(required=False, allow_null=True, max_length=3)
    tax_amount = serializers.JSONField(required=False, allow_null=True)
    shipping_amount = serializers.JSONField(required=False, allow_null=True)
    discount_amount = serializers.JSONField(required=False, allow_null=True)
    billing_address = serializers.JSONField(required=False, allow_null=True)
    shipping_address = serializers.JSONField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    metadata = serializers.DictField(required=False, default=dict)


class GuestInputSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=180)
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(
        max_length=20, required=False, allow_null=True, allow_blank=True
    )


class GuestCheckoutSerializer(OrderDraftSerializer):
    guest = GuestInputSerializer()


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    force = serializers.BooleanField(required=False, default=False)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    unit_price = MoneyField()
    total_price = MoneyField()

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "total_price",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "forced",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    customer = serializers.SerializerMethodField()
    subtotal = MoneyField()
    tax_amount = MoneyField()
    shipping_amount = MoneyField()
    discount_amount = MoneyField()
    total = MoneyField()
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    items_count = serializers.IntegerField(read_only=True)
    total_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_type",
            "customer",
            "status",
            "currency",
            "subtotal",
            "tax_amount",
            "shipping_amount",
            "discount_amount",
            "total",
            "billing_address",
            "shipping_address",
            "metadata",
            "notes",
            "items_count",
            "total_quantity",
            "confirmed_at",
            "shipped_at",
            "delivered_at",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_customer(self, order: Order) -> Optional[dict[str, Any]]:
        """Polymorphic owner, tagged ``"user"`` or ``"guest"`` in ``type``."""
        party = order.party
        if party is None:
            return None
        if party.kind == "user":
            customer = party.customer
            return {
                "type": "user",
                "id": str(customer.id),
                "email": customer.email,
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "full_name": customer.full_name,
            }
        contact = party.contact
        return {
            "type": "guest",
            "email": contact.email,
            "first_name": contact.first_name,
            "last_name": contact.last_name,
            "full_name": contact.full_name,
            "phone": contact.phone,
        }


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    total = MoneyField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_type",
            "status",
            "total",
            "created_at",
        ]
        read_only_fields = fields
