"""Payment DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.serializers import MoneyField
from modules.payments.models import Payment


class ConfirmPaymentSerializer(serializers.Serializer):
    payment_method_id = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, max_length=255
    )


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class PaymentSerializer(serializers.ModelSerializer):
    """Read serializer exposing the full payment record."""

    order_number = serializers.CharField(source="order.order_number", read_only=True)
    amount = MoneyField()
    refunded_amount = MoneyField()
    remaining_amount = MoneyField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "order_number",
            "stripe_payment_intent_id",
            "stripe_payment_method_id",
            "stripe_customer_id",
            "status",
            "payment_method",
            "currency",
            "amount",
            "refunded_amount",
            "remaining_amount",
            "stripe_metadata",
            "payment_method_details",
            "failure_reason",
            "failure_code",
            "paid_at",
            "failed_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
