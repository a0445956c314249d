"""Payment API views.

The webhook endpoint is unauthenticated: trust comes from the
``Stripe-Signature`` header, checked by ``PaymentService.handle_webhook``
against the raw body.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.customers.services import build_customer_service
from modules.orders.serializers import OrderSerializer
from modules.orders.services import build_order_service
from modules.orders.views import authorize_order_access
from modules.payments.dtos import ConfirmPaymentDTO, RefundDTO
from modules.payments.serializers import (
    ConfirmPaymentSerializer,
    PaymentSerializer,
    RefundSerializer,
)
from modules.payments.services import build_payment_service

INTENT_ID_PATTERN = r"pi_[A-Za-z0-9_]+"


class PaymentIntentView(APIView):
    """POST /api/v1/payments/orders/{order_number}/intent/

    Guests authorize with ``guest_email``; customers with their token.
    """

    permission_classes = [AllowAny]
    throttle_scope = "payments"

    def post(self, request: Request, order_number: str) -> Response:
        orders = build_order_service()
        order = orders.get_order(order_number)
        authorize_order_access(request, order, orders, build_customer_service())

        outcome = build_payment_service().create_payment_intent(order.order_number)
        return Response(
            {
                "data": {
                    "payment": PaymentSerializer(outcome.payment).data,
                    "order": OrderSerializer(
                        orders.get_order(order.order_number)
                    ).data,
                    "client_secret": outcome.client_secret,
                }
            },
            status=status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK,
        )


class _PaymentAccessMixin:
    """Loads a payment by intent id and checks access to its order."""

    def load_payment(self, request: Request, intent_id: str):
        service = build_payment_service()
        payment = service.get_payment(intent_id)
        authorize_order_access(
            request, payment.order, build_order_service(), build_customer_service()
        )
        return service, payment


class PaymentDetailView(_PaymentAccessMixin, APIView):
    """GET /api/v1/payments/{intent_id}/"""

    permission_classes = [AllowAny]

    def get(self, request: Request, intent_id: str) -> Response:
        _, payment = self.load_payment(request, intent_id)
        return Response({"data": PaymentSerializer(payment).data})


class ConfirmPaymentView(_PaymentAccessMixin, APIView):
    """POST /api/v1/payments/{intent_id}/confirm/

    A declined confirmation answers 402 after the failure is recorded.
    """

    permission_classes = [AllowAny]
    throttle_scope = "payments"

    def post(self, request: Request, intent_id: str) -> Response:
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = ConfirmPaymentDTO(**serializer.validated_data)

        service, payment = self.load_payment(request, intent_id)
        payment = service.confirm_payment(
            payment.stripe_payment_intent_id, dto.payment_method_id
        )
        return Response({"data": PaymentSerializer(payment).data})


class RefundPaymentView(APIView):
    """POST /api/v1/payments/{intent_id}/refund/ (staff only)"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, intent_id: str) -> Response:
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RefundDTO(**serializer.validated_data)

        payment = build_payment_service().refund_payment(
            intent_id, amount=dto.amount, reason=dto.reason
        )
        return Response({"data": PaymentSerializer(payment).data})


class StripeWebhookView(APIView):
    """POST /api/v1/payments/webhook/"""

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        payment = build_payment_service().handle_webhook(
            request.body,
            request.META.get("HTTP_STRIPE_SIGNATURE"),
        )
        data = PaymentSerializer(payment).data if payment is not None else None
        return Response({"received": True, "data": data})
