"""Customer account API views.

Exposes registration and guest-order conversion.  Domain exceptions
propagate to ``api_exception_handler``.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.customers.dtos import GuestAccountDTO, RegisterCustomerDTO
from modules.customers.serializers import (
    GuestAccountSerializer,
    RegisterSerializer,
    token_payload,
)
from modules.customers.services import build_customer_service
from modules.orders.serializers import OrderSerializer
from modules.orders.services import build_order_service


class RegisterView(APIView):
    """POST /api/v1/accounts/register/"""

    permission_classes = [AllowAny]
    throttle_scope = "accounts"

    def post(self, request: Request) -> Response:
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RegisterCustomerDTO(**serializer.validated_data)

        customer = build_customer_service().register(dto)
        return Response(
            {"data": token_payload(customer)},
            status=status.HTTP_201_CREATED,
        )


class GuestOrderAccountView(APIView):
    """POST /api/v1/accounts/guest-orders/{order_number}/

    The caller proves ownership with the email used at checkout; the
    order is then linked to a new (or the existing) account for it.
    """

    permission_classes = [AllowAny]
    throttle_scope = "accounts"

    def post(self, request: Request, order_number: str) -> Response:
        serializer = GuestAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        guest_email = data.pop("guest_email")

        order_service = build_order_service()
        order = order_service.get_order(order_number)
        order_service.assert_guest_access(order, guest_email)

        customer = build_customer_service().convert_guest_order_to_account(
            order.order_number, GuestAccountDTO(**data)
        )
        order = order_service.get_order(order.order_number)
        payload = token_payload(customer)
        payload["order"] = OrderSerializer(order).data
        return Response({"data": payload}, status=status.HTTP_201_CREATED)
