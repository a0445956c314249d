"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF views.  Domain
exceptions propagate to ``api_exception_handler``, which renders the
``{"error": {...}}`` envelope; views never swallow errors.
"""

from __future__ import annotations

from typing import Any

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import ViewSet

from modules.customers.services import CustomerService, build_customer_service
from modules.orders.constants import OrderStatus
from modules.orders.dtos import GuestCustomerDTO, OrderDraftDTO
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import Order
from modules.orders.serializers import (
    GuestCheckoutSerializer,
    NotesSerializer,
    OrderDraftSerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusUpdateSerializer,
)
from modules.orders.services import OrderService, build_order_service, clamp_limit

ORDER_NUMBER_REGEX = r"[A-Za-z0-9\-]+"


class GuestCheckoutView(APIView):
    """POST /api/v1/checkout/guest/"""

    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        serializer = GuestCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        guest = GuestCustomerDTO(**data.pop("guest"))
        draft = OrderDraftDTO(**data)

        order = build_order_service().create_guest_order(draft, guest)
        return Response(
            {"data": OrderSerializer(order).data},
            status=status.HTTP_201_CREATED,
        )


class OrderViewSet(ViewSet):
    """Order endpoints keyed by ``order_number``.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    lookup_field = "order_number"
    lookup_value_regex = ORDER_NUMBER_REGEX

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()
        self._customers = build_customer_service()

    def get_permissions(self):
        if self.action in {"retrieve", "cancel"}:
            return [AllowAny()]
        if self.action == "update_status":
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        if self.action == "create":
            self.throttle_scope = "checkout"
        elif self.action in {"list", "retrieve"}:
            self.throttle_scope = "order_listing"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create / List
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/: checkout for the authenticated customer."""
        serializer = OrderDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft = OrderDraftDTO(**serializer.validated_data)

        customer = self._customers.get_by_user(request.user)
        order = self._service.create_user_order(customer, draft)
        return Response(
            {"data": OrderSerializer(order).data},
            status=status.HTTP_201_CREATED,
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?limit=

        Customers see their own recent orders.  Staff may also pass
        ``guest_email`` to look up guest orders, or ``scope=open`` for the
        fulfilment queue.
        """
        limit = clamp_limit(request.query_params.get("limit", 10))
        user = request.user
        guest_email = request.query_params.get("guest_email")

        if user.is_staff and request.query_params.get("scope") == "open":
            orders = self._service.list_open_orders()
        elif user.is_staff and guest_email:
            orders = self._service.list_orders_for_guest_email(guest_email, limit)
        else:
            customer = self._customers.get_by_user(user)
            orders = self._service.list_recent_orders_for_customer(customer, limit)

        data = OrderListSerializer(orders, many=True).data
        return Response(
            {"data": data, "meta": {"limit": limit, "count": len(data)}}
        )

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, order_number: str) -> Response:
        """GET /api/v1/orders/{order_number}/?guest_email="""
        order = self._service.get_order(order_number)
        self._authorize(request, order)
        return Response({"data": OrderSerializer(order).data})

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, order_number: str) -> Response:
        """POST /api/v1/orders/{order_number}/cancel/

        Cancels an order and releases reserved stock.
        """
        order = self._service.get_order(order_number)
        self._authorize(request, order)

        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.cancel_order(
            order.order_number,
            notes=serializer.validated_data["notes"],
            user=request.user,
        )
        return Response({"data": OrderSerializer(order).data})

    # ------------------------------------------------------------------
    # Status Update (staff)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, order_number: str) -> Response:
        """PATCH /api/v1/orders/{order_number}/status/

        Cancellations are **not** allowed via this endpoint; use
        ``POST /orders/{order_number}/cancel/`` so stock is released.
        """
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if str(data["status"]).strip().lower() == OrderStatus.CANCELLED:
            raise InvalidOrderStatus("Use the /cancel/ endpoint for cancellations.")

        order = self._service.update_status(
            order_number,
            data["status"],
            notes=data["notes"],
            force=data["force"],
            user=request.user,
        )
        return Response({"data": OrderSerializer(order).data})

    # ------------------------------------------------------------------
    # Guest conversion
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def convert(self, request: Request, order_number: str) -> Response:
        """POST /api/v1/orders/{order_number}/convert/

        Links a guest order to the authenticated customer when the
        customer's email is the one the guest checked out with.
        """
        customer = self._customers.get_by_user(request.user)
        order = self._service.convert_guest_order_to_customer(
            order_number, customer, user=request.user
        )
        return Response({"data": OrderSerializer(order).data})

    def _authorize(self, request: Request, order: Order) -> None:
        authorize_order_access(request, order, self._service, self._customers)


def authorize_order_access(
    request: Request,
    order: Order,
    order_service: OrderService,
    customer_service: CustomerService,
) -> None:
    """Owner check shared by order and payment endpoints.

    Registered orders need the owning customer; guest orders need the
    matching ``guest_email`` (query string or body).  Staff pass both.
    """
    user = request.user
    if order.is_user_order():
        customer = customer_service.find_by_user(user)
        order_service.assert_customer_access(order, customer, user=user)
    else:
        email = request.query_params.get("guest_email") or request.data.get(
            "guest_email"
        )
        order_service.assert_guest_access(order, email, user=user)
