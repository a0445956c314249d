"""Order service layer (Use Cases).

Orchestrates checkout for guests and registered customers, status
management, cancellation and guest-order conversion.  All write
operations are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- Checkout requires an active customer, or a guest with email and name.
- Products are locked in id order while stock is reserved.
- All lines, fees and discounts share the order currency.
- Status transitions follow ``VALID_TRANSITIONS`` unless forced.
- Every status change is recorded in the order history.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.db import transaction

from modules.customers.exceptions import InactiveCustomer
from modules.orders.constants import (
    ORDER_LIST_DEFAULT_LIMIT,
    ORDER_LIST_MAX_LIMIT,
    OrderStatus,
)
from modules.orders.events import (
    GuestOrderConverted,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidOrderData,
    InvalidOrderStatus,
    OrderAccessDenied,
    OrderAlreadyLinked,
    OrderNotFound,
)
from modules.orders.models import Order, OrderItem
from shared.domain.money import CurrencyMismatch, Money
from shared.domain.value_objects import Email

if TYPE_CHECKING:
    from modules.customers.models import Customer
    from modules.orders.dtos import GuestCustomerDTO, OrderDraftDTO
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.services import ProductService

logger = structlog.get_logger(__name__)


def clamp_limit(limit: Any) -> int:
    """Clamp a list size into ``1..ORDER_LIST_MAX_LIMIT``."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return ORDER_LIST_DEFAULT_LIMIT
    return max(1, min(value, ORDER_LIST_MAX_LIMIT))


class OrderService:
    """Application service for Order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_service: ProductService,
    ) -> None:
        self._order_repo = order_repository
        self._products = product_service

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_guest_order(
        self, draft: OrderDraftDTO, guest: GuestCustomerDTO
    ) -> Order:
        """Place an order for a guest contact.

        Raises:
            InvalidOrderData: the guest email or name is missing.
            ProductNotFound: a product does not exist.
            InactiveProduct: a product is not for sale.
            InsufficientStock: not enough stock for a line.
            CurrencyMismatch: lines or fees use different currencies.
        """
        if not guest.email or not guest.first_name or not guest.last_name:
            raise InvalidOrderData(
                "Guest checkout requires email, first and last name."
            )
        order = Order()
        order.assign_guest(guest.to_contact())
        return self._checkout(order, draft)

    @transaction.atomic
    def create_user_order(self, customer: Customer, draft: OrderDraftDTO) -> Order:
        """Place an order for a registered customer.

        Raises:
            InactiveCustomer: the customer account is disabled.
            ProductNotFound / InactiveProduct / InsufficientStock /
            CurrencyMismatch: as for ``create_guest_order``.
        """
        if not customer.is_active:
            raise InactiveCustomer(f"Customer {customer.id} is inactive.")
        order = Order()
        order.assign_customer(customer)
        return self._checkout(order, draft)

    def _checkout(self, order: Order, draft: OrderDraftDTO) -> Order:
        """Shared build steps for both checkout flavours.

        Steps:
        1. Reserve stock line by line, locking products sorted by id to
           avoid deadlocks, and snapshot each line.
        2. Resolve the order currency and sum the subtotal.
        3. Apply tax, shipping and discount; compute the total.
        4. Persist order, items, initial history and ``OrderCreated``.
        """
        log = logger.bind(
            order_number=order.order_number,
            customer_type=order.customer_type,
        )
        log.info("order.creation_started", item_count=len(draft.items))

        items: List[OrderItem] = []
        for item_dto in sorted(draft.items, key=lambda i: str(i.product_id)):
            product = self._products.reserve_stock(
                str(item_dto.product_id), item_dto.quantity
            )
            items.append(OrderItem.from_product(product, item_dto.quantity))

        currency = draft.currency or items[0].currency
        subtotal = Money.zero(currency)
        for item in items:
            if item.currency != currency:
                raise CurrencyMismatch("All order items must share the same currency")
            subtotal = subtotal.add(item.total_price)

        order.set_currency(currency)
        order.subtotal = subtotal
        for label, attr in (
            ("Tax", "tax_amount"),
            ("Shipping", "shipping_amount"),
            ("Discount", "discount_amount"),
        ):
            amount: Optional[Money] = getattr(draft, attr)
            if amount is None:
                continue
            if amount.currency != currency:
                raise CurrencyMismatch(
                    f"{label} currency mismatch. "
                    f"Expected {currency}, got {amount.currency}"
                )
            setattr(order, attr, amount)
        order.calculate_total()

        order.set_billing_address(draft.billing_address)
        order.set_shipping_address(draft.shipping_address)
        order.notes = draft.notes
        order.metadata = dict(draft.metadata)

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_type=order.customer_type,
                total=str(order.total.amount),
                currency=order.currency,
            )
        )
        self._order_repo.create(order, items)
        self._order_repo.add_history(
            order,
            old_status=None,
            new_status=OrderStatus.PENDING,
            notes="Order created",
        )

        log.info(
            "order.created",
            order_id=str(order.id),
            total=str(order.total.amount),
            currency=order.currency,
        )
        return self._reload(order.order_number)

    # ------------------------------------------------------------------
    # Guest conversion
    # ------------------------------------------------------------------

    @transaction.atomic
    def convert_guest_order_to_customer(
        self, order_number: str, customer: Customer, user: Any = None
    ) -> Order:
        """Attach a guest order to the registered customer who placed it.

        The customer's email must match the guest email; staff *user*s may
        link any guest order.

        Raises:
            OrderNotFound: order does not exist.
            OrderAlreadyLinked: the order already belongs to a customer.
            InvalidOrderData: the guest order has no email.
            OrderAccessDenied: the customer's email is not the guest email.
        """
        order = self._lock(order_number)
        log = logger.bind(order_number=order.order_number)
        if order.is_user_order():
            log.warning("order.conversion_rejected", reason="already_linked")
            raise OrderAlreadyLinked(
                "Order is already associated with a user account."
            )
        if not order.guest_email:
            raise InvalidOrderData(
                "Guest order is missing an email address and cannot be converted."
            )
        placed_by_customer = Email(order.guest_email).matches(customer.email)
        if not placed_by_customer and not getattr(user, "is_staff", False):
            log.warning("order.conversion_rejected", reason="email_mismatch")
            raise OrderAccessDenied("Guest email verification failed for this order.")

        order.assign_customer(customer)
        order.add_domain_event(
            GuestOrderConverted(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=str(customer.id),
            )
        )
        self._order_repo.save(order)
        log.info("order.guest_converted", customer_id=str(customer.id))
        return self._reload(order.order_number)

    # ------------------------------------------------------------------
    # Status management
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        order_number: str,
        new_status: str,
        notes: str = "",
        force: bool = False,
        user: Any = None,
    ) -> Order:
        """Transition an order to a new status.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition.
        ``force`` lets staff correct an order outside the graph; the
        history row is flagged.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status or transition not allowed.
        """
        order = self._lock(order_number)
        log = logger.bind(
            order_number=order.order_number,
            current_status=order.status,
            new_status=new_status,
        )
        try:
            self.apply_transition(
                order, new_status, notes=notes, force=force, user=user
            )
        except InvalidOrderStatus:
            log.warning("order.invalid_transition")
            raise

        log.info("order.status_updated", forced=force)
        return self._reload(order.order_number)

    def apply_transition(
        self,
        order: Order,
        new_status: str,
        notes: str = "",
        force: bool = False,
        user: Any = None,
    ) -> bool:
        """Move an already locked order and record it.

        Returns ``False`` when the order already had *new_status*.
        Callers must hold the order row lock inside a transaction.
        """
        forced = force and not order.can_transition_to(
            str(new_status).strip().lower()
        )
        old_status = order.transition_to(new_status, force=force)
        if old_status == order.status:
            return False

        if forced:
            notes = f"[forced] {notes}".strip()
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status=old_status,
                new_status=order.status,
                forced=forced,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            old_status=old_status,
            new_status=order.status,
            notes=notes,
            user=user,
            forced=forced,
        )
        return True

    @transaction.atomic
    def cancel_order(
        self, order_number: str, notes: str = "", user: Any = None
    ) -> Order:
        """Cancel an order and release reserved stock.

        Acquires a row-level lock on the order **first** to prevent
        concurrent cancellations from releasing stock twice.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: cancellation not allowed from current status.
        """
        order = self._lock(order_number)
        log = logger.bind(order_number=order.order_number, current_status=order.status)

        if not order.can_be_cancelled():
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        for item in sorted(order.items.all(), key=lambda i: str(i.product_id)):
            if item.quantity:
                self._products.release_stock(str(item.product_id), item.quantity)

        old_status = order.transition_to(OrderStatus.CANCELLED)
        order.add_domain_event(
            OrderCancelled(aggregate_id=order.id, order_number=order.order_number)
        )
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status=old_status,
                new_status=order.status,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            old_status=old_status,
            new_status=OrderStatus.CANCELLED,
            notes=notes or "Order cancelled",
            user=user,
        )

        log.info("order.cancelled")
        return self._reload(order.order_number)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_number: str) -> Order:
        """Retrieve a single order by its order number.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_number(order_number)
        if order is None:
            raise OrderNotFound(f"Order {order_number} not found.")
        return order

    def list_recent_orders_for_customer(
        self, customer: Customer, limit: Any = ORDER_LIST_DEFAULT_LIMIT
    ) -> List[Order]:
        return self._order_repo.list_recent_for_customer(customer, clamp_limit(limit))

    def list_orders_for_guest_email(
        self, email: str, limit: Any = ORDER_LIST_DEFAULT_LIMIT
    ) -> List[Order]:
        return self._order_repo.list_for_guest_email(
            Email(email).value, clamp_limit(limit)
        )

    def list_open_orders(self) -> List[Order]:
        return self._order_repo.list_open_orders()

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def assert_guest_access(
        self, order: Order, email: Optional[str], user: Any = None
    ) -> None:
        """Raises ``OrderAccessDenied`` unless *email* owns the guest order."""
        if getattr(user, "is_staff", False):
            return
        if order.is_user_order() or not email or not order.guest_email:
            raise OrderAccessDenied("Guest email verification failed for this order.")
        if not Email(order.guest_email).matches(email):
            raise OrderAccessDenied("Guest email verification failed for this order.")

    def assert_customer_access(
        self, order: Order, customer: Optional[Customer], user: Any = None
    ) -> None:
        """Raises ``OrderAccessDenied`` unless *customer* owns the order."""
        if getattr(user, "is_staff", False):
            return
        if customer is None or order.customer_id != customer.id:
            raise OrderAccessDenied("You do not have access to this order.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def lock_order(self, order_number: str) -> Order:
        """Public lock entry point for collaborating services."""
        return self._lock(order_number)

    def _lock(self, order_number: str) -> Order:
        order = self._order_repo.get_for_update(order_number)
        if order is None:
            raise OrderNotFound(f"Order {order_number} not found.")
        return order

    def _reload(self, order_number: str) -> Order:
        """Re-fetch with prefetched relations for output."""
        return self._order_repo.get_by_number(order_number)


def build_order_service() -> OrderService:
    """Wire the service with its Django repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.services import ProductService

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_service=ProductService(),
    )
