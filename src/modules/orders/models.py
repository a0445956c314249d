"""Order, OrderItem and OrderStatusHistory models.

Rules carried by the models themselves:
- Monetary columns are plain decimals that share one ``currency`` column
  and are exposed as ``Money`` through properties.  This makes a
  mixed-currency order impossible to represent.
- ``total`` changes only when ``calculate_total()`` is called.
- An order is owned by a customer *or* a guest, never both.  The
  ``assign_*`` methods keep the columns consistent and a check constraint
  guards the table.
- Status entry stamps (``confirmed_at``, ``shipped_at``, ``delivered_at``)
  are written once and never overwritten.
- ``OrderItem`` snapshots product name, SKU and price when the line is
  created; later catalog edits never reach historical orders.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import structlog
from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    CANCELLABLE_STATES,
    ORDER_NUMBER_MAX_RETRIES,
    REFUNDABLE_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import InvalidOrderData, InvalidOrderStatus
from modules.orders.parties import GuestContact, GuestParty, Party, RegisteredParty
from shared.domain.events import DomainEventMixin
from shared.domain.money import DEFAULT_CURRENCY, CurrencyMismatch, Money
from shared.domain.value_objects import Address, OrderNumber

logger = structlog.get_logger(__name__)

_STATUS_TIMESTAMPS: dict[str, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}


def generate_order_number() -> str:
    return OrderNumber.generate().value


def _money_field(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        **kwargs,
    )


def parse_order_status(value: Any) -> OrderStatus:
    """Coerce *value* into ``OrderStatus`` or raise ``InvalidOrderStatus``."""
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidOrderStatus(f'Invalid order status "{value}"') from None


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is the public identifier used
    by the API; the UUIDv7 ``id`` is used for internal references.
    """

    order_number = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        default=generate_order_number,
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    guest_email = models.EmailField(max_length=180, blank=True, default="")
    guest_first_name = models.CharField(max_length=100, blank=True, default="")
    guest_last_name = models.CharField(max_length=100, blank=True, default="")
    guest_phone = models.CharField(max_length=20, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    subtotal_value = _money_field()
    tax_value = _money_field()
    shipping_value = _money_field()
    discount_value = _money_field()
    total_value = _money_field()

    billing_address = models.JSONField(null=True, blank=True, default=None)
    shipping_address = models.JSONField(null=True, blank=True, default=None)
    metadata = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True, default="")

    confirmed_at = models.DateTimeField(null=True, blank=True, default=None)
    shipped_at = models.DateTimeField(null=True, blank=True, default=None)
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["guest_email"], name="orders_guest_email_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(customer__isnull=True) | models.Q(guest_email=""),
                name="orders_single_owner",
            ),
        ]

    # ------------------------------------------------------------------
    # Money
    # ------------------------------------------------------------------

    def _get_money(self, field_name: str) -> Money:
        return Money(getattr(self, field_name), self.currency)

    def _set_money(self, field_name: str, value: Money) -> None:
        if value.currency != self.currency:
            raise CurrencyMismatch(
                "Cannot perform operation on different currencies: "
                f"{self.currency} and {value.currency}"
            )
        setattr(self, field_name, value.amount)

    @property
    def subtotal(self) -> Money:
        return self._get_money("subtotal_value")

    @subtotal.setter
    def subtotal(self, value: Money) -> None:
        self._set_money("subtotal_value", value)

    @property
    def tax_amount(self) -> Money:
        return self._get_money("tax_value")

    @tax_amount.setter
    def tax_amount(self, value: Money) -> None:
        self._set_money("tax_value", value)

    @property
    def shipping_amount(self) -> Money:
        return self._get_money("shipping_value")

    @shipping_amount.setter
    def shipping_amount(self, value: Money) -> None:
        self._set_money("shipping_value", value)

    @property
    def discount_amount(self) -> Money:
        return self._get_money("discount_value")

    @discount_amount.setter
    def discount_amount(self, value: Money) -> None:
        self._set_money("discount_value", value)

    @property
    def total(self) -> Money:
        return self._get_money("total_value")

    def set_currency(self, currency: str) -> None:
        """Switch every monetary field to *currency*, keeping the amounts."""
        self.currency = Money.zero(currency).currency

    def calculate_total(self) -> Money:
        """``total = subtotal + tax + shipping - discount``.

        Raises ``InvalidMoney`` when the discount exceeds the rest.
        """
        total = (
            self.subtotal.add(self.tax_amount)
            .add(self.shipping_amount)
            .subtract(self.discount_amount)
        )
        self.total_value = total.amount
        return total

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def assign_customer(self, customer: Any) -> None:
        self.customer = customer
        self.guest_email = ""
        self.guest_first_name = ""
        self.guest_last_name = ""
        self.guest_phone = ""

    def assign_guest(self, contact: GuestContact) -> None:
        self.customer = None
        self.guest_email = contact.email
        self.guest_first_name = contact.first_name
        self.guest_last_name = contact.last_name
        self.guest_phone = contact.phone or ""

    @property
    def party(self) -> Optional[Party]:
        if self.customer_id is not None:
            return RegisteredParty(self.customer)
        if self.guest_email:
            return GuestParty(
                GuestContact(
                    email=self.guest_email,
                    first_name=self.guest_first_name,
                    last_name=self.guest_last_name,
                    phone=self.guest_phone or None,
                )
            )
        return None

    def is_guest_order(self) -> bool:
        return self.customer_id is None

    def is_user_order(self) -> bool:
        return not self.is_guest_order()

    @property
    def customer_type(self) -> str:
        return "guest" if self.is_guest_order() else "user"

    @property
    def customer_email(self) -> Optional[str]:
        if self.customer_id is not None:
            return self.customer.email
        return self.guest_email or None

    @property
    def customer_name(self) -> Optional[str]:
        if self.customer_id is not None:
            return self.customer.full_name
        full_name = f"{self.guest_first_name} {self.guest_last_name}".strip()
        return full_name or None

    @property
    def customer_phone(self) -> Optional[str]:
        if self.customer_id is not None:
            return self.customer.phone or None
        return self.guest_phone or None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATES

    def can_be_refunded(self) -> bool:
        return self.status in REFUNDABLE_STATES

    def set_status(self, value: Any) -> OrderStatus:
        """Assign a status and apply its entry stamp (set once)."""
        status = parse_order_status(value)
        self.status = status
        stamp_field = _STATUS_TIMESTAMPS.get(status)
        if stamp_field is not None and getattr(self, stamp_field) is None:
            setattr(self, stamp_field, timezone.now())
        return status

    def transition_to(self, value: Any, force: bool = False) -> str:
        """Move along the transition graph and return the previous status.

        Re-applying the current status is a no-op.  ``force`` skips the
        graph check for administrative corrections.

        Raises:
            InvalidOrderStatus: unknown status, or an edge outside the graph
                without ``force``.
        """
        new_status = parse_order_status(value)
        old_status = self.status
        if new_status == old_status:
            self.set_status(new_status)
            return old_status
        if not force and not self.can_transition_to(new_status):
            raise InvalidOrderStatus(
                f"Cannot transition from {old_status} to {new_status}."
            )
        if force and not self.can_transition_to(new_status):
            logger.warning(
                "order.forced_transition",
                order_number=self.order_number,
                old_status=old_status,
                new_status=new_status,
            )
        self.set_status(new_status)
        return old_status

    # ------------------------------------------------------------------
    # Addresses & metadata
    # ------------------------------------------------------------------

    def get_billing_address(self) -> Optional[Address]:
        return Address.from_dict(self.billing_address) if self.billing_address else None

    def set_billing_address(self, address: Optional[Address]) -> None:
        self.billing_address = address.to_dict() if address else None

    def get_shipping_address(self) -> Optional[Address]:
        if not self.shipping_address:
            return None
        return Address.from_dict(self.shipping_address)

    def set_shipping_address(self, address: Optional[Address]) -> None:
        self.shipping_address = address.to_dict() if address else None

    def get_metadata_value(self, key: str, default: Any = None) -> Any:
        return (self.metadata or {}).get(key, default)

    def set_metadata_value(self, key: str, value: Any) -> None:
        metadata = dict(self.metadata or {})
        metadata[key] = value
        self.metadata = metadata

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @property
    def items_count(self) -> int:
        return len(self.items.all())

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items.all())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self._state.adding:
            self.order_number = OrderNumber(
                self.order_number or generate_order_number()
            ).value
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                if not Order.objects.filter(order_number=self.order_number).exists():
                    break
                self.order_number = generate_order_number()
            else:
                raise RuntimeError(
                    "Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Order line with a snapshot of the product at checkout time.

    ``total_price`` is ``unit_price * quantity``; it is recomputed whenever
    quantity or unit price change through the setters, and again on save.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
        null=True,
        blank=True,
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=64)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    unit_price_value = _money_field()
    quantity = models.PositiveIntegerField(default=1)
    total_price_value = _money_field(editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]

    @classmethod
    def from_product(cls, product: Any, quantity: int) -> OrderItem:
        item = cls(
            product=product,
            product_name=product.name,
            product_sku=product.sku,
        )
        item.set_unit_price(product.current_price)
        item.set_quantity(quantity)
        return item

    @property
    def unit_price(self) -> Money:
        return Money(self.unit_price_value, self.currency)

    @property
    def total_price(self) -> Money:
        return Money(self.total_price_value, self.currency)

    def set_unit_price(self, price: Money) -> None:
        self.currency = price.currency
        self.unit_price_value = price.amount
        self.calculate_total_price()

    def set_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise InvalidOrderData("Quantity cannot be negative.")
        self.quantity = quantity
        self.calculate_total_price()

    def calculate_total_price(self) -> Money:
        total = self.unit_price.multiply(self.quantity)
        self.total_price_value = total.amount
        return total

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.calculate_total_price()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_sku} x{self.quantity} ({self.total_price})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail of status changes.

    ``user`` is ``None`` for changes made by the system, for example a
    payment webhook confirming the order.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    forced = models.BooleanField(default=False)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
