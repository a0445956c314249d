"""Unit tests for the Order aggregate and its lines."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from freezegun import freeze_time

from modules.customers.models import Customer
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidOrderData, InvalidOrderStatus
from modules.orders.models import Order, OrderItem
from modules.orders.parties import GuestContact
from modules.products.models import Product
from shared.domain.money import CurrencyMismatch, InvalidMoney, Money
from shared.domain.value_objects import Address

pytestmark = pytest.mark.unit


def _make_order(status: str = OrderStatus.PENDING) -> Order:
    order = Order(status=status)
    order.assign_guest(
        GuestContact(email="guest@example.com", first_name="Gina", last_name="Guest")
    )
    return order


class TestOrderTotals:
    def test_calculate_total(self):
        order = _make_order()
        order.subtotal = Money("100.00")
        order.tax_amount = Money("8.00")
        order.shipping_amount = Money("5.00")
        order.discount_amount = Money("13.00")

        assert order.calculate_total() == Money("100.00")
        assert order.total == Money("100.00")

    def test_discount_larger_than_total_rejected(self):
        order = _make_order()
        order.subtotal = Money("10.00")
        order.discount_amount = Money("11.00")
        with pytest.raises(InvalidMoney):
            order.calculate_total()

    def test_money_in_other_currency_rejected(self):
        order = _make_order()
        with pytest.raises(CurrencyMismatch):
            order.tax_amount = Money("1.00", "EUR")

    def test_set_currency_switches_every_field(self):
        order = _make_order()
        order.set_currency("eur")
        order.subtotal = Money("1.00", "EUR")
        assert order.total.currency == "EUR"


class TestOrderOwnership:
    def test_guest_order(self):
        order = _make_order()
        assert order.is_guest_order()
        assert order.customer_type == "guest"
        assert order.customer_email == "guest@example.com"
        assert order.customer_name == "Gina Guest"
        assert order.party.kind == "guest"

    def test_assign_customer_clears_guest_fields(self):
        customer = Customer.objects.create(
            email="sam@example.com", first_name="Sam", last_name="Shopper"
        )
        order = _make_order()
        order.assign_customer(customer)

        assert order.is_user_order()
        assert order.guest_email == ""
        assert order.customer_email == "sam@example.com"
        assert order.party.kind == "user"

    def test_single_owner_constraint(self):
        customer = Customer.objects.create(
            email="both@example.com", first_name="Bo", last_name="Both"
        )
        order = _make_order()
        order.customer = customer
        with pytest.raises(IntegrityError), transaction.atomic():
            order.save()

    def test_guest_phone_falls_back_to_guest_contact(self):
        order = Order()
        order.assign_guest(
            GuestContact(
                email="pat@example.com",
                first_name="Pat",
                last_name="Guest",
                phone="+1 555 010 0199",
            )
        )
        assert order.customer_phone == "+15550100199"

    def test_customer_phone_wins_for_user_orders(self):
        customer = Customer.objects.create(
            email="cal@example.com", first_name="Cal", last_name="Caller"
        )
        order = _make_order()
        order.assign_customer(customer)
        assert order.customer_phone is None


class TestOrderAddressesAndMetadata:
    def test_addresses_are_stored_as_dicts(self):
        order = _make_order()
        address = Address(
            street="1 Main St", city="Springfield", postal_code="12345", country="us"
        )
        order.set_billing_address(address)

        assert order.billing_address["country"] == "US"
        assert order.get_billing_address() == address
        assert order.get_shipping_address() is None

    def test_clearing_shipping_address(self):
        order = _make_order()
        order.set_shipping_address(
            Address(street="2 Side St", city="Shelby", postal_code="1", country="GB")
        )
        order.set_shipping_address(None)
        assert order.get_shipping_address() is None

    def test_metadata_values(self):
        order = _make_order()
        order.set_metadata_value("source", "mobile")

        assert order.get_metadata_value("source") == "mobile"
        assert order.get_metadata_value("missing", "n/a") == "n/a"


class TestOrderStateMachine:
    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.REFUNDED),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        order = _make_order(current)
        assert order.transition_to(target) == current
        assert order.status == target

    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
            (OrderStatus.REFUNDED, OrderStatus.CONFIRMED),
        ],
    )
    def test_disallowed_transitions(self, current, target):
        order = _make_order(current)
        with pytest.raises(InvalidOrderStatus):
            order.transition_to(target)
        assert order.status == current

    def test_force_skips_graph(self):
        order = _make_order(OrderStatus.CANCELLED)
        order.transition_to(OrderStatus.PENDING, force=True)
        assert order.status == OrderStatus.PENDING

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidOrderStatus):
            _make_order().transition_to("lost")

    def test_same_status_is_noop(self):
        order = _make_order(OrderStatus.CONFIRMED)
        assert order.transition_to("CONFIRMED") == OrderStatus.CONFIRMED

    def test_terminal_states(self):
        assert _make_order(OrderStatus.CANCELLED).is_terminal
        assert _make_order(OrderStatus.REFUNDED).is_terminal
        assert not _make_order(OrderStatus.SHIPPED).is_terminal

    def test_cancellable_and_refundable(self):
        assert _make_order(OrderStatus.PENDING).can_be_cancelled()
        assert not _make_order(OrderStatus.SHIPPED).can_be_cancelled()
        assert _make_order(OrderStatus.SHIPPED).can_be_refunded()
        assert not _make_order(OrderStatus.PENDING).can_be_refunded()


class TestStatusTimestamps:
    def test_confirmed_at_is_set_once(self):
        order = _make_order()
        with freeze_time("2026-01-01 10:00:00"):
            order.transition_to(OrderStatus.CONFIRMED)
        with freeze_time("2026-01-02 10:00:00"):
            order.set_status(OrderStatus.CONFIRMED)

        assert order.confirmed_at == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_each_status_stamps_its_own_field(self):
        order = _make_order(OrderStatus.PROCESSING)
        with freeze_time("2026-02-01 08:00:00"):
            order.transition_to(OrderStatus.SHIPPED)
        with freeze_time("2026-02-03 08:00:00"):
            order.transition_to(OrderStatus.DELIVERED)

        assert order.shipped_at == datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)
        assert order.delivered_at == datetime(2026, 2, 3, 8, 0, tzinfo=timezone.utc)
        assert order.confirmed_at is None


class TestOrderItem:
    @pytest.fixture()
    def product(self):
        return Product.objects.create(
            sku="tee-1", name="Tee", price=Decimal("12.50"), currency="usd"
        )

    def test_from_product_snapshots_catalog_data(self, product):
        item = OrderItem.from_product(product, 3)

        product.name = "Renamed"
        product.price = Decimal("99.00")

        assert item.product_name == "Tee"
        assert item.product_sku == "TEE-1"
        assert item.unit_price == Money("12.50", "USD")
        assert item.total_price == Money("37.50", "USD")

    def test_set_quantity_recomputes_total(self, product):
        item = OrderItem.from_product(product, 1)
        item.set_quantity(4)
        assert item.total_price == Money("50.00")

    def test_negative_quantity_rejected(self, product):
        item = OrderItem.from_product(product, 1)
        with pytest.raises(InvalidOrderData):
            item.set_quantity(-1)


class TestOrderNumber:
    def test_generated_on_save(self):
        order = _make_order()
        order.save()
        assert order.order_number.startswith("ORD-")

    def test_collision_is_retried(self):
        first = _make_order()
        first.save()

        second = _make_order()
        second.order_number = first.order_number
        second.save()

        assert second.order_number != first.order_number
