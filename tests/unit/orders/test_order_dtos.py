from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.dtos import GuestCustomerDTO, OrderDraftDTO, parse_money
from shared.domain.money import Money
from shared.domain.value_objects import Address

pytestmark = pytest.mark.unit


def _item(quantity: int = 1, product_id=None) -> dict:
    return {"product_id": product_id or uuid4(), "quantity": quantity}


class TestOrderDraftDTO:
    def test_fees_parse_in_draft_currency(self):
        draft = OrderDraftDTO(
            items=[_item()],
            currency="eur",
            tax_amount="1.50",
            shipping_amount={"amount": "4.00"},
        )
        assert draft.currency == "EUR"
        assert draft.tax_amount == Money("1.50", "EUR")
        assert draft.shipping_amount == Money("4.00", "EUR")
        assert draft.discount_amount is None

    def test_fee_currency_defaults_to_settings(self):
        draft = OrderDraftDTO(items=[_item()], shipping_amount=5)
        assert draft.shipping_amount == Money("5.00", "USD")

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            OrderDraftDTO(items=[])

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            OrderDraftDTO(items=[_item(quantity=0)])

    def test_duplicate_products_rejected(self):
        product_id = uuid4()
        with pytest.raises(ValidationError):
            OrderDraftDTO(
                items=[_item(product_id=product_id), _item(product_id=product_id)]
            )

    def test_negative_fee_rejected(self):
        with pytest.raises(ValidationError):
            OrderDraftDTO(items=[_item()], tax_amount="-1.00")

    def test_address_parsed(self):
        draft = OrderDraftDTO(
            items=[_item()],
            shipping_address={
                "street": "1 Main St",
                "city": "Springfield",
                "postal_code": "12345",
                "country": "us",
            },
        )
        assert isinstance(draft.shipping_address, Address)
        assert draft.shipping_address.country == "US"

    def test_invalid_address_rejected(self):
        with pytest.raises(ValidationError):
            OrderDraftDTO(items=[_item()], billing_address={"street": "1 Main St"})

    def test_dto_is_frozen(self):
        draft = OrderDraftDTO(items=[_item()])
        with pytest.raises(ValidationError):
            draft.notes = "changed"


class TestParseMoney:
    def test_money_map_requires_amount(self):
        with pytest.raises(ValueError):
            parse_money({"currency": "USD"}, None)

    def test_map_currency_wins_over_hint(self):
        money = parse_money({"amount": "2", "currency": "GBP"}, "USD")
        assert money == Money("2", "GBP")


class TestGuestCustomerDTO:
    def test_valid_contact(self):
        guest = GuestCustomerDTO(
            email="Guest@Example.com", first_name="Gina", last_name="Guest"
        )
        assert guest.to_contact().email == "guest@example.com"

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            GuestCustomerDTO(email="nope", first_name="Gina", last_name="Guest")

    def test_invalid_phone_rejected(self):
        with pytest.raises(ValidationError):
            GuestCustomerDTO(
                email="guest@example.com",
                first_name="Gina",
                last_name="Guest",
                phone="123",
            )
