import pytest

from shared.domain.value_objects import (
    Address,
    Email,
    InvalidValue,
    OrderNumber,
    PersonName,
    Phone,
)

pytestmark = pytest.mark.unit


class TestEmail:
    def test_normalizes_case_and_whitespace(self):
        assert Email("  Jane.Doe@Example.COM ").value == "jane.doe@example.com"

    def test_rejects_invalid_address(self):
        with pytest.raises(InvalidValue):
            Email("not-an-email")

    def test_matches_is_case_insensitive(self):
        assert Email("jane@example.com").matches("JANE@example.com ")
        assert not Email("jane@example.com").matches(None)


class TestPersonName:
    def test_full_name(self):
        assert PersonName(" Ada ", "Lovelace").full_name == "Ada Lovelace"

    def test_too_short_rejected(self):
        with pytest.raises(InvalidValue):
            PersonName("A", "Lovelace")


class TestPhone:
    def test_strips_formatting(self):
        assert Phone("+1 (555) 123-4567").value == "+15551234567"

    def test_too_short_rejected(self):
        with pytest.raises(InvalidValue):
            Phone("12345")


class TestAddress:
    def test_round_trip_through_dict(self):
        address = Address.from_dict(
            {
                "street": "1 Main St",
                "city": "Springfield",
                "postal_code": "12345",
                "country": "us",
            }
        )
        assert address.country == "US"
        assert address.state is None
        assert Address.from_dict(address.to_dict()) == address

    def test_country_must_be_two_letters(self):
        with pytest.raises(InvalidValue):
            Address("1 Main St", "Springfield", "12345", "USA")


class TestOrderNumber:
    def test_generated_format(self):
        number = OrderNumber.generate().value
        assert number.startswith("ORD-")
        assert len(number) == 19

    def test_normalizes_to_uppercase(self):
        assert OrderNumber("ord-20260101-abc123").value == "ORD-20260101-ABC123"

    def test_rejects_invalid_characters(self):
        with pytest.raises(InvalidValue):
            OrderNumber("ORD_2026")

    def test_prefixed_number_fits_max_length(self):
        number = OrderNumber.generate_with_prefix("storefront").value
        assert number.startswith("STOREF-")
        assert len(number) <= 20
