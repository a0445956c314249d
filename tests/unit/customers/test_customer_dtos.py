"""Unit tests for customer DTOs."""

import pytest
from pydantic import ValidationError

from modules.customers.dtos import GuestAccountDTO, RegisterCustomerDTO

pytestmark = pytest.mark.unit


def _register(**overrides):
    data = {
        "email": "  New.User@Example.COM ",
        "first_name": "  Ada ",
        "last_name": "Lovelace",
        "password": "long-enough",
    }
    data.update(overrides)
    return RegisterCustomerDTO(**data)


class TestRegisterCustomerDTO:
    def test_normalizes_fields(self):
        dto = _register(phone="+1 (415) 555-0100")

        assert dto.email == "new.user@example.com"
        assert dto.first_name == "Ada"
        assert dto.phone == "+14155550100"

    def test_blank_phone_becomes_none(self):
        assert _register(phone="   ").phone is None

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError, match="at least 8 characters"):
            _register(password="short")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            _register(email="not-an-email")

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError, match="First name"):
            _register(first_name="A")


class TestGuestAccountDTO:
    def test_blank_names_become_none(self):
        dto = GuestAccountDTO(password="long-enough", first_name="  ", last_name=None)

        assert dto.first_name is None
        assert dto.last_name is None

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            GuestAccountDTO(password="1234567")
