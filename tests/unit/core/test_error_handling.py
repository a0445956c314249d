import pytest
from pydantic import BaseModel, field_validator
from pydantic import ValidationError as PydanticValidationError
from rest_framework.exceptions import NotAuthenticated, ValidationError

from modules.core.exceptions import api_exception_handler
from modules.orders.exceptions import InvalidOrderData, OrderAccessDenied, OrderNotFound
from modules.payments.exceptions import PaymentNotRefundable
from shared.domain.exceptions import DomainError

pytestmark = pytest.mark.unit


class _Draft(BaseModel):
    quantity: int

    @field_validator("quantity")
    @classmethod
    def positive(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


def _handle(exc):
    return api_exception_handler(exc, {"view": None})


class TestDomainErrors:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (OrderNotFound("Order X not found."), 404),
            (InvalidOrderData("no items"), 400),
            (OrderAccessDenied(), 403),
            (PaymentNotRefundable(), 402),
        ],
    )
    def test_status_follows_error_kind(self, exc, status):
        response = _handle(exc)
        assert response.status_code == status
        assert response.data == {"error": {"message": exc.message, "status": status}}

    def test_internal_domain_error_hides_message(self):
        response = _handle(DomainError("database exploded"))
        assert response.status_code == 500
        assert response.data["error"]["message"] == "An unexpected error occurred."

    def test_invalid_order_data_prefix(self):
        assert InvalidOrderData("no items").message == "Invalid order data: no items"


class TestFrameworkErrors:
    def test_serializer_errors_are_flattened(self):
        exc = ValidationError({"items": ["This field is required."]})
        response = _handle(exc)
        assert response.status_code == 400
        assert response.data["error"]["message"] == "items: This field is required."

    def test_authentication_error(self):
        response = _handle(NotAuthenticated())
        assert response.status_code == 401
        assert response.data["error"]["status"] == 401

    def test_pydantic_errors_become_400(self):
        with pytest.raises(PydanticValidationError) as excinfo:
            _Draft(quantity=0)
        response = _handle(excinfo.value)
        assert response.status_code == 400
        assert response.data["error"]["message"] == (
            "quantity: Quantity must be at least 1."
        )

    def test_unexpected_errors_become_500(self):
        response = _handle(RuntimeError("boom"))
        assert response.status_code == 500
        assert response.data == {
            "error": {"message": "An unexpected error occurred.", "status": 500}
        }
