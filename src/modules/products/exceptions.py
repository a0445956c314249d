"""Catalog exceptions raised while checkout resolves order lines."""

from __future__ import annotations

from shared.domain.exceptions import NotFoundError, ValidationFailure


class ProductNotFound(NotFoundError):
    """The referenced product does not exist or has been retired."""

    def __init__(self, product_id: object) -> None:
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found.")


class InactiveProduct(ValidationFailure):
    """The product exists but is not for sale."""


class InsufficientStock(ValidationFailure):
    """Not enough stock to cover the requested quantity."""

    def __init__(self, product_id: object, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Requested: {requested}, available: {available}."
        )
