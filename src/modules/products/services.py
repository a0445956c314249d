"""Stock reservation for checkout.

Both operations must run inside the caller's transaction: the product row
stays locked until the order that consumed the stock commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from modules.products.exceptions import (
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.domain.exceptions import ValidationFailure

if TYPE_CHECKING:
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    def __init__(self, repository: Optional[IProductRepository] = None) -> None:
        self._repo = repository or ProductDjangoRepository()

    def reserve_stock(self, product_id: str, quantity: int) -> Product:
        """Lock the product row and take *quantity* units out of stock.

        Raises:
            ProductNotFound: the product does not exist.
            InactiveProduct: the product is not for sale.
            InsufficientStock: tracked stock cannot cover *quantity*.
        """
        quantity = _guard_quantity(quantity)
        product = self._repo.get_for_update(str(product_id))
        if product is None:
            raise ProductNotFound(product_id)
        if not product.is_active:
            raise InactiveProduct(f"Product {product.sku} is not available for sale.")
        if not product.has_stock_for(quantity):
            raise InsufficientStock(product.id, quantity, product.stock_quantity)

        if product.track_stock:
            product.stock_quantity -= quantity
            self._repo.save_stock_level(product)
            logger.info(
                "product.stock_reserved",
                product_id=str(product.id),
                quantity=quantity,
                remaining=product.stock_quantity,
            )
        return product

    def release_stock(self, product_id: str, quantity: int) -> Optional[Product]:
        """Return *quantity* units to stock; missing products are skipped."""
        quantity = _guard_quantity(quantity)
        product = self._repo.get_for_update(str(product_id))
        if product is None:
            logger.warning("product.release_skipped", product_id=str(product_id))
            return None
        if product.track_stock:
            product.stock_quantity += quantity
            self._repo.save_stock_level(product)
            logger.info(
                "product.stock_released",
                product_id=str(product.id),
                quantity=quantity,
                restored_stock=product.stock_quantity,
            )
        return product


def _guard_quantity(quantity: int) -> int:
    if quantity < 1:
        raise ValidationFailure("Quantity must be at least 1.")
    return quantity
