"""Product repository contract used by checkout."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a live product with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def save_stock_level(self, entity: Product) -> Product:
        """Persist only the stock counter of a product locked by this transaction."""
