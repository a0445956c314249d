"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items, locked look-up by order number, status
history and the customer/guest listing queries.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, order: Order, items: Sequence[OrderItem]) -> Order:
        """Persist a new order together with its items."""

    @abstractmethod
    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def get_for_update(self, order_number: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def list_recent_for_customer(self, customer: Any, limit: int) -> List[Order]:
        """Newest orders owned by *customer*."""

    @abstractmethod
    def list_for_guest_email(self, email: str, limit: int) -> List[Order]:
        """Newest guest orders placed with *email*."""

    @abstractmethod
    def list_open_orders(self) -> List[Order]:
        """Orders still moving through fulfilment, oldest first."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        old_status: Optional[str],
        new_status: str,
        notes: str = "",
        user: Any = None,
        forced: bool = False,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
