"""Repository contract for the Payment aggregate."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Optional

from modules.core.repositories.interfaces import IRepository
from modules.payments.models import Payment


class IPaymentRepository(IRepository[Payment]):
    @abstractmethod
    def get_by_intent_id(self, intent_id: str) -> Optional[Payment]: ...

    @abstractmethod
    def get_by_order(self, order: Any) -> Optional[Payment]: ...

    @abstractmethod
    def get_for_update(self, intent_id: str) -> Optional[Payment]:
        """Fetch with a row-level lock; caller must be inside a transaction."""

    @abstractmethod
    def get_by_order_for_update(self, order: Any) -> Optional[Payment]: ...
