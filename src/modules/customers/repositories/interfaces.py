"""Customer repository contract."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.customers.models import Customer


class ICustomerRepository(IRepository["Customer"]):
    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Customer]:
        """Retrieve a live customer by (normalized) email address."""

    @abstractmethod
    def get_by_user(self, user: Any) -> Optional[Customer]:
        """Retrieve the customer profile linked to an auth user."""

    @abstractmethod
    def create_login(self, email: str, password: str) -> Any:
        """Create the auth user that a new customer logs in with."""
