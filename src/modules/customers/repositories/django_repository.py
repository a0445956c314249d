"""Django ORM implementation of the Customer repository."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from modules.customers.models import Customer
from modules.customers.repositories.interfaces import ICustomerRepository

logger = structlog.get_logger(__name__)


class CustomerDjangoRepository(ICustomerRepository):
    def get_by_id(self, id: str) -> Optional[Customer]:
        try:
            return Customer.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_email(self, email: str) -> Optional[Customer]:
        return (
            Customer.objects.alive()
            .filter(email=str(email).strip().lower())
            .select_related("user")
            .first()
        )

    def get_by_user(self, user: Any) -> Optional[Customer]:
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        return Customer.objects.alive().filter(user=user).first()

    def create_login(self, email: str, password: str) -> Any:
        user_model = get_user_model()
        return user_model.objects.create_user(
            username=email,
            email=email,
            password=password,
        )

    def save(self, entity: Customer) -> Customer:
        is_new = entity._state.adding
        entity.save()
        logger.info("customer.saved", customer_id=str(entity.id), is_new=is_new)
        return entity
