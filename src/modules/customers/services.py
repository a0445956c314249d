"""Customer account use cases.

Registration creates the auth login and the ``Customer`` profile together.
Guest-order conversion reuses an existing account for the guest email
when there is one; otherwise it registers a new account from the order's
contact details, then links the order through ``OrderService``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.db import transaction

from modules.customers.exceptions import (
    CustomerAlreadyExists,
    CustomerNotFound,
    InactiveCustomer,
    InvalidCredentials,
)
from modules.customers.models import Customer
from modules.orders.exceptions import InvalidOrderData, OrderAlreadyLinked

if TYPE_CHECKING:
    from modules.customers.dtos import GuestAccountDTO, RegisterCustomerDTO
    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.orders.models import Order
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)

GUEST_FALLBACK_FIRST_NAME = "Guest"
GUEST_FALLBACK_LAST_NAME = "Customer"


class CustomerService:
    def __init__(
        self,
        repository: ICustomerRepository,
        order_service: Optional[OrderService] = None,
    ) -> None:
        self._repo = repository
        self._order_service = order_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def register(self, dto: RegisterCustomerDTO) -> Customer:
        """Create a login plus customer profile.

        Raises:
            CustomerAlreadyExists: the email is already registered.
        """
        log = logger.bind(email_domain=dto.email.split("@")[-1])
        if self._repo.get_by_email(dto.email):
            log.warning("customer.duplicate_email")
            raise CustomerAlreadyExists()

        customer = self._create_account(
            email=dto.email,
            first_name=dto.first_name,
            last_name=dto.last_name,
            password=dto.password,
            phone=dto.phone or "",
        )
        log.info("customer.registered", customer_id=str(customer.id))
        return customer

    @transaction.atomic
    def convert_guest_order_to_account(
        self, order_number: str, dto: GuestAccountDTO
    ) -> Customer:
        """Attach a guest order to an account derived from its guest email.

        Raises:
            OrderNotFound: the order does not exist.
            OrderAlreadyLinked: the order already belongs to an account.
            InvalidOrderData: the guest order carries no email.
            InvalidCredentials: an account exists for the email and the
                password does not match it.
        """
        order_service = self._require_order_service()
        order = order_service.get_order(order_number)
        if order.is_user_order():
            raise OrderAlreadyLinked(
                "Order is already associated with a user account."
            )
        if not order.guest_email:
            raise InvalidOrderData(
                "Guest order is missing an email address and cannot be converted."
            )

        log = logger.bind(order_number=order.order_number)
        customer = self._repo.get_by_email(order.guest_email)
        if customer is None:
            customer = self._create_account(
                email=order.guest_email,
                first_name=_first_non_blank(
                    dto.first_name, order.guest_first_name, GUEST_FALLBACK_FIRST_NAME
                ),
                last_name=_first_non_blank(
                    dto.last_name, order.guest_last_name, GUEST_FALLBACK_LAST_NAME
                ),
                password=dto.password,
                phone=order.guest_phone or "",
            )
            log.info("customer.created_from_guest_order", customer_id=str(customer.id))
        else:
            if not customer.is_active:
                raise InactiveCustomer()
            if customer.user is None or not customer.user.check_password(dto.password):
                log.warning("customer.guest_conversion_denied")
                raise InvalidCredentials()
            log.info("customer.reused_for_guest_order", customer_id=str(customer.id))

        order_service.convert_guest_order_to_customer(order.order_number, customer)
        return customer

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_user(self, user: Any) -> Customer:
        """Raises ``CustomerNotFound`` when *user* has no customer profile."""
        customer = self._repo.get_by_user(user)
        if customer is None:
            raise CustomerNotFound()
        return customer

    def find_by_user(self, user: Any) -> Optional[Customer]:
        return self._repo.get_by_user(user)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_account(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        password: str,
        phone: str,
    ) -> Customer:
        user = self._repo.create_login(email, password)
        customer = Customer(
            user=user,
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        return self._repo.save(customer)

    def _require_order_service(self) -> OrderService:
        if self._order_service is None:
            raise RuntimeError("CustomerService was built without an OrderService.")
        return self._order_service


def _first_non_blank(*values: Optional[str]) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def build_customer_service() -> CustomerService:
    """Wire the service with its Django repositories."""
    from modules.customers.repositories.django_repository import (
        CustomerDjangoRepository,
    )
    from modules.orders.services import build_order_service

    return CustomerService(
        repository=CustomerDjangoRepository(),
        order_service=build_order_service(),
    )
