"""Product catalog entry as seen by checkout.

Only what checkout needs lives here: identity, name and SKU (snapshotted
into order lines), the current price with its currency, and stock.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel
from shared.domain.money import DEFAULT_CURRENCY, Money

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(SoftDeleteModel):
    """Sellable product.

    ``sku`` is stored uppercase.  When ``track_stock`` is off, reservations
    never touch ``stock_quantity``.
    """

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    stock_quantity = models.PositiveIntegerField(default=0)
    track_stock = models.BooleanField(default=True)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
        ]

    @property
    def current_price(self) -> Money:
        return Money(self.price, self.currency)

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def has_stock_for(self, quantity: int) -> bool:
        return not self.track_stock or self.stock_quantity >= quantity

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.currency:
            self.currency = self.currency.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
