"""Money value object.

``Money`` pairs a non-negative ``Decimal`` amount, always quantized to two
places and at most ``MAX_AMOUNT``, with an uppercase ISO-4217 currency
code.  Instances are immutable and compare structurally.  Arithmetic never
converts between currencies: mixing codes raises ``CurrencyMismatch``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Union

from shared.domain.exceptions import ValidationFailure

DEFAULT_CURRENCY = "USD"

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

_CENT = Decimal("0.01")

# Largest amount the DECIMAL(12, 2) money columns can store.
MAX_AMOUNT = Decimal("9999999999.99")

AmountLike = Union[str, int, float, Decimal]


class InvalidMoney(ValidationFailure, ValueError):
    """Amount or currency does not form a valid Money value."""


class CurrencyMismatch(ValidationFailure, ValueError):
    """Two Money values with different currencies were combined or compared."""


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidMoney(f"Amount must be numeric, got {value!r}.")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidMoney(f"Amount must be numeric, got {value!r}.") from None
    if not amount.is_finite():
        raise InvalidMoney(f"Amount must be a finite number, got {value!r}.")
    return amount


def _normalize_currency(currency: Any) -> str:
    if not isinstance(currency, str):
        raise InvalidMoney("Currency must be a 3-letter ISO code.")
    code = currency.strip()
    if len(code) != 3 or not code.isascii() or not code.isalpha():
        raise InvalidMoney(f"Currency must be a 3-letter ISO code, got {currency!r}.")
    return code.upper()


@dataclass(frozen=True)
class Money:
    """Immutable amount of money in a single currency."""

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        amount = _to_decimal(self.amount)
        if amount < 0:
            raise InvalidMoney("Amount cannot be negative.")
        if amount == 0:
            amount = Decimal("0")
        try:
            amount = amount.quantize(_CENT, ROUND_HALF_UP)
        except InvalidOperation:
            raise InvalidMoney(f"Amount is too large: {self.amount!r}.") from None
        if amount > MAX_AMOUNT:
            raise InvalidMoney(f"Amount cannot exceed {MAX_AMOUNT}.")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", _normalize_currency(self.currency))

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_float(cls, value: float, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal(repr(float(value))), currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str = DEFAULT_CURRENCY) -> Money:
        if isinstance(cents, bool) or not isinstance(cents, int):
            raise InvalidMoney(f"Cents must be an integer, got {cents!r}.")
        return cls(Decimal(cents) / 100, currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal("0"), currency)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def amount_as_float(self) -> float:
        return float(self.amount)

    @property
    def amount_in_cents(self) -> int:
        """Amount in minor units, rounded to the nearest cent."""
        return int((self.amount * 100).to_integral_value(ROUND_HALF_UP))

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def add(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money) -> Money:
        self._assert_same_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise InvalidMoney("Cannot subtract to negative amount.")
        return Money(result, self.currency)

    def multiply(self, multiplier: AmountLike) -> Money:
        factor = _to_decimal(multiplier)
        if factor < 0:
            raise InvalidMoney("Cannot multiply by a negative value.")
        return Money(self.amount * factor, self.currency)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_greater_than(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount > other.amount

    def is_less_than(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def equals(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount == other.amount

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def format(self) -> str:
        symbol = CURRENCY_SYMBOLS.get(self.currency)
        if symbol is None:
            return f"{self.amount} {self.currency}"
        return f"{symbol}{self.amount}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "currency": self.currency,
            "amount_float": self.amount_as_float,
            "formatted": self.format(),
        }

    def __str__(self) -> str:
        return self.format()

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatch(
                "Cannot perform operation on different currencies: "
                f"{self.currency} and {other.currency}"
            )
