"""Payment domain constants: statuses, methods and the gateway status map."""

from django.db import models


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially refunded"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Card"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    WALLET = "wallet", "Wallet"


# Forward edges only; anything else reported by the gateway is stale.
PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.PROCESSING,
        PaymentStatus.SUCCEEDED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.PROCESSING: {
        PaymentStatus.PENDING,
        PaymentStatus.SUCCEEDED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.FAILED: {
        PaymentStatus.PENDING,
        PaymentStatus.PROCESSING,
        PaymentStatus.SUCCEEDED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.SUCCEEDED: {
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    },
    PaymentStatus.PARTIALLY_REFUNDED: {
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    },
    PaymentStatus.CANCELLED: set(),
    PaymentStatus.REFUNDED: set(),
}

# Existing payments in these states are handed back as-is.
REUSABLE_STATUSES: frozenset[str] = frozenset(
    {
        PaymentStatus.PENDING,
        PaymentStatus.PROCESSING,
        PaymentStatus.SUCCEEDED,
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    }
)

# Existing payments in these states get a fresh gateway intent.
REOPENABLE_STATUSES: frozenset[str] = frozenset(
    {PaymentStatus.FAILED, PaymentStatus.CANCELLED}
)

SETTLED_STATUSES: frozenset[str] = frozenset(
    {
        PaymentStatus.SUCCEEDED,
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    }
)

GATEWAY_STATUS_MAP: dict[str, str] = {
    "succeeded": PaymentStatus.SUCCEEDED,
    "processing": PaymentStatus.PROCESSING,
    "requires_capture": PaymentStatus.PROCESSING,
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "canceled": PaymentStatus.CANCELLED,
}

# Refund statuses come from recorded refund amounts only, never from here.

# Stripe payment method types grouped into local methods.
GATEWAY_METHOD_MAP: dict[str, str] = {
    "card": PaymentMethod.CARD,
    "card_present": PaymentMethod.CARD,
    "us_bank_account": PaymentMethod.BANK_TRANSFER,
    "sepa_debit": PaymentMethod.BANK_TRANSFER,
    "bacs_debit": PaymentMethod.BANK_TRANSFER,
    "customer_balance": PaymentMethod.BANK_TRANSFER,
    "link": PaymentMethod.WALLET,
    "paypal": PaymentMethod.WALLET,
    "cashapp": PaymentMethod.WALLET,
    "alipay": PaymentMethod.WALLET,
    "wechat_pay": PaymentMethod.WALLET,
}

# Gateway intents in these states can still be paid with their client secret.
RETRYABLE_INTENT_STATUSES: frozenset[str] = frozenset(
    {"requires_payment_method", "requires_confirmation", "requires_action"}
)

CANCELED_INTENT_STATUS = "canceled"

PAYMENT_FAILED_DEFAULT_REASON = "Payment failed"

# Orders in these statuses can open a payment intent.
PAYABLE_ORDER_STATUSES: frozenset[str] = frozenset({"pending", "confirmed"})
