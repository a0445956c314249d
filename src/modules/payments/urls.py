"""Payment URL configuration."""

from __future__ import annotations

from django.urls import path, re_path

from modules.payments.views import (
    INTENT_ID_PATTERN,
    ConfirmPaymentView,
    PaymentDetailView,
    PaymentIntentView,
    RefundPaymentView,
    StripeWebhookView,
)

urlpatterns = [
    path("payments/webhook/", StripeWebhookView.as_view(), name="payment-webhook"),
    path(
        "payments/orders/<str:order_number>/intent/",
        PaymentIntentView.as_view(),
        name="payment-intent",
    ),
    re_path(
        rf"^payments/(?P<intent_id>{INTENT_ID_PATTERN})/$",
        PaymentDetailView.as_view(),
        name="payment-detail",
    ),
    re_path(
        rf"^payments/(?P<intent_id>{INTENT_ID_PATTERN})/confirm/$",
        ConfirmPaymentView.as_view(),
        name="payment-confirm",
    ),
    re_path(
        rf"^payments/(?P<intent_id>{INTENT_ID_PATTERN})/refund/$",
        RefundPaymentView.as_view(),
        name="payment-refund",
    ),
]
