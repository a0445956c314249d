"""Customer account URL configuration: registration, tokens, guest claims."""

from __future__ import annotations

from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from modules.customers.views import GuestOrderAccountView, RegisterView

urlpatterns = [
    path("accounts/register/", RegisterView.as_view(), name="account-register"),
    # Login is by email; accounts are created with the email as username.
    path("accounts/token/", TokenObtainPairView.as_view(), name="account-token"),
    path(
        "accounts/token/refresh/",
        TokenRefreshView.as_view(),
        name="account-token-refresh",
    ),
    path(
        "accounts/token/verify/",
        TokenVerifyView.as_view(),
        name="account-token-verify",
    ),
    path(
        "accounts/guest-orders/<str:order_number>/",
        GuestOrderAccountView.as_view(),
        name="account-guest-order",
    ),
]
