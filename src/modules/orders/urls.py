"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import GuestCheckoutView, OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("checkout/guest/", GuestCheckoutView.as_view(), name="guest-checkout"),
    *router.urls,
]
