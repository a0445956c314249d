"""Customer DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
It handles HTTP-level concerns: request parsing and response rendering.
Business rules live in the Service Layer, which receives Pydantic DTOs
from ``dtos.py``.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from modules.customers.models import Customer


class RegisterSerializer(serializers.Serializer):
    email = serializers.CharField(max_length=180)
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(
        max_length=20, required=False, allow_null=True, allow_blank=True
    )


class GuestAccountSerializer(serializers.Serializer):
    guest_email = serializers.CharField(max_length=180)
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    first_name = serializers.CharField(
        max_length=100, required=False, allow_null=True, allow_blank=True
    )
    last_name = serializers.CharField(
        max_length=100, required=False, allow_null=True, allow_blank=True
    )


class CustomerSerializer(serializers.ModelSerializer):
    """Read serializer for the Customer resource."""

    class Meta:
        model = Customer
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "full_name",
            "phone",
            "is_active",
            "created_at",
        ]
        read_only_fields = fields


def token_payload(customer: Customer) -> dict[str, Any]:
    """SimpleJWT token pair for the customer's login plus its profile."""
    refresh = RefreshToken.for_user(customer.user)
    access = refresh.access_token
    return {
        "access": str(access),
        "refresh": str(refresh),
        "expires_at": access["exp"],
        "customer": CustomerSerializer(customer).data,
    }
