"""
Serializers for Checkout API endpoints.
"""

from rest_framework import serializers

from licenses.domain.classifier import DEFAULT_CHECKOUT_PLAN


class CheckoutRequestSerializer(serializers.Serializer):
    """Serializer for checkout request."""

    email = serializers.EmailField()
    plan = serializers.CharField(default=DEFAULT_CHECKOUT_PLAN.value, max_length=32)


class CheckoutSessionSerializer(serializers.Serializer):
    """Serializer for CheckoutSessionDTO."""

    session_id = serializers.CharField()
    url = serializers.URLField()
    plan = serializers.CharField()
