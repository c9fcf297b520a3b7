"""
Serializers for webhook endpoints.
"""

from rest_framework import serializers


class WebhookAckSerializer(serializers.Serializer):
    """Serializer for WebhookResultDTO."""

    received = serializers.BooleanField()
    event_id = serializers.CharField()
    event_type = serializers.CharField()
    action = serializers.CharField()
    outcome = serializers.CharField()
    duplicate = serializers.BooleanField()


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField()
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    """Serializer for the standard error envelope."""

    error = ErrorDetailSerializer()
