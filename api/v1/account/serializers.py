"""
Serializers for Account API endpoints.
"""

from rest_framework import serializers


class AccountDeletionSerializer(serializers.Serializer):
    """Serializer for AccountDeletionDTO."""

    message = serializers.CharField()
    deletion_date = serializers.DateTimeField(allow_null=True)
