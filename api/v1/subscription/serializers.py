"""
Serializers for Subscription API endpoints.
"""

from rest_framework import serializers


class ChangePlanRequestSerializer(serializers.Serializer):
    """Serializer for change plan request. ``newPlan`` is accepted as an alias."""

    targetPlan = serializers.CharField(required=False, max_length=32)
    newPlan = serializers.CharField(required=False, max_length=32)

    def validate(self, attrs):
        """Require one of the two plan fields."""
        target_plan = attrs.get("targetPlan") or attrs.get("newPlan")
        if not target_plan:
            raise serializers.ValidationError({"targetPlan": "This field is required."})
        return {"target_plan": target_plan}


class LicenseDTOSerializer(serializers.Serializer):
    """Serializer for LicenseDTO."""

    id = serializers.UUIDField()
    license_key = serializers.CharField()
    email = serializers.EmailField()
    plan_type = serializers.CharField()
    status = serializers.CharField()
    expires_at = serializers.DateTimeField(allow_null=True)
    deletion_scheduled_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()


class SubscriptionStatusSerializer(serializers.Serializer):
    """Serializer for SubscriptionStatusDTO."""

    license = LicenseDTOSerializer()
    subscription_id = serializers.CharField(allow_null=True)
    plan = serializers.CharField()
    status = serializers.CharField()
    current_period_start = serializers.DateTimeField(allow_null=True)
    current_period_end = serializers.DateTimeField(allow_null=True)
    cancel_at_period_end = serializers.BooleanField()
    price = serializers.FloatField(allow_null=True)
    currency = serializers.CharField(allow_null=True)
    created = serializers.DateTimeField(allow_null=True)
    cooling_days_left = serializers.IntegerField()
    fallback = serializers.BooleanField()


class CancellationResultSerializer(serializers.Serializer):
    """Serializer for CancellationResultDTO."""

    refunded = serializers.BooleanField()
    mode = serializers.CharField()
    refund_amount = serializers.FloatField()
    effective_date = serializers.DateTimeField(allow_null=True)
    message = serializers.CharField()


class PlanChangeResultSerializer(serializers.Serializer):
    """Serializer for PlanChangeResultDTO."""

    new_plan = serializers.CharField()
    effective_date = serializers.DateTimeField(allow_null=True)
    prorated_amount = serializers.FloatField()
    message = serializers.CharField()


class ReactivationResultSerializer(serializers.Serializer):
    """Serializer for ReactivationResultDTO."""

    cancel_at_period_end = serializers.BooleanField()
    message = serializers.CharField()


class InvoiceSerializer(serializers.Serializer):
    """Serializer for InvoiceDTO."""

    id = serializers.CharField()
    number = serializers.CharField(allow_null=True)
    status = serializers.CharField(allow_null=True)
    amount_paid = serializers.FloatField()
    amount_due = serializers.FloatField()
    total = serializers.FloatField()
    currency = serializers.CharField(allow_null=True)
    created = serializers.DateTimeField(allow_null=True)
    invoice_pdf = serializers.CharField(allow_null=True)
    hosted_invoice_url = serializers.CharField(allow_null=True)


class InvoiceListSerializer(serializers.Serializer):
    """Serializer for InvoiceListDTO."""

    invoices = InvoiceSerializer(many=True)


class PortalSessionSerializer(serializers.Serializer):
    """Serializer for PortalSessionDTO."""

    url = serializers.CharField()
