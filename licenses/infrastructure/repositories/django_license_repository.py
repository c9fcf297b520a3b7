"""
Django implementation of LicenseRepository port.

This adapter converts between domain entities and Django ORM models.
"""
from typing import Optional

from asgiref.sync import sync_to_async
from django.db import transaction

from core.domain.value_objects import Email, LicenseStatus, PlanType
from licenses.domain.license import License
from licenses.infrastructure.models import License as LicenseModel
from licenses.ports.license_repository import LicenseMutation, LicenseRepository


class DjangoLicenseRepository(LicenseRepository):
    """
    Django ORM implementation of LicenseRepository.

    This adapter:
    1. Converts Django models to domain entities
    2. Converts domain entities to Django models
    3. Serializes writers with SELECT ... FOR UPDATE
    """

    def _to_domain(self, model: LicenseModel) -> License:
        """
        Convert Django model to domain entity.

        Args:
            model: Django License model

        Returns:
            License domain entity
        """
        return License(
            id=model.id,
            license_key=model.license_key,
            email=Email(model.email),
            plan_type=PlanType(model.plan_type),
            status=LicenseStatus(model.status),
            expires_at=model.expires_at,
            stripe_customer_id=model.stripe_customer_id,
            stripe_subscription_id=model.stripe_subscription_id,
            deletion_scheduled_at=model.deletion_scheduled_at,
            last_event_at=model.last_event_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(
        self, license: License, model: Optional[LicenseModel] = None
    ) -> LicenseModel:
        """
        Copy a domain entity onto a Django model.

        Args:
            license: License domain entity
            model: Existing row, or None to build a new one

        Returns:
            Django License model (unsaved)
        """
        if model is None:
            model = LicenseModel.objects.filter(id=license.id).first()
        if model is None:
            model = LicenseModel(
                id=license.id,
                license_key=license.license_key,
                created_at=license.created_at,
            )
        model.email = license.email.value
        model.plan_type = license.plan_type.value
        model.status = license.status.value
        model.expires_at = license.expires_at
        model.stripe_customer_id = license.stripe_customer_id
        model.stripe_subscription_id = license.stripe_subscription_id
        model.deletion_scheduled_at = license.deletion_scheduled_at
        model.last_event_at = license.last_event_at
        model.updated_at = license.updated_at
        return model

    @sync_to_async
    def find_by_email(self, email: str) -> Optional[License]:
        """
        Find the license of a tenant.

        Args:
            email: Tenant email

        Returns:
            License entity or None if not found
        """
        model = LicenseModel.objects.filter(email=email.strip().lower()).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def find_by_subscription_id(self, subscription_id: str) -> Optional[License]:
        """
        Find the license linked to a provider subscription.

        Args:
            subscription_id: Provider subscription id

        Returns:
            License entity or None if not found
        """
        try:
            model = LicenseModel.objects.get(stripe_subscription_id=subscription_id)
            return self._to_domain(model)
        except LicenseModel.DoesNotExist:
            return None

    @sync_to_async
    def update_with_lock(
        self,
        mutation: LicenseMutation,
        email: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> Optional[License]:
        """
        Apply a mutation to one license under a row-level lock.

        Args:
            mutation: Function from the locked license (or None) to its new state
            email: Tenant email
            subscription_id: Provider subscription id

        Returns:
            The persisted license, or None when the mutation declined to write
        """
        if (email is None) == (subscription_id is None):
            raise ValueError("Exactly one of email and subscription_id is required")

        with transaction.atomic():
            queryset = LicenseModel.objects.select_for_update()
            if email is not None:
                model = queryset.filter(email=email.strip().lower()).first()
            else:
                model = queryset.filter(stripe_subscription_id=subscription_id).first()

            current = self._to_domain(model) if model else None
            updated = mutation(current)
            if updated is None:
                return None
            if updated is current:
                return current

            model = self._to_model(updated, model)
            model.save()
            return self._to_domain(model)
