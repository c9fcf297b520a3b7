"""
Integration tests for account deletion API endpoints.
"""

from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from licenses.infrastructure.models import License


@pytest.fixture
def db_license(db):
    return License.objects.create(
        email="owner@cafe.example",
        plan_type="annual",
        status="active",
        expires_at=timezone.now() + timedelta(days=200),
        stripe_customer_id="cus_123",
        stripe_subscription_id="sub_123",
    )


@pytest.mark.django_db
@pytest.mark.integration
class TestAccountDeletionAPI:
    """Integration tests for the account deletion lifecycle."""

    def test_schedule_deletion(self, staff_client, db_license):
        before = timezone.now()

        response = staff_client.post(reverse("schedule-account-deletion"), format="json")

        assert response.status_code == 200
        assert response.data["message"] == "Account deletion scheduled"
        db_license.refresh_from_db()
        assert db_license.status == "deletion_scheduled"
        assert db_license.deletion_scheduled_at >= before + timedelta(days=14)

    def test_schedule_then_cancel(self, staff_client, db_license):
        staff_client.post(reverse("schedule-account-deletion"), format="json")

        response = staff_client.post(reverse("cancel-account-deletion"), format="json")

        assert response.status_code == 200
        assert response.data["message"] == "Account deletion cancelled"
        assert response.data["deletion_date"] is None
        db_license.refresh_from_db()
        assert db_license.status == "active"
        assert db_license.deletion_scheduled_at is None

    def test_cancel_without_schedule(self, staff_client, db_license):
        response = staff_client.post(reverse("cancel-account-deletion"), format="json")

        assert response.status_code == 400
        assert response.data["error"]["code"] == "INVALID_LICENSE_STATUS"

    def test_schedule_without_license(self, staff_client, db):
        response = staff_client.post(reverse("schedule-account-deletion"), format="json")

        assert response.status_code == 404

    def test_requires_staff_session(self, api_client, db_license):
        response = api_client.post(reverse("schedule-account-deletion"), format="json")

        assert response.status_code == 401
        db_license.refresh_from_db()
        assert db_license.status == "active"
