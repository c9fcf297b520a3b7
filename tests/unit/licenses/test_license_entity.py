"""
Unit tests for License domain entity.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from core.domain.value_objects import LicenseStatus, PlanType
from licenses.domain.license import License

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _issue(plan_type=PlanType.MONTHLY, **kwargs):
    return License.issue(
        email="Owner@Cafe.Example",
        plan_type=plan_type,
        now=NOW,
        stripe_customer_id="cus_1",
        stripe_subscription_id="sub_1",
        **kwargs,
    )


class TestLicenseEntity:
    """Tests for License domain entity."""

    def test_issue_license(self):
        """Test issuing a license after checkout."""
        event_at = NOW - timedelta(seconds=5)
        license = _issue(event_at=event_at)

        assert license.status == LicenseStatus.ACTIVE
        assert license.email.value == "owner@cafe.example"
        assert license.plan_type == PlanType.MONTHLY
        assert license.expires_at == datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)
        assert license.stripe_subscription_id == "sub_1"
        assert license.last_event_at == event_at
        assert license.deletion_scheduled_at is None
        assert len(license.license_key) == 27

    def test_issue_annual_license(self):
        """Test annual plans expire one calendar year later."""
        license = _issue(plan_type=PlanType.ANNUAL)
        assert license.expires_at == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_issue_uses_given_id(self):
        """Test explicit license id."""
        license_id = uuid.uuid4()
        assert _issue(license_id=license_id).id == license_id

    def test_active_license_requires_expiry(self):
        """Test invariant: active licenses carry an expiration."""
        with pytest.raises(ValueError, match="expiration"):
            replace(_issue(), expires_at=None)

    def test_deletion_date_only_while_scheduled(self):
        """Test invariant: deletion date only with deletion_scheduled."""
        with pytest.raises(ValueError, match="Deletion date"):
            replace(_issue(), deletion_scheduled_at=NOW)
        with pytest.raises(ValueError, match="requires a deletion date"):
            replace(_issue(), status=LicenseStatus.DELETION_SCHEDULED)

    def test_license_key_required(self):
        """Test invariant: license key is required."""
        with pytest.raises(ValueError, match="License key"):
            replace(_issue(), license_key="")

    def test_is_active(self):
        """Test active check against expiry."""
        license = _issue()
        assert license.is_active(NOW) is True
        assert license.is_active(license.expires_at + timedelta(seconds=1)) is False

    def test_inactive_license_is_not_active(self):
        """Test payment failure revokes access."""
        license = _issue().mark_payment_failed(NOW)
        assert license.is_active(NOW) is False


class TestLicenseTransitions:
    """Tests for License state transitions."""

    def test_renew_extends_from_now(self):
        """Test renewal measures the interval from processing time."""
        license = _issue()
        later = NOW + timedelta(days=40)

        renewed = license.renew(later, event_at=later)

        assert renewed.expires_at == datetime(2024, 5, 10, 12, tzinfo=timezone.utc)
        assert renewed.status == LicenseStatus.ACTIVE
        assert renewed.last_event_at == later

    def test_renew_reactivates_inactive_license(self):
        """Test a successful payment after a failure restores access."""
        license = _issue().mark_payment_failed(NOW)
        renewed = license.renew(NOW + timedelta(days=1))
        assert renewed.status == LicenseStatus.ACTIVE

    def test_renew_keeps_deletion_schedule(self):
        """Test renewal does not cancel a scheduled deletion."""
        license = _issue().schedule_deletion(NOW + timedelta(days=14), NOW)
        renewed = license.renew(NOW + timedelta(days=1))
        assert renewed.status == LicenseStatus.DELETION_SCHEDULED
        assert renewed.deletion_scheduled_at == NOW + timedelta(days=14)

    def test_renew_cancelled_license_fails(self):
        """Test cancelled licenses are terminal."""
        license = _issue().end_subscription(NOW)
        with pytest.raises(ValueError, match="cancelled"):
            license.renew(NOW)

    def test_end_subscription(self):
        """Test provider deletion cancels the license."""
        license = _issue().schedule_deletion(NOW + timedelta(days=14), NOW)
        ended = license.end_subscription(NOW + timedelta(days=2))
        assert ended.status == LicenseStatus.CANCELLED
        assert ended.deletion_scheduled_at is None

    def test_mark_payment_failed(self):
        """Test payment failure deactivates."""
        license = _issue()
        failed = license.mark_payment_failed(NOW, event_at=NOW)
        assert failed.status == LicenseStatus.INACTIVE
        assert failed.expires_at == license.expires_at

    def test_mark_payment_failed_on_cancelled_fails(self):
        """Test terminal license cannot be deactivated."""
        with pytest.raises(ValueError):
            _issue().end_subscription(NOW).mark_payment_failed(NOW)

    def test_older_event_does_not_move_last_event_at_back(self):
        """Test last_event_at is monotonic."""
        license = _issue(event_at=NOW)
        renewed = license.renew(NOW, event_at=NOW - timedelta(hours=1))
        assert renewed.last_event_at == NOW

    def test_is_stale(self):
        """Test stale detection."""
        license = _issue(event_at=NOW)
        assert license.is_stale(NOW - timedelta(seconds=1)) is True
        assert license.is_stale(NOW) is False
        assert license.is_stale(None) is False

    def test_reissue_keeps_key(self):
        """Test a returning tenant keeps the license key."""
        cancelled = _issue().end_subscription(NOW)
        later = NOW + timedelta(days=60)

        reissued = cancelled.reissue(PlanType.ANNUAL, later, "cus_2", "sub_2", event_at=later)

        assert reissued.license_key == cancelled.license_key
        assert reissued.status == LicenseStatus.ACTIVE
        assert reissued.stripe_subscription_id == "sub_2"
        assert reissued.stripe_customer_id == "cus_2"
        assert reissued.plan_type == PlanType.ANNUAL
        assert reissued.expires_at == datetime(2025, 4, 30, 12, tzinfo=timezone.utc)

    def test_reissue_active_license_fails(self):
        """Test active licenses are not reissued."""
        with pytest.raises(ValueError, match="already active"):
            _issue().reissue(PlanType.ANNUAL, NOW, "cus_2", "sub_2")

    def test_change_plan(self):
        """Test plan change keeps expiry."""
        license = _issue()
        changed = license.change_plan(PlanType.ANNUAL, NOW)
        assert changed.plan_type == PlanType.ANNUAL
        assert changed.expires_at == license.expires_at

    def test_schedule_deletion_is_idempotent(self):
        """Test scheduling twice keeps the first date."""
        first = _issue().schedule_deletion(NOW + timedelta(days=14), NOW)
        again = first.schedule_deletion(NOW + timedelta(days=20), NOW)
        assert again is first

    def test_cancel_deletion(self):
        """Test withdrawing a scheduled deletion."""
        scheduled = _issue().schedule_deletion(NOW + timedelta(days=14), NOW)
        restored = scheduled.cancel_deletion(NOW)
        assert restored.status == LicenseStatus.ACTIVE
        assert restored.deletion_scheduled_at is None

    def test_cancel_deletion_without_schedule_fails(self):
        """Test cancel deletion requires a schedule."""
        with pytest.raises(ValueError, match="No account deletion"):
            _issue().cancel_deletion(NOW)
