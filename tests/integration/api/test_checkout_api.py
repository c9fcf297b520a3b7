"""
Integration tests for the checkout API endpoint.
"""

from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from core.domain.exceptions import PaymentProviderError
from licenses.infrastructure.models import License


def start_checkout(client, **body):
    return client.post(reverse("create-checkout-session"), data=body, format="json")


@pytest.mark.django_db
@pytest.mark.integration
class TestCheckoutAPI:
    """Integration tests for starting a purchase."""

    def test_returns_checkout_url(self, api_client, stripe_gateway):
        response = start_checkout(api_client, email="buyer@cafe.example", plan="monthly")

        assert response.status_code == 200
        assert response.data["url"] == "https://checkout.stripe.test/cs_test_1"
        assert response.data["session_id"] == "cs_test_1"
        assert response.data["plan"] == "monthly"
        assert stripe_gateway.checkout_sessions[0]["price_id"] == "price_monthly_test"
        assert stripe_gateway.checkout_sessions[0]["success_url"].startswith("http://testserver/")

    def test_plan_defaults_to_annual(self, api_client, stripe_gateway):
        response = start_checkout(api_client, email="buyer@cafe.example")

        assert response.status_code == 200
        assert response.data["plan"] == "annual"
        assert stripe_gateway.checkout_sessions[0]["price_id"] == "price_annual_test"

    def test_invalid_email(self, api_client, stripe_gateway):
        response = start_checkout(api_client, email="nobody", plan="monthly")

        assert response.status_code == 400
        assert response.data["error"]["code"] == "VALIDATION_ERROR"
        assert stripe_gateway.calls == []

    def test_unknown_plan(self, api_client, stripe_gateway):
        response = start_checkout(api_client, email="buyer@cafe.example", plan="weekly")

        assert response.status_code == 400
        assert response.data["error"]["code"] == "INVALID_PLAN"
        assert stripe_gateway.calls == []

    def test_active_license_conflicts(self, api_client, stripe_gateway):
        License.objects.create(
            email="owner@cafe.example",
            plan_type="annual",
            status="active",
            expires_at=timezone.now() + timedelta(days=200),
            stripe_customer_id="cus_123",
            stripe_subscription_id="sub_123",
        )

        response = start_checkout(api_client, email="owner@cafe.example")

        assert response.status_code == 409
        assert response.data["error"]["code"] == "LICENSE_ALREADY_ACTIVE"
        assert stripe_gateway.calls == []

    def test_provider_failure(self, api_client, stripe_gateway):
        stripe_gateway.failures["create_checkout_session"] = PaymentProviderError("down")

        response = start_checkout(api_client, email="buyer@cafe.example")

        assert response.status_code == 502

    def test_completed_checkout_issues_chosen_plan(
        self, api_client, stripe_gateway, stripe_payloads
    ):
        """Test the plan picked at checkout is the plan the webhook licenses."""
        start_checkout(api_client, email="buyer@cafe.example", plan="monthly")
        opened = stripe_gateway.checkout_sessions[0]

        event = stripe_payloads.event(
            "checkout.session.completed",
            stripe_payloads.checkout_session(
                email=opened["email"], subscription_id="sub_new", plan=opened["plan"]
            ),
            event_id="evt_checkout_new",
        )
        body = stripe_payloads.encode(event)
        response = api_client.post(
            reverse("stripe-webhook"),
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_payloads.sign(body),
        )

        assert response.status_code == 200
        assert response.data["outcome"] == "license_issued"
        license = License.objects.get(email="buyer@cafe.example")
        assert license.plan_type == "monthly"
        assert license.stripe_subscription_id == "sub_new"
