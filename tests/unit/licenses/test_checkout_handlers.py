"""
Unit tests for the checkout handler.
"""

import pytest

from core.domain.exceptions import (
    InvalidEmailError,
    InvalidPlanError,
    LicenseAlreadyActiveError,
    PaymentProviderError,
)
from core.domain.value_objects import LicenseStatus
from licenses.application.commands.create_checkout_session import CreateCheckoutSessionCommand
from licenses.application.handlers.checkout_handlers import CreateCheckoutSessionHandler

SUCCESS_URL = "https://app.example/success?session_id={CHECKOUT_SESSION_ID}"
CANCEL_URL = "https://app.example/pay"


@pytest.fixture
def checkout_handler(memory_license_repository, payment_gateway, prices):
    return CreateCheckoutSessionHandler(
        license_repository=memory_license_repository,
        payment_gateway=payment_gateway,
        prices=prices,
        success_url=SUCCESS_URL,
        cancel_url=CANCEL_URL,
    )


@pytest.mark.asyncio
class TestCreateCheckoutSession:
    """Tests for CreateCheckoutSessionHandler."""

    async def test_opens_session_for_plan(self, checkout_handler, payment_gateway, prices):
        """Test the session carries the email, price and plan."""
        result = await checkout_handler.handle(
            CreateCheckoutSessionCommand(email=" Buyer@Cafe.Example ", plan="monthly")
        )

        assert result.session_id == "cs_test_1"
        assert result.url == "https://checkout.stripe.test/cs_test_1"
        assert result.plan == "monthly"
        assert payment_gateway.checkout_sessions == [
            {
                "email": "buyer@cafe.example",
                "plan": "monthly",
                "price_id": prices["monthly"],
                "success_url": SUCCESS_URL,
                "cancel_url": CANCEL_URL,
            }
        ]

    async def test_plan_defaults_to_annual(self, checkout_handler, payment_gateway, prices):
        """Test a command without a plan buys the annual plan."""
        result = await checkout_handler.handle(
            CreateCheckoutSessionCommand(email="buyer@cafe.example")
        )

        assert result.plan == "annual"
        assert payment_gateway.checkout_sessions[0]["price_id"] == prices["annual"]

    async def test_unknown_plan(self, checkout_handler, payment_gateway):
        """Test an unknown plan is rejected before calling the provider."""
        with pytest.raises(InvalidPlanError):
            await checkout_handler.handle(
                CreateCheckoutSessionCommand(email="buyer@cafe.example", plan="weekly")
            )

        assert payment_gateway.calls == []

    async def test_plan_without_price(
        self, memory_license_repository, payment_gateway
    ):
        """Test a plan with no configured price is rejected."""
        handler = CreateCheckoutSessionHandler(
            license_repository=memory_license_repository,
            payment_gateway=payment_gateway,
            prices={"monthly": "price_monthly_test"},
            success_url=SUCCESS_URL,
            cancel_url=CANCEL_URL,
        )

        with pytest.raises(InvalidPlanError):
            await handler.handle(
                CreateCheckoutSessionCommand(email="buyer@cafe.example", plan="annual")
            )

        assert payment_gateway.calls == []

    async def test_invalid_email(self, checkout_handler, payment_gateway):
        """Test an email without an @ is rejected."""
        with pytest.raises(InvalidEmailError):
            await checkout_handler.handle(CreateCheckoutSessionCommand(email="not-an-email"))

        assert payment_gateway.calls == []

    @pytest.mark.parametrize(
        "status", [LicenseStatus.ACTIVE, LicenseStatus.DELETION_SCHEDULED]
    )
    async def test_live_license_is_refused(
        self, checkout_handler, memory_license_repository, payment_gateway, make_license, status
    ):
        """Test an email that still holds a live license cannot buy a second one."""
        memory_license_repository.add(make_license(email="owner@cafe.example", status=status))

        with pytest.raises(LicenseAlreadyActiveError):
            await checkout_handler.handle(
                CreateCheckoutSessionCommand(email="owner@cafe.example")
            )

        assert payment_gateway.calls == []

    @pytest.mark.parametrize("status", [LicenseStatus.CANCELLED, LicenseStatus.INACTIVE])
    async def test_ended_license_may_buy_again(
        self, checkout_handler, memory_license_repository, payment_gateway, make_license, status
    ):
        """Test a cancelled or lapsed customer can start a new subscription."""
        memory_license_repository.add(make_license(email="owner@cafe.example", status=status))

        result = await checkout_handler.handle(
            CreateCheckoutSessionCommand(email="owner@cafe.example", plan="monthly")
        )

        assert result.session_id == "cs_test_1"
        assert payment_gateway.calls == ["create_checkout_session"]

    async def test_provider_error_propagates(self, checkout_handler, payment_gateway):
        """Test a provider failure surfaces to the caller."""
        payment_gateway.failures["create_checkout_session"] = PaymentProviderError("down")

        with pytest.raises(PaymentProviderError):
            await checkout_handler.handle(
                CreateCheckoutSessionCommand(email="buyer@cafe.example")
            )

        assert payment_gateway.checkout_sessions == []
