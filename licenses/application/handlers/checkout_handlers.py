"""
Checkout handler.

Starts the purchase of a license. The license itself is issued later by
the completed-checkout webhook.
"""
import logging
from typing import Dict

from core.domain.exceptions import InvalidEmailError, LicenseAlreadyActiveError
from core.domain.value_objects import Email, LicenseStatus
from licenses.application.commands.create_checkout_session import CreateCheckoutSessionCommand
from licenses.application.dto.license_dto import CheckoutSessionDTO
from licenses.domain.services import resolve_plan_price
from licenses.ports.license_repository import LicenseRepository
from licenses.ports.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

# A second subscription for one of these would be ignored by the webhook.
_BLOCKING_STATUSES = (LicenseStatus.ACTIVE, LicenseStatus.DELETION_SCHEDULED)


class CreateCheckoutSessionHandler:
    """Handler for CreateCheckoutSessionCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        prices: Dict[str, str],
        success_url: str,
        cancel_url: str,
    ):
        """
        Initialize handler.

        Args:
            license_repository: License persistence
            payment_gateway: Subscription provider
            prices: Provider price id per plan name
            success_url: Redirect after payment
            cancel_url: Redirect when checkout is abandoned
        """
        self.license_repository = license_repository
        self.payment_gateway = payment_gateway
        self.prices = prices
        self.success_url = success_url
        self.cancel_url = cancel_url

    async def handle(self, command: CreateCheckoutSessionCommand) -> CheckoutSessionDTO:
        """
        Handle create checkout session command.

        Args:
            command: CreateCheckoutSessionCommand

        Returns:
            CheckoutSessionDTO with the hosted checkout URL

        Raises:
            InvalidEmailError: If the email is unusable
            InvalidPlanError: If the plan is unknown or has no price
            LicenseAlreadyActiveError: If the email already holds a live license
            PaymentProviderError: If the provider call fails
        """
        try:
            email = Email(command.email)
        except ValueError as e:
            raise InvalidEmailError(str(e))

        plan, price_id = resolve_plan_price(command.plan, self.prices)

        existing = await self.license_repository.find_by_email(email.value)
        if existing is not None and existing.status in _BLOCKING_STATUSES:
            logger.info(f"Checkout refused for {email.value}: license {existing.id} is live")
            raise LicenseAlreadyActiveError()

        session = await self.payment_gateway.create_checkout_session(
            email=email.value,
            plan=plan.value,
            price_id=price_id,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
        )
        logger.info(f"Checkout session {session.id} opened for {email.value} ({plan.value})")

        return CheckoutSessionDTO(session_id=session.id, url=session.url, plan=plan.value)
