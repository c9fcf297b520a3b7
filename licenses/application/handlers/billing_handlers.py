"""
Billing read handlers.

Subscription status, invoice history and billing portal sessions for the
caller's license.
"""
import logging
from datetime import datetime
from typing import Callable

from django.utils import timezone

from core.domain.exceptions import (
    LicenseNotFoundError,
    NoActiveSubscriptionError,
    PaymentProviderError,
)
from core.domain.value_objects import CallerIdentity
from licenses.application.commands.create_portal_session import CreatePortalSessionCommand
from licenses.application.dto.license_dto import (
    InvoiceDTO,
    InvoiceListDTO,
    LicenseDTO,
    PortalSessionDTO,
    SubscriptionStatusDTO,
)
from licenses.application.queries.get_subscription import GetSubscriptionQuery
from licenses.application.queries.list_invoices import ListInvoicesQuery
from licenses.domain.license import License
from licenses.domain.services import DEFAULT_COOLING_PERIOD_DAYS, cooling_days_left
from licenses.domain.subscription import InvoiceSnapshot, to_major_units
from licenses.ports.license_repository import LicenseRepository
from licenses.ports.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)


def license_to_dto(license: License) -> LicenseDTO:
    """Convert a License entity to its DTO."""
    return LicenseDTO(
        id=license.id,
        license_key=license.license_key,
        email=license.email.value,
        plan_type=license.plan_type.value,
        status=license.status.value,
        expires_at=license.expires_at,
        deletion_scheduled_at=license.deletion_scheduled_at,
        created_at=license.created_at,
    )


def invoice_to_dto(invoice: InvoiceSnapshot) -> InvoiceDTO:
    """Convert an InvoiceSnapshot to its DTO."""
    return InvoiceDTO(
        id=invoice.id,
        number=invoice.number,
        status=invoice.status,
        amount_paid=to_major_units(invoice.amount_paid),
        amount_due=to_major_units(invoice.amount_due),
        total=to_major_units(invoice.total),
        currency=invoice.currency,
        created=invoice.created_at,
        invoice_pdf=invoice.pdf_url,
        hosted_invoice_url=invoice.hosted_url,
    )


class _BillingHandler:
    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
    ):
        """Initialize handler with repository and gateway."""
        self.license_repository = license_repository
        self.payment_gateway = payment_gateway

    async def _load_license(self, caller: CallerIdentity) -> License:
        license = await self.license_repository.find_by_email(caller.email.value)
        if license is None:
            raise LicenseNotFoundError()
        return license


class GetSubscriptionHandler(_BillingHandler):
    """Handler for GetSubscriptionQuery."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        cooling_period_days: int = DEFAULT_COOLING_PERIOD_DAYS,
        clock: Callable[[], datetime] = timezone.now,
    ):
        super().__init__(license_repository, payment_gateway)
        self.cooling_period_days = cooling_period_days
        self.clock = clock

    async def handle(self, query: GetSubscriptionQuery) -> SubscriptionStatusDTO:
        """
        Handle get subscription query.

        When the provider cannot be reached the local license data is
        returned with ``fallback`` set.

        Args:
            query: GetSubscriptionQuery

        Returns:
            SubscriptionStatusDTO

        Raises:
            LicenseNotFoundError: If the caller has no license
        """
        license = await self._load_license(query.caller)
        now = self.clock()

        if license.stripe_subscription_id:
            try:
                subscription = await self.payment_gateway.retrieve_subscription(
                    license.stripe_subscription_id
                )
            except PaymentProviderError as e:
                logger.warning(
                    f"Serving local data for license {license.id}, provider unavailable: "
                    f"{e.message}"
                )
            else:
                return SubscriptionStatusDTO(
                    license=license_to_dto(license),
                    subscription_id=subscription.id,
                    plan=license.plan_type.value,
                    status=subscription.status,
                    current_period_start=subscription.current_period_start,
                    current_period_end=subscription.current_period_end,
                    cancel_at_period_end=subscription.cancel_at_period_end,
                    price=(
                        to_major_units(subscription.unit_amount)
                        if subscription.unit_amount is not None
                        else None
                    ),
                    currency=subscription.currency,
                    created=subscription.created_at,
                    cooling_days_left=cooling_days_left(
                        subscription.created_at, now, self.cooling_period_days
                    ),
                )

        return SubscriptionStatusDTO(
            license=license_to_dto(license),
            subscription_id=license.stripe_subscription_id,
            plan=license.plan_type.value,
            status=license.status.value,
            current_period_start=None,
            current_period_end=license.expires_at,
            cancel_at_period_end=False,
            price=None,
            currency=None,
            created=license.created_at,
            cooling_days_left=cooling_days_left(
                license.created_at, now, self.cooling_period_days
            ),
            fallback=True,
        )


class ListInvoicesHandler(_BillingHandler):
    """Handler for ListInvoicesQuery."""

    async def handle(self, query: ListInvoicesQuery) -> InvoiceListDTO:
        """
        Handle list invoices query.

        Args:
            query: ListInvoicesQuery

        Returns:
            InvoiceListDTO, empty when the license has no provider customer
        """
        license = await self._load_license(query.caller)
        if not license.stripe_customer_id:
            return InvoiceListDTO(invoices=[])

        invoices = await self.payment_gateway.list_invoices(
            license.stripe_customer_id, limit=query.limit
        )
        return InvoiceListDTO(invoices=[invoice_to_dto(invoice) for invoice in invoices])


class CreatePortalSessionHandler(_BillingHandler):
    """Handler for CreatePortalSessionCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        payment_gateway: PaymentGateway,
        default_return_url: str,
    ):
        super().__init__(license_repository, payment_gateway)
        self.default_return_url = default_return_url

    async def handle(self, command: CreatePortalSessionCommand) -> PortalSessionDTO:
        """
        Handle create portal session command.

        Raises:
            NoActiveSubscriptionError: If the license has no provider customer
        """
        license = await self._load_license(command.caller)
        if not license.stripe_customer_id:
            raise NoActiveSubscriptionError("No billing account found")

        url = await self.payment_gateway.create_portal_session(
            license.stripe_customer_id, command.return_url or self.default_return_url
        )
        return PortalSessionDTO(url=url)
