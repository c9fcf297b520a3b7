"""
Handler wiring for the API layer.

Views ask for handlers through these factories so that settings are read
per request and tests can swap the payment gateway.
"""

from licenses.application.handlers.account_deletion_handlers import (
    CancelAccountDeletionHandler,
    ScheduleAccountDeletionHandler,
)
from licenses.application.handlers.checkout_handlers import CreateCheckoutSessionHandler
from licenses.application.handlers.billing_handlers import (
    CreatePortalSessionHandler,
    GetSubscriptionHandler,
    ListInvoicesHandler,
)
from licenses.application.handlers.reconcile_event_handler import ReconcileEventHandler
from licenses.application.handlers.subscription_handlers import (
    CancelSubscriptionHandler,
    ChangePlanHandler,
    ReactivateSubscriptionHandler,
)
from licenses.application.services.idempotency_guard import IdempotencyGuard
from licenses.infrastructure.caller_resolver import get_caller_resolver
from licenses.infrastructure.config import get_licensing_settings, get_stripe_settings
from licenses.infrastructure.repositories.django_license_repository import (
    DjangoLicenseRepository,
)
from licenses.infrastructure.repositories.django_processed_event_repository import (
    DjangoProcessedEventRepository,
)
from licenses.infrastructure.stripe_gateway import StripePaymentGateway, build_stripe_client
from licenses.infrastructure.stripe_signature import StripeSignatureVerifier
from licenses.ports.payment_gateway import PaymentGateway

# Initialize repositories (in production, use DI container)
_license_repo = DjangoLicenseRepository()


def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway(build_stripe_client())


def get_signature_verifier() -> StripeSignatureVerifier:
    config = get_stripe_settings()
    return StripeSignatureVerifier(
        secret=config["WEBHOOK_SECRET"],
        tolerance=config["WEBHOOK_TOLERANCE_SECONDS"],
    )


def resolve_caller(request):
    """Resolve the staff caller of a request and remember it for logging."""
    caller = get_caller_resolver().resolve_caller(request)
    request.caller = caller
    return caller


def reconcile_event_handler() -> ReconcileEventHandler:
    config = get_licensing_settings()
    processed_events = DjangoProcessedEventRepository(
        claim_lease_seconds=config["EVENT_CLAIM_LEASE_SECONDS"]
    )
    return ReconcileEventHandler(
        license_repository=_license_repo,
        idempotency_guard=IdempotencyGuard(processed_events),
        enforce_event_ordering=config["ENFORCE_EVENT_ORDERING"],
    )


def cancel_subscription_handler() -> CancelSubscriptionHandler:
    return CancelSubscriptionHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
        cooling_period_days=get_licensing_settings()["COOLING_PERIOD_DAYS"],
    )


def change_plan_handler() -> ChangePlanHandler:
    return ChangePlanHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
        prices=get_stripe_settings()["PRICES"],
    )


def reactivate_subscription_handler() -> ReactivateSubscriptionHandler:
    return ReactivateSubscriptionHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
    )


def get_subscription_handler() -> GetSubscriptionHandler:
    return GetSubscriptionHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
        cooling_period_days=get_licensing_settings()["COOLING_PERIOD_DAYS"],
    )


def list_invoices_handler() -> ListInvoicesHandler:
    return ListInvoicesHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
    )


def create_portal_session_handler() -> CreatePortalSessionHandler:
    return CreatePortalSessionHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
        default_return_url=get_stripe_settings()["PORTAL_RETURN_URL"],
    )


def schedule_account_deletion_handler() -> ScheduleAccountDeletionHandler:
    return ScheduleAccountDeletionHandler(
        license_repository=_license_repo,
        grace_days=get_licensing_settings()["ACCOUNT_DELETION_GRACE_DAYS"],
    )


def cancel_account_deletion_handler() -> CancelAccountDeletionHandler:
    return CancelAccountDeletionHandler(license_repository=_license_repo)


def create_checkout_session_handler() -> CreateCheckoutSessionHandler:
    config = get_stripe_settings()
    return CreateCheckoutSessionHandler(
        license_repository=_license_repo,
        payment_gateway=get_payment_gateway(),
        prices=config["PRICES"],
        success_url=config["CHECKOUT_SUCCESS_URL"],
        cancel_url=config["CHECKOUT_CANCEL_URL"],
    )
