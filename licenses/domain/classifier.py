"""
Provider event classification.

Maps Stripe event envelopes to reconciliation actions and extracts the
fields the reconciler needs, normalizing expandable references to plain ids.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from core.domain.exceptions import MalformedEventError
from core.domain.value_objects import PlanType

DEFAULT_CHECKOUT_PLAN = PlanType.ANNUAL


class ReconciliationAction(str, Enum):
    """What the reconciler does with an incoming event."""

    ISSUE_LICENSE = "issue_license"
    RENEW_LICENSE = "renew_license"
    END_SUBSCRIPTION = "end_subscription"
    MARK_PAYMENT_FAILED = "mark_payment_failed"
    IGNORE = "ignore"


_ACTIONS = {
    "checkout.session.completed": ReconciliationAction.ISSUE_LICENSE,
    "invoice.payment_succeeded": ReconciliationAction.RENEW_LICENSE,
    "invoice.paid": ReconciliationAction.RENEW_LICENSE,
    "customer.subscription.deleted": ReconciliationAction.END_SUBSCRIPTION,
    "invoice.payment_failed": ReconciliationAction.MARK_PAYMENT_FAILED,
}


def classify(event_type: str) -> ReconciliationAction:
    """Return the action for a provider event type tag."""
    return _ACTIONS.get(event_type, ReconciliationAction.IGNORE)


def normalize_stripe_id(value: Any) -> Optional[str]:
    """
    Reduce an expandable Stripe reference to its id.

    Stripe sends either the primitive id or the expanded object carrying
    an ``id`` key for fields like ``customer`` and ``subscription``.

    Args:
        value: String id, expanded object or None

    Returns:
        The plain id, or None when absent
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict) or hasattr(value, "get"):
        ref = value.get("id")
        return ref if isinstance(ref, str) and ref else None
    raise MalformedEventError(f"Unexpected reference type: {type(value).__name__}")


@dataclass(frozen=True)
class ProviderEvent:
    """A verified provider event envelope."""

    id: str
    type: str
    created_at: Optional[datetime]
    data_object: Dict[str, Any]

    @property
    def action(self) -> ReconciliationAction:
        return classify(self.type)


def parse_event(payload: Any) -> ProviderEvent:
    """
    Validate the envelope shape of a verified webhook payload.

    Args:
        payload: Decoded JSON body

    Returns:
        ProviderEvent

    Raises:
        MalformedEventError: If ``id``, ``type`` or ``data.object`` is missing
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("Event payload must be an object")

    event_id = payload.get("id")
    event_type = payload.get("type")
    if not isinstance(event_id, str) or not event_id:
        raise MalformedEventError("Event id is missing")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedEventError("Event type is missing")

    data = payload.get("data")
    data_object = data.get("object") if isinstance(data, dict) else None
    if not isinstance(data_object, dict):
        raise MalformedEventError("Event data.object is missing")

    created = payload.get("created")
    created_at = None
    if isinstance(created, (int, float)) and not isinstance(created, bool):
        created_at = datetime.fromtimestamp(created, tz=timezone.utc)

    return ProviderEvent(
        id=event_id,
        type=event_type,
        created_at=created_at,
        data_object=data_object,
    )


@dataclass(frozen=True)
class CheckoutDetails:
    """Fields of a completed checkout session needed to issue a license."""

    email: str
    plan_type: PlanType
    customer_id: Optional[str]
    subscription_id: Optional[str]


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def extract_checkout(session: Dict[str, Any]) -> CheckoutDetails:
    """
    Pull the license-issuing fields from a checkout session.

    The email is taken from ``customer_email``, then
    ``customer_details.email``, then ``metadata.email``. The plan comes
    from ``metadata.plan`` and defaults to annual.

    Raises:
        MalformedEventError: If no email can be resolved or the plan is unknown
    """
    metadata = _mapping(session.get("metadata"))
    details = _mapping(session.get("customer_details"))

    email = (
        session.get("customer_email")
        or details.get("email")
        or metadata.get("email")
    )
    if not isinstance(email, str) or "@" not in email:
        raise MalformedEventError("Checkout session has no customer email")

    plan = metadata.get("plan") or DEFAULT_CHECKOUT_PLAN.value
    if not isinstance(plan, str):
        raise MalformedEventError(f"Unknown plan: {plan!r}")
    try:
        plan_type = PlanType.parse(plan)
    except ValueError as e:
        raise MalformedEventError(str(e))

    return CheckoutDetails(
        email=email.strip().lower(),
        plan_type=plan_type,
        customer_id=normalize_stripe_id(session.get("customer")),
        subscription_id=normalize_stripe_id(session.get("subscription")),
    )


def extract_subscription_id(event: ProviderEvent) -> Optional[str]:
    """
    Return the subscription id an event refers to.

    Subscription events carry it as the object id; invoices carry it in
    ``subscription`` or, on newer API versions, under
    ``parent.subscription_details``.
    """
    obj = event.data_object
    if event.type.startswith("customer.subscription."):
        return normalize_stripe_id(obj.get("id"))

    subscription_id = normalize_stripe_id(obj.get("subscription"))
    if subscription_id:
        return subscription_id

    parent = obj.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return normalize_stripe_id(details.get("subscription"))
