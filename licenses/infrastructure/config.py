"""
Access to the billing and licensing settings blocks.

Both blocks are plain dictionaries in Django settings; missing keys fall
back to the defaults below.
"""
from typing import Any, Dict

from django.conf import settings


STRIPE_DEFAULTS: Dict[str, Any] = {
    "SECRET_KEY": "",
    "WEBHOOK_SECRET": "",
    "WEBHOOK_TOLERANCE_SECONDS": 300,
    "TIMEOUT_SECONDS": 10,
    "MAX_NETWORK_RETRIES": 2,
    "PRICES": {},
    "PORTAL_RETURN_URL": "http://localhost:3000/dashboard/settings",
    "CHECKOUT_SUCCESS_URL": "http://localhost:3000/success?session_id={CHECKOUT_SESSION_ID}",
    "CHECKOUT_CANCEL_URL": "http://localhost:3000/pay",
}

LICENSING_DEFAULTS: Dict[str, Any] = {
    "COOLING_PERIOD_DAYS": 14,
    "ACCOUNT_DELETION_GRACE_DAYS": 14,
    "ENFORCE_EVENT_ORDERING": True,
    "EVENT_CLAIM_LEASE_SECONDS": 300,
    "CALLER_RESOLVER": "licenses.infrastructure.caller_resolver.SignedStaffCookieResolver",
    "STAFF_COOKIE_NAME": "current_staff",
    "STAFF_COOKIE_SALT": "licenses.staff",
    "STAFF_COOKIE_MAX_AGE": 60 * 60 * 12,
}


def get_stripe_settings() -> Dict[str, Any]:
    """Return the STRIPE settings merged over defaults."""
    return {**STRIPE_DEFAULTS, **getattr(settings, "STRIPE", {})}


def get_licensing_settings() -> Dict[str, Any]:
    """Return the LICENSING settings merged over defaults."""
    return {**LICENSING_DEFAULTS, **getattr(settings, "LICENSING", {})}


