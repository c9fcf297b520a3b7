"""
Caller resolution from the staff session cookie.
"""
import logging
from typing import Optional

from django.core import signing
from django.utils.module_loading import import_string

from core.domain.exceptions import AuthenticationRequiredError
from core.domain.value_objects import CallerIdentity, Email
from licenses.infrastructure.config import get_licensing_settings
from licenses.ports.caller_resolver import CallerResolver

logger = logging.getLogger(__name__)


class SignedStaffCookieResolver(CallerResolver):
    """
    Resolves the caller from a signed ``current_staff`` cookie.

    The cookie holds ``{"id": ..., "email": ...}`` signed with
    ``django.core.signing`` so its contents cannot be forged by the client.
    """

    def __init__(
        self,
        cookie_name: Optional[str] = None,
        salt: Optional[str] = None,
        max_age: Optional[int] = None,
    ):
        config = get_licensing_settings()
        self.cookie_name = cookie_name or config["STAFF_COOKIE_NAME"]
        self.salt = salt or config["STAFF_COOKIE_SALT"]
        self.max_age = max_age if max_age is not None else config["STAFF_COOKIE_MAX_AGE"]

    def resolve_caller(self, request) -> CallerIdentity:
        """
        Resolve the caller of a request.

        Args:
            request: Incoming HTTP request

        Returns:
            CallerIdentity

        Raises:
            AuthenticationRequiredError: If the cookie is missing, tampered or expired
        """
        raw = request.COOKIES.get(self.cookie_name)
        if not raw:
            raise AuthenticationRequiredError()

        try:
            staff = signing.loads(raw, salt=self.salt, max_age=self.max_age)
        except signing.BadSignature:
            logger.warning("Rejected staff cookie with invalid signature")
            raise AuthenticationRequiredError("Unauthorized - Invalid staff session")

        if not isinstance(staff, dict):
            raise AuthenticationRequiredError("Unauthorized - Invalid staff session")

        try:
            email = Email(staff.get("email") or "")
        except ValueError:
            raise AuthenticationRequiredError("Unauthorized - Invalid staff session")

        staff_id = staff.get("id")
        return CallerIdentity(email=email, staff_id=str(staff_id) if staff_id else None)


def sign_staff_cookie(staff_id: str, email: str, salt: Optional[str] = None) -> str:
    """Produce a cookie value accepted by SignedStaffCookieResolver."""
    salt = salt or get_licensing_settings()["STAFF_COOKIE_SALT"]
    return signing.dumps({"id": staff_id, "email": email}, salt=salt)


def get_caller_resolver() -> CallerResolver:
    """Instantiate the resolver class named in LICENSING["CALLER_RESOLVER"]."""
    return import_string(get_licensing_settings()["CALLER_RESOLVER"])()
