"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions.
"""


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class AuthenticationRequiredError(DomainException):
    """Raised when the caller identity cannot be resolved."""

    def __init__(self, message: str = "Unauthorized - No staff session"):
        super().__init__(message, code="UNAUTHORIZED")


class LicenseException(DomainException):
    """Base exception for license-related errors."""

    pass


class LicenseNotFoundError(LicenseException):
    """Raised when a license is not found."""

    def __init__(self, message: str = "No license found"):
        super().__init__(message, code="LICENSE_NOT_FOUND")


class InvalidLicenseStatusError(LicenseException):
    """Raised when a license operation is invalid for the current status."""

    def __init__(self, message: str = "Invalid license status"):
        super().__init__(message, code="INVALID_LICENSE_STATUS")


class LicenseAlreadyActiveError(LicenseException):
    """Raised when a purchase is started for an email that already holds a license."""

    def __init__(self, message: str = "An active license already exists for this email"):
        super().__init__(message, code="LICENSE_ALREADY_ACTIVE")


class InvalidEmailError(LicenseException):
    """Raised when an email address cannot be used for a license."""

    def __init__(self, message: str = "Invalid email address"):
        super().__init__(message, code="INVALID_EMAIL")


class SubscriptionException(DomainException):
    """Base exception for subscription-related errors."""

    pass


class NoActiveSubscriptionError(SubscriptionException):
    """Raised when the caller has no live subscription to act on."""

    def __init__(self, message: str = "No active subscription found"):
        super().__init__(message, code="NO_ACTIVE_SUBSCRIPTION")


class NoPendingCancellationError(SubscriptionException):
    """Raised when reactivating a subscription that is not pending cancellation."""

    def __init__(self, message: str = "Subscription is not scheduled for cancellation"):
        super().__init__(message, code="NO_PENDING_CANCELLATION")


class InvalidPlanError(SubscriptionException):
    """Raised when a plan is unknown or has no configured price."""

    def __init__(self, message: str = "Invalid plan selected"):
        super().__init__(message, code="INVALID_PLAN")


class AlreadyOnPlanError(SubscriptionException):
    """Raised when the requested plan matches the live subscription price."""

    def __init__(self, message: str = "Already on this plan"):
        super().__init__(message, code="ALREADY_ON_PLAN")


class PaymentProviderError(SubscriptionException):
    """Raised when the payment provider fails or its outcome cannot be confirmed."""

    def __init__(self, message: str = "Payment provider request failed"):
        super().__init__(message, code="PAYMENT_PROVIDER_ERROR")


class WebhookException(DomainException):
    """Base exception for inbound webhook errors."""

    pass


class WebhookVerificationError(WebhookException):
    """Raised when a webhook signature cannot be verified."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, code="INVALID_SIGNATURE")


class MalformedEventError(WebhookException):
    """Raised when a verified event lacks required fields."""

    def __init__(self, message: str = "Malformed event payload"):
        super().__init__(message, code="MALFORMED_EVENT")
