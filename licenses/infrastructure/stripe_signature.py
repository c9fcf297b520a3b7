"""
Stripe webhook signature verification.
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from core.domain.exceptions import WebhookVerificationError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


class StripeSignatureVerifier:
    """
    Verifies the ``Stripe-Signature`` header over the raw request body.

    The body is parsed only after the signature and timestamp check pass,
    so nothing in an unverified payload is ever acted upon.
    """

    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE_SECONDS):
        """
        Initialize verifier.

        Args:
            secret: Webhook signing secret (``whsec_...``)
            tolerance: Maximum accepted age of the signed timestamp, in seconds
        """
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify a delivery and return its decoded payload.

        Args:
            raw_body: Exact bytes received
            signature_header: Value of the ``Stripe-Signature`` header

        Returns:
            Decoded JSON payload

        Raises:
            WebhookVerificationError: If the delivery cannot be trusted
        """
        if not self.secret:
            logger.error("Webhook signing secret is not configured")
            raise WebhookVerificationError("Webhook secret not configured")
        if not signature_header:
            raise WebhookVerificationError("Missing Stripe-Signature header")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise WebhookVerificationError("Webhook body is not valid UTF-8")

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature_header, self.secret, self.tolerance
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid Stripe signature: {e}")
            raise WebhookVerificationError("Invalid signature")

        try:
            return json.loads(payload)
        except ValueError:
            raise WebhookVerificationError("Invalid webhook payload")
