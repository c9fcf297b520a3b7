"""
CreateCheckoutSessionCommand.

Command to start the purchase of a new license.
"""

from dataclasses import dataclass

from licenses.domain.classifier import DEFAULT_CHECKOUT_PLAN


@dataclass
class CreateCheckoutSessionCommand:
    """Command to open a subscription checkout for a buyer."""

    email: str
    plan: str = DEFAULT_CHECKOUT_PLAN.value
