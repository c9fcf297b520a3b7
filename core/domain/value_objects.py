"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects.

    Value objects are immutable and compared by value.
    """

    def __eq__(self, other):
        """Compare value objects by their attributes."""
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    def __hash__(self):
        """Make value objects hashable."""
        return hash(tuple(sorted(self.__dict__.items())))


@dataclass(frozen=True)
class Email(ValueObject):
    """Email value object with validation."""

    value: str

    def __post_init__(self):
        """Validate and normalize email format."""
        if not self.value or "@" not in self.value:
            raise ValueError(f"Invalid email address: {self.value}")
        object.__setattr__(self, "value", self.value.strip().lower())

    def __str__(self) -> str:
        """Return email as string."""
        return self.value


class LicenseStatus(Enum):
    """License status value object."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    INACTIVE = "inactive"
    DELETION_SCHEDULED = "deletion_scheduled"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Subscription fully ended by the provider."""
        return self is LicenseStatus.CANCELLED


class PlanType(Enum):
    """Billing plan of a license."""

    MONTHLY = "monthly"
    ANNUAL = "annual"

    def __str__(self) -> str:
        """Return plan as string."""
        return self.value

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlanType":
        """
        Parse a plan name.

        Args:
            value: Plan name ("monthly" or "annual")

        Returns:
            PlanType member

        Raises:
            ValueError: If the plan name is unknown
        """
        normalized = (value or "").strip().lower()
        for plan in cls:
            if plan.value == normalized:
                return plan
        raise ValueError(f"Unknown plan: {value}")


class CancellationMode(Enum):
    """How a subscription cancellation takes effect."""

    IMMEDIATE = "immediate"
    PERIOD_END = "period_end"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CallerIdentity(ValueObject):
    """Identity of the staff member invoking a command."""

    email: Email
    staff_id: Optional[str] = None

    def __str__(self) -> str:
        return str(self.email)
