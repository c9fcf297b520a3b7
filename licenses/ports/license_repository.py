"""
License repository port (interface).

This defines the contract for license persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from licenses.domain.license import License

# Receives the current row (or None) under lock and returns the new state,
# or None to leave the row untouched.
LicenseMutation = Callable[[Optional[License]], Optional[License]]


class LicenseRepository(ABC):
    """
    Abstract repository for License entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[License]:
        """
        Find the license of a tenant.

        Args:
            email: Tenant email (case-insensitive)

        Returns:
            License entity or None if not found
        """
        pass

    @abstractmethod
    async def find_by_subscription_id(self, subscription_id: str) -> Optional[License]:
        """
        Find the license linked to a provider subscription.

        Args:
            subscription_id: Provider subscription id

        Returns:
            License entity or None if not found
        """
        pass

    @abstractmethod
    async def update_with_lock(
        self,
        mutation: LicenseMutation,
        email: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> Optional[License]:
        """
        Apply a mutation to one license under a row-level lock.

        Exactly one of ``email`` and ``subscription_id`` selects the row.
        The mutation runs while the lock is held, so concurrent writers to
        the same license are serialized.

        Args:
            mutation: Function from the locked license (or None) to its new state
            email: Tenant email
            subscription_id: Provider subscription id

        Returns:
            The persisted license, or None when the mutation declined to write
        """
        pass
