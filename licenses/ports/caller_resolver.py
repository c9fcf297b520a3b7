"""
Caller resolver port (interface).

Resolves the staff identity behind a command request.
"""
from abc import ABC, abstractmethod

from core.domain.value_objects import CallerIdentity


class CallerResolver(ABC):
    """Abstract resolver from an HTTP request to a caller identity."""

    @abstractmethod
    def resolve_caller(self, request) -> CallerIdentity:
        """
        Resolve the caller of a request.

        Args:
            request: Incoming HTTP request

        Returns:
            CallerIdentity

        Raises:
            AuthenticationRequiredError: If no identity can be resolved
        """
        pass
