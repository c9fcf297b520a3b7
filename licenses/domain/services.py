"""
License domain services.

Domain services contain business logic that doesn't naturally
fit within a single entity. Everything here is pure: the current
time is always passed in.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Tuple

from dateutil.relativedelta import relativedelta

from core.domain.exceptions import InvalidPlanError
from core.domain.value_objects import CancellationMode, PlanType

DEFAULT_COOLING_PERIOD_DAYS = 14
DEFAULT_DELETION_GRACE_DAYS = 14

_PLAN_INTERVALS = {
    PlanType.MONTHLY: relativedelta(months=1),
    PlanType.ANNUAL: relativedelta(years=1),
}


def calculate_expiry(plan_type: PlanType, start: datetime) -> datetime:
    """
    Compute the expiration of a billing interval starting at ``start``.

    Calendar arithmetic is used, so Jan 31 + 1 month is Feb 28/29.

    Args:
        plan_type: Monthly or annual plan
        start: Interval start (normally "now")

    Returns:
        Expiration datetime
    """
    return start + _PLAN_INTERVALS[plan_type]


def resolve_plan_price(plan_name: str, prices: Dict[str, str]) -> Tuple[PlanType, str]:
    """
    Resolve a plan name to its plan and configured provider price.

    Args:
        plan_name: Requested plan ("monthly" or "annual")
        prices: Provider price id per plan name

    Returns:
        (PlanType, price id)

    Raises:
        InvalidPlanError: If the plan is unknown or has no price
    """
    try:
        plan = PlanType.parse(plan_name)
    except ValueError:
        raise InvalidPlanError()
    price_id = prices.get(plan.value)
    if not price_id:
        raise InvalidPlanError(f"No price configured for plan '{plan.value}'")
    return plan, price_id


def calculate_deletion_date(
    now: datetime, grace_days: int = DEFAULT_DELETION_GRACE_DAYS
) -> datetime:
    """Return the moment a scheduled account deletion takes effect."""
    return now + timedelta(days=grace_days)


@dataclass(frozen=True)
class CoolingPeriodDecision:
    """Outcome of the cooling-period evaluation for a cancellation."""

    days_since_creation: int
    cooling_period_days: int
    mode: CancellationMode

    @property
    def within_cooling_period(self) -> bool:
        """True when cancellation is immediate and refundable."""
        return self.mode is CancellationMode.IMMEDIATE


def days_since(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed between two instants, floored."""
    return math.floor((now - created_at) / timedelta(days=1))


def evaluate_cooling_period(
    created_at: datetime,
    now: datetime,
    cooling_period_days: int = DEFAULT_COOLING_PERIOD_DAYS,
) -> CoolingPeriodDecision:
    """
    Decide how a cancellation takes effect.

    A subscription created ``cooling_period_days`` or fewer whole days ago
    is cancelled immediately and refunded. Older subscriptions are cancelled
    at the end of the current billing period without refund.

    Args:
        created_at: Subscription creation time (provider clock)
        now: Current time
        cooling_period_days: Length of the cooling window

    Returns:
        CoolingPeriodDecision
    """
    elapsed = days_since(created_at, now)
    mode = (
        CancellationMode.IMMEDIATE
        if elapsed <= cooling_period_days
        else CancellationMode.PERIOD_END
    )
    return CoolingPeriodDecision(
        days_since_creation=elapsed,
        cooling_period_days=cooling_period_days,
        mode=mode,
    )


def cooling_days_left(
    created_at: datetime,
    now: datetime,
    cooling_period_days: int = DEFAULT_COOLING_PERIOD_DAYS,
) -> int:
    """Days remaining in the cooling window, never negative."""
    return max(0, cooling_period_days - days_since(created_at, now))
