"""
Free trial burn-down projection.

Estimates how much of the free trial is left from the project age and
the current projected run rate. Historical spend is not queried.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .pricing import HOURS_PER_DAY, CostBreakdown


@dataclass(frozen=True)
class TrialSettings:
    """Free trial terms."""
    credit_usd: Decimal = Decimal("300")
    length_days: int = 90

    def __post_init__(self):
        """Validate trial terms are positive."""
        if self.credit_usd <= 0:
            raise ValueError("credit_usd must be > 0")
        if self.length_days <= 0:
            raise ValueError("length_days must be > 0")


DEFAULT_TRIAL_SETTINGS = TrialSettings()


@dataclass(frozen=True)
class TrialProjection:
    """Remaining trial time and credit at the current run rate."""
    days_since_creation: int
    days_remaining: int
    burn_rate_per_day: Decimal
    credit_used_estimate: Decimal
    credit_remaining_estimate: Decimal
    days_of_credit_left: Optional[Decimal]

    @property
    def hours_remaining(self) -> int:
        return self.days_remaining * int(HOURS_PER_DAY)

    @property
    def expired(self) -> bool:
        """Negative days remaining means the trial has likely ended."""
        return self.days_remaining < 0


def project_free_trial(
    days_since_creation: int,
    breakdown: CostBreakdown,
    settings: TrialSettings = DEFAULT_TRIAL_SETTINGS,
) -> TrialProjection:
    """Project the free trial burn-down.

    Credit used is approximated as the current daily run rate times the
    project age, capped at the credit ceiling. Nothing here divides by
    elapsed time.

    Args:
        days_since_creation: Whole days since the project was created
        breakdown: Current projected costs
        settings: Credit ceiling and trial length

    Returns:
        TrialProjection; days_of_credit_left is None when nothing is burning
    """
    if days_since_creation < 0:
        raise ValueError("days_since_creation cannot be negative")

    burn_rate = breakdown.total_daily
    used = min(burn_rate * days_since_creation, settings.credit_usd)
    remaining = settings.credit_usd - used
    days_of_credit_left = remaining / burn_rate if burn_rate > 0 else None

    return TrialProjection(
        days_since_creation=days_since_creation,
        days_remaining=settings.length_days - days_since_creation,
        burn_rate_per_day=burn_rate,
        credit_used_estimate=used,
        credit_remaining_estimate=remaining,
        days_of_credit_left=days_of_credit_left,
    )
