"""
Pricing calculations and currency conversion.

Maps resource counts to estimated monthly USD costs and derives
daily and hourly run rates.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from gcp_cost_report.inventory.models import Disk, ExchangeRate

# Fixed calendar-month approximation, not calendar-aware
DAYS_PER_MONTH = Decimal("30")
HOURS_PER_DAY = Decimal("24")

_CENT = Decimal("0.01")

Number = Union[Decimal, float, int, str]


@dataclass(frozen=True)
class PriceTable:
    """Unit prices in USD. Instance sizes are not differentiated."""
    compute_node_month: Decimal = Decimal("24.50")
    disk_gb_month: Decimal = Decimal("0.040")
    forwarding_rule_month: Decimal = Decimal("18.00")
    default_disk_size_gb: int = 10

    def __post_init__(self):
        """Validate prices are non-negative."""
        if self.compute_node_month < 0:
            raise ValueError("compute_node_month cannot be negative")
        if self.disk_gb_month < 0:
            raise ValueError("disk_gb_month cannot be negative")
        if self.forwarding_rule_month < 0:
            raise ValueError("forwarding_rule_month cannot be negative")
        if self.default_disk_size_gb <= 0:
            raise ValueError("default_disk_size_gb must be > 0")


DEFAULT_PRICE_TABLE = PriceTable()


@dataclass(frozen=True)
class CostBreakdown:
    """Projected run-rate costs. All amounts are unrounded USD."""
    compute_monthly: Decimal
    disk_monthly: Decimal
    lb_monthly: Decimal

    @property
    def total_monthly(self) -> Decimal:
        return self.compute_monthly + self.disk_monthly + self.lb_monthly

    @property
    def total_daily(self) -> Decimal:
        return self.total_monthly / DAYS_PER_MONTH

    @property
    def total_hourly(self) -> Decimal:
        return self.total_monthly / (DAYS_PER_MONTH * HOURS_PER_DAY)

    def as_dict(self) -> dict:
        return {
            "compute_monthly": self.compute_monthly,
            "disk_monthly": self.disk_monthly,
            "lb_monthly": self.lb_monthly,
            "total_monthly": self.total_monthly,
            "total_daily": self.total_daily,
            "total_hourly": self.total_hourly,
        }

    def converted(self, rate: ExchangeRate) -> dict:
        """Every figure converted independently to the target currency."""
        return {name: convert(amount, rate) for name, amount in self.as_dict().items()}


def compute_monthly(instance_count: int, table: PriceTable = DEFAULT_PRICE_TABLE) -> Decimal:
    """Monthly compute cost: one flat rate per instance, no rounding."""
    if instance_count < 0:
        raise ValueError("instance_count cannot be negative")
    return instance_count * table.compute_node_month


def total_disk_gb(disks: Iterable[Disk], table: PriceTable = DEFAULT_PRICE_TABLE) -> int:
    """Sum disk sizes, assuming the default size where one is unknown."""
    return sum(
        disk.size_gb if disk.size_gb is not None else table.default_disk_size_gb
        for disk in disks
    )


def disk_monthly(disks: Iterable[Disk], table: PriceTable = DEFAULT_PRICE_TABLE) -> Decimal:
    """Monthly persistent disk cost by provisioned size."""
    return total_disk_gb(disks, table) * table.disk_gb_month


def lb_monthly(forwarding_rule_count: int, table: PriceTable = DEFAULT_PRICE_TABLE) -> Decimal:
    """Monthly load balancer cost, one rate per forwarding rule."""
    if forwarding_rule_count < 0:
        raise ValueError("forwarding_rule_count cannot be negative")
    return forwarding_rule_count * table.forwarding_rule_month


def calculate_cost_breakdown(
    instance_count: int,
    disks: Iterable[Disk],
    forwarding_rule_count: int,
    table: PriceTable = DEFAULT_PRICE_TABLE,
) -> CostBreakdown:
    """Project monthly costs from current resource counts.

    Storage buckets and network egress are not priced.

    Args:
        instance_count: Number of Compute Engine instances
        disks: Persistent disks, sizes used where known
        forwarding_rule_count: Number of forwarding rules
        table: Unit prices

    Returns:
        CostBreakdown in USD
    """
    return CostBreakdown(
        compute_monthly=compute_monthly(instance_count, table),
        disk_monthly=disk_monthly(disks, table),
        lb_monthly=lb_monthly(forwarding_rule_count, table),
    )


def convert(amount_usd: Number, rate: Union[ExchangeRate, Number]) -> Decimal:
    """Convert a USD amount and round to cents (half up).

    Rounding happens here, at presentation time, so converted totals can
    differ by 0.01 from the sum of converted components.
    """
    factor = rate.usd_to_target if isinstance(rate, ExchangeRate) else rate
    amount = Decimal(str(amount_usd)) * Decimal(str(factor))
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def round_usd(amount: Number) -> Decimal:
    return Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
