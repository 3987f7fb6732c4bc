# ==============================================================================
# staffscore/calculator/commission.py
# ------------------------------------------------------------------------------
# Progressive (cumulative) commission calculator. Each band pays its own
# percentage on the slice of net sales that falls inside it.
# ==============================================================================

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierBand:
    """One band of a tier schedule. `percentage` is a percent (5 == 5%)."""
    min_sales: float
    max_sales: float
    percentage: float
    label: str
    icon: str = ''

    @property
    def width(self):
        return self.max_sales - self.min_sales

    @property
    def full_bonus(self):
        return self.width * (self.percentage / 100)


@dataclass(frozen=True)
class CompensationRole:
    code: str
    name: str
    base_salary: float
    tiers: tuple
    max_monthly_sales: Optional[float] = None


@dataclass
class BreakdownItem:
    tier_index: int
    band: TierBand
    sales_in_tier: float
    bonus_amount: float
    is_current_tier: bool = False
    is_completed: bool = False

    def to_dict(self):
        return {
            'tier_index': self.tier_index,
            'label': self.band.label,
            'icon': self.band.icon,
            'min_sales': self.band.min_sales,
            'max_sales': self.band.max_sales,
            'percentage': self.band.percentage,
            'sales_in_tier': self.sales_in_tier,
            'bonus_amount': self.bonus_amount,
            'is_current_tier': self.is_current_tier,
            'is_completed': self.is_completed,
        }


@dataclass
class CommissionResult:
    net_sales: float
    base_salary: float
    breakdown: List[BreakdownItem] = field(default_factory=list)
    current_tier_index: int = 0
    next_tier: Optional[TierBand] = None
    sales_until_next_tier: float = 0
    salary_at_next_tier: float = 0
    bonus_at_next_tier: float = 0

    # Summary fields are folded from the breakdown, never stored separately.
    @property
    def total_bonus(self):
        return sum(item.bonus_amount for item in self.breakdown)

    @property
    def total_salary(self):
        return self.base_salary + self.total_bonus

    @property
    def current_tier(self):
        return self.breakdown[self.current_tier_index].band

    @property
    def payroll_percentage(self):
        """Total salary as a percentage of net sales (0 with no sales)."""
        if self.net_sales <= 0:
            return 0
        return self.total_salary / self.net_sales * 100

    def to_dict(self):
        return {
            'net_sales': self.net_sales,
            'base_salary': self.base_salary,
            'total_bonus': self.total_bonus,
            'total_salary': self.total_salary,
            'payroll_percentage': self.payroll_percentage,
            'breakdown': [item.to_dict() for item in self.breakdown],
            'current_tier_index': self.current_tier_index,
            'current_tier': self.current_tier.label,
            'next_tier': self.next_tier.label if self.next_tier else None,
            'sales_until_next_tier': self.sales_until_next_tier,
            'salary_at_next_tier': self.salary_at_next_tier,
            'bonus_at_next_tier': self.bonus_at_next_tier,
        }


def _current_tier_index(net_sales, schedule):
    # First band that is not yet completed; the top band once all are.
    for index, band in enumerate(schedule):
        if net_sales < band.max_sales:
            return index
    return len(schedule) - 1


def calculate_salary(net_sales, schedule, base_salary=0):
    """
    Calculates pay on a progressive tier schedule.

    Args:
        net_sales (float): Cumulative net sales for the period, >= 0.
        schedule (Sequence[TierBand]): Validated, contiguous bands in ascending order.
        base_salary (float): Fixed part of the pay.

    Returns:
        CommissionResult: Breakdown per band plus next-tier projection.
    """
    net_sales = max(0, net_sales)
    current_index = _current_tier_index(net_sales, schedule)

    breakdown = []
    for index, band in enumerate(schedule):
        sales_in_tier = min(max(net_sales, band.min_sales), band.max_sales) - band.min_sales
        breakdown.append(BreakdownItem(
            tier_index=index,
            band=band,
            sales_in_tier=sales_in_tier,
            bonus_amount=sales_in_tier * (band.percentage / 100),
            is_current_tier=index == current_index,
            is_completed=net_sales >= band.max_sales,
        ))

    result = CommissionResult(
        net_sales=net_sales,
        base_salary=base_salary,
        breakdown=breakdown,
        current_tier_index=current_index,
    )

    if current_index < len(schedule) - 1:
        next_tier = schedule[current_index + 1]
        result.next_tier = next_tier
        result.sales_until_next_tier = max(0, next_tier.min_sales - net_sales)
        # Reaching the next floor means every band up to the current one is full.
        next_tier_bonus = sum(band.full_bonus for band in schedule[:current_index + 1])
        result.salary_at_next_tier = base_salary + next_tier_bonus
        result.bonus_at_next_tier = result.salary_at_next_tier - result.total_salary

    logger.debug(
        f"Salary for net sales {net_sales:,.0f}: tier {current_index} "
        f"({schedule[current_index].label}), bonus {result.total_bonus:,.0f}, "
        f"total {result.total_salary:,.0f}"
    )
    return result


def calculate_role_salary(net_sales, role):
    """Shortcut for `calculate_salary` using a role's own schedule and base pay."""
    return calculate_salary(net_sales, role.tiers, role.base_salary)


# --- Presentation helpers ---

def format_money(amount, currency='₸'):
    """Formats an amount with space thousands separators, e.g. "1 234 567 ₸"."""
    if amount is None:
        return f"0 {currency}"
    try:
        value = int(round(float(amount)))
    except (ValueError, TypeError):
        return f"0 {currency}"
    return "{:,}".format(value).replace(',', ' ') + f" {currency}"


def format_money_short(amount):
    """Short form used in motivation texts: 1.5M, 250k, 900."""
    if amount is None:
        return '0'
    if amount >= 1_000_000:
        text = f"{amount / 1_000_000:.1f}"
        if text.endswith('.0'):
            text = text[:-2]
        return f"{text}M"
    if amount >= 1000:
        return f"{amount / 1000:.0f}k"
    return f"{amount:.0f}"


def motivation_message(result):
    """One-line nudge towards the next band."""
    if result.next_tier is None:
        return f"Top level \"{result.current_tier.label}\" reached. Legendary!"
    return (
        f"{format_money_short(result.sales_until_next_tier)} more to reach "
        f"\"{result.next_tier.label}\" and earn +{format_money(result.bonus_at_next_tier)}"
    )
