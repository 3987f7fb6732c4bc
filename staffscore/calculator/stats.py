# ==============================================================================
# staffscore/calculator/stats.py
# ------------------------------------------------------------------------------
# Per-employee, per-period snapshot every engine component reads from.
# Built fresh for each evaluation and never persisted as-is.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional

from .streak import StreakResult


@dataclass
class EmployeePeriodStats:
    employee_id: str
    gross_sales: float = 0
    returns_total: float = 0
    sales_count: int = 0
    returns_count: int = 0
    activity_dates: tuple = ()
    daily_totals: dict = field(default_factory=dict)

    # Filled in once the whole period has been ranked / streaks computed.
    rank: int = 0
    streak: StreakResult = field(default_factory=StreakResult)

    # Prior-period figures used by the achievement rules.
    prev_avg_check: Optional[float] = None
    prev_rank: Optional[int] = None
    personal_best_day: Optional[float] = None

    @property
    def net_sales(self):
        return self.gross_sales - self.returns_total

    @property
    def avg_check(self):
        if self.sales_count == 0:
            return 0
        return self.gross_sales / self.sales_count

    @property
    def best_day_sales(self):
        return max(self.daily_totals.values(), default=0)

    @property
    def shift_count(self):
        return len(self.activity_dates)

    @property
    def return_rate(self):
        """Returns as a percentage of sales transactions."""
        if self.sales_count == 0:
            return 0
        return self.returns_count / self.sales_count * 100
