# ==============================================================================
# staffscore/calculator/ranking.py
# ------------------------------------------------------------------------------
# Period leaderboard: rank assignment, comparison with the prior period, and
# the year-month period helpers shared by the rest of the engine.
# ==============================================================================

import re
from dataclasses import dataclass
from datetime import date, timedelta
from operator import attrgetter
from typing import Optional

PERIOD_PATTERN = re.compile(r'([0-9]{4})-([0-9]{2})')


@dataclass
class RankingEntry:
    employee_id: str
    rank: int
    net_sales: float
    gross_sales: float
    returns: float
    sales_count: int
    returns_count: int
    avg_check: float
    best_day_sales: float
    previous_rank: Optional[int] = None
    position_change: int = 0
    is_new: bool = True
    is_challenger: bool = False
    challenger_rank: Optional[int] = None

    def to_dict(self):
        return {
            'employee_id': self.employee_id,
            'rank': self.rank,
            'net_sales': self.net_sales,
            'gross_sales': self.gross_sales,
            'returns': self.returns,
            'sales_count': self.sales_count,
            'returns_count': self.returns_count,
            'avg_check': self.avg_check,
            'best_day_sales': self.best_day_sales,
            'previous_rank': self.previous_rank,
            'position_change': self.position_change,
            'is_new': self.is_new,
            'is_challenger': self.is_challenger,
            'challenger_rank': self.challenger_rank,
        }


def rank_employees(stats_list, previous_ranks=None, key=attrgetter('net_sales'), challenger_positions=3):
    """
    Builds the ranked leaderboard for one period.

    Employees are sorted by `key` descending. Python's sort is stable, so ties
    keep their incoming order; callers hand in a deterministic order.

    Args:
        stats_list (Iterable[EmployeePeriodStats]): One snapshot per employee.
        previous_ranks (dict): employee_id -> rank in the prior period.
        key (callable): Sort value; net sales unless ranking by power.
        challenger_positions (int): How many top positions are flagged.

    Returns:
        list[RankingEntry]: rank == index + 1.
    """
    previous_ranks = previous_ranks or {}
    ordered = sorted(stats_list, key=key, reverse=True)

    entries = []
    for index, stats in enumerate(ordered):
        rank = index + 1
        previous_rank = previous_ranks.get(stats.employee_id)
        entry = RankingEntry(
            employee_id=stats.employee_id,
            rank=rank,
            net_sales=stats.net_sales,
            gross_sales=stats.gross_sales,
            returns=stats.returns_total,
            sales_count=stats.sales_count,
            returns_count=stats.returns_count,
            avg_check=stats.avg_check,
            best_day_sales=stats.best_day_sales,
            previous_rank=previous_rank,
            is_challenger=rank <= challenger_positions,
            challenger_rank=rank if rank <= challenger_positions else None,
        )
        if previous_rank is not None:
            entry.position_change = previous_rank - rank
            entry.is_new = False
        entries.append(entry)
    return entries


def rank_map(entries):
    """employee_id -> rank for a list of ranking entries."""
    return {entry.employee_id: entry.rank for entry in entries}


# --- Period helpers ---

def parse_period(period):
    """'YYYY-MM' -> (year, month); raises ValueError on anything else."""
    match = PERIOD_PATTERN.fullmatch(str(period))
    if match is None or not 1 <= int(match.group(2)) <= 12:
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def previous_period(period):
    year, month = parse_period(period)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year}-{month - 1:02d}"


def period_bounds(period):
    """First day of the period and first day of the next one (exclusive end)."""
    year, month = parse_period(period)
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def streak_reference_date(period, today):
    """The last day of the period, or `today` while the period is still running."""
    _, end = period_bounds(period)
    last_day = end - timedelta(days=1)
    return min(last_day, today)
