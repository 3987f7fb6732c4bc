# ==============================================================================
# staffscore/calculator/achievements.py
# ------------------------------------------------------------------------------
# Achievement (badge) rule evaluation. Each criteria type is one member of a
# closed enum with exactly one predicate and one metadata builder.
# ==============================================================================

import logging
from dataclasses import dataclass, field
from enum import Enum

from . import ConfigurationError

logger = logging.getLogger(__name__)


class CriteriaType(str, Enum):
    SALES_COUNT = 'sales_count'
    SALES_TOTAL = 'sales_total'
    STREAK_DAYS = 'streak_days'
    RANK = 'rank'
    NO_RETURNS = 'no_returns'
    AVG_CHECK_GROWTH = 'avg_check_growth'
    PERSONAL_BEST_DAY = 'personal_best_day'
    COMEBACK = 'comeback'


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    criteria_type: CriteriaType
    criteria_value: float = 0
    is_active: bool = True
    name: str = ''
    icon: str = ''

    @classmethod
    def from_row(cls, row):
        """Builds a definition from an `Achievement` model row, rejecting unknown criteria."""
        try:
            criteria_type = CriteriaType(row.criteria_type)
        except ValueError:
            logger.error(f"Achievement '{row.code}' has unknown criteria type '{row.criteria_type}'.")
            raise ConfigurationError(
                f"Unknown criteria type '{row.criteria_type}' for achievement '{row.code}'"
            )
        return cls(
            code=row.code,
            criteria_type=criteria_type,
            criteria_value=row.criteria_value or 0,
            is_active=bool(row.is_active),
            name=row.name or '',
            icon=row.icon or '',
        )


@dataclass(frozen=True)
class EarnedAchievement:
    code: str
    earned_at: object
    metadata: dict = field(default_factory=dict)

    def to_dict(self):
        earned_at = self.earned_at.isoformat() if hasattr(self.earned_at, 'isoformat') else self.earned_at
        return {'code': self.code, 'earned_at': earned_at, 'metadata': dict(self.metadata)}


# --- Predicates ---

def _in_top(rank, n):
    return 0 < rank <= n


def _avg_check_growth(stats):
    """Percent growth of the average ticket vs the prior period, or None."""
    if not stats.prev_avg_check:
        return None
    return (stats.avg_check - stats.prev_avg_check) / stats.prev_avg_check * 100


def _check_sales_count(stats, value):
    return stats.sales_count >= value


def _check_sales_total(stats, value):
    return stats.gross_sales >= value


def _check_streak_days(stats, value):
    return stats.streak.current_streak >= value or stats.streak.max_streak >= value


def _check_rank(stats, value):
    return _in_top(stats.rank, value)


def _check_no_returns(stats, value):
    # The minimum volume keeps "zero returns with zero sales" from qualifying.
    return stats.returns_count == 0 and stats.sales_count >= value


def _check_avg_check_growth(stats, value):
    growth = _avg_check_growth(stats)
    return growth is not None and growth >= value


def _check_personal_best_day(stats, value):
    if stats.best_day_sales <= 0:
        return False
    if not stats.personal_best_day:
        return True
    return stats.best_day_sales > stats.personal_best_day


def _check_comeback(stats, value):
    was_out_of_top = stats.prev_rank is None or not _in_top(stats.prev_rank, value)
    return was_out_of_top and _in_top(stats.rank, value)


# --- Metadata ---

def _metadata_sales_count(stats):
    return {'sales_count': stats.sales_count}


def _metadata_sales_total(stats):
    return {'actual_sales': stats.gross_sales}


def _metadata_streak_days(stats):
    return {'current_streak': stats.streak.current_streak, 'max_streak': stats.streak.max_streak}


def _metadata_rank(stats):
    return {'rank': stats.rank}


def _metadata_no_returns(stats):
    return {'sales_count': stats.sales_count, 'returns_count': stats.returns_count}


def _metadata_avg_check_growth(stats):
    growth = _avg_check_growth(stats) or 0
    return {
        'current_avg_check': round(stats.avg_check),
        'prev_avg_check': round(stats.prev_avg_check) if stats.prev_avg_check else None,
        'growth_percent': round(growth, 1),
    }


def _metadata_personal_best_day(stats):
    return {'new_record': stats.best_day_sales, 'previous_record': stats.personal_best_day}


def _metadata_comeback(stats):
    return {'prev_rank': stats.prev_rank, 'current_rank': stats.rank}


RULES = {
    CriteriaType.SALES_COUNT: (_check_sales_count, _metadata_sales_count),
    CriteriaType.SALES_TOTAL: (_check_sales_total, _metadata_sales_total),
    CriteriaType.STREAK_DAYS: (_check_streak_days, _metadata_streak_days),
    CriteriaType.RANK: (_check_rank, _metadata_rank),
    CriteriaType.NO_RETURNS: (_check_no_returns, _metadata_no_returns),
    CriteriaType.AVG_CHECK_GROWTH: (_check_avg_check_growth, _metadata_avg_check_growth),
    CriteriaType.PERSONAL_BEST_DAY: (_check_personal_best_day, _metadata_personal_best_day),
    CriteriaType.COMEBACK: (_check_comeback, _metadata_comeback),
}

_missing = set(CriteriaType) - set(RULES)
if _missing:
    raise ConfigurationError(f"No rule registered for criteria types: {sorted(m.value for m in _missing)}")


def check_achievements(stats, catalog, already_earned, earned_at):
    """
    Determines which achievements the employee newly earns this period.

    Args:
        stats (EmployeePeriodStats): Snapshot including rank and streak.
        catalog (Iterable[AchievementDefinition]): All known achievements.
        already_earned (Iterable[str]): Codes already earned for this period.
        earned_at (datetime): Timestamp stamped on every new result.

    Returns:
        list[EarnedAchievement]: In catalog order; never contains a code from
        `already_earned`, so re-running a period is idempotent.
    """
    already_earned = set(already_earned)
    earned = []
    for definition in catalog:
        if not definition.is_active or definition.code in already_earned:
            continue
        predicate, build_metadata = RULES[definition.criteria_type]
        if not predicate(stats, definition.criteria_value):
            continue
        earned.append(EarnedAchievement(
            code=definition.code,
            earned_at=earned_at,
            metadata=build_metadata(stats),
        ))
        # Duplicate codes within one catalog are only awarded once.
        already_earned.add(definition.code)

    if earned:
        logger.debug(f"Employee {stats.employee_id} earned: {[e.code for e in earned]}")
    return earned
