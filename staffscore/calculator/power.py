# ==============================================================================
# staffscore/calculator/power.py
# ------------------------------------------------------------------------------
# "Power rating": a unitless gamification score shown on the public board in
# place of currency amounts, and the level ladder it maps onto.
# ==============================================================================

import math
from dataclasses import dataclass, asdict
from typing import Optional


POWER_DEFAULTS = {
    # netSales / divisor = base power
    'base_divisor': 10000,
    # Flat bonus for zero returns, only with a minimum number of sales
    'no_returns_bonus': 10,
    'no_returns_min_sales': 10,
    # Per whole 10% the average ticket is above the department's
    'avg_check_bonus_per_ten_percent': 5,
}


@dataclass(frozen=True)
class PowerLevel:
    level: int
    name: str
    min_power: int
    icon: str = ''
    color: str = 'gray'


@dataclass(frozen=True)
class PowerInput:
    net_sales: float
    sales_count: int
    returns_count: int
    avg_check: float
    department_avg_check: Optional[float] = None
    streak: int = 0


@dataclass(frozen=True)
class LevelInfo:
    level: int
    level_name: str
    level_icon: str
    level_color: str
    progress_percent: int
    next_level_threshold: Optional[int]
    power_to_next_level: int


@dataclass(frozen=True)
class PowerRating:
    base_power: int
    quality_bonus: int
    streak_bonus: int
    challenge_bonus: int
    level: LevelInfo

    @property
    def total_power(self):
        return self.base_power + self.quality_bonus + self.streak_bonus + self.challenge_bonus

    def to_dict(self):
        data = {
            'base_power': self.base_power,
            'quality_bonus': self.quality_bonus,
            'streak_bonus': self.streak_bonus,
            'challenge_bonus': self.challenge_bonus,
            'total_power': self.total_power,
        }
        data.update(asdict(self.level))
        return data


def level_from_power(power, ladder):
    """
    Resolves the ladder level for a power value.

    Scans from the highest threshold down; the first level whose threshold is
    <= power wins. Progress is the share of the way to the next threshold,
    100 at the top level.
    """
    for index in range(len(ladder) - 1, -1, -1):
        level = ladder[index]
        if power < level.min_power:
            continue
        next_level = ladder[index + 1] if index + 1 < len(ladder) else None
        progress = 100
        to_next = 0
        if next_level is not None:
            span = next_level.min_power - level.min_power
            progress = min(100, max(0, (power - level.min_power) / span * 100))
            to_next = max(0, next_level.min_power - power)
        return LevelInfo(
            level=level.level,
            level_name=level.name,
            level_icon=level.icon,
            level_color=level.color,
            progress_percent=round(progress),
            next_level_threshold=next_level.min_power if next_level else None,
            power_to_next_level=to_next,
        )

    # Only reachable with a ladder whose first threshold is above zero.
    lowest = ladder[0]
    return LevelInfo(
        level=lowest.level,
        level_name=lowest.name,
        level_icon=lowest.icon,
        level_color=lowest.color,
        progress_percent=0,
        next_level_threshold=lowest.min_power,
        power_to_next_level=max(0, lowest.min_power - power),
    )


def _quality_bonus(power_input, config):
    bonus = 0
    if power_input.returns_count == 0 and power_input.sales_count >= config['no_returns_min_sales']:
        bonus += config['no_returns_bonus']

    department_avg = power_input.department_avg_check
    if department_avg and power_input.avg_check > department_avg:
        percent_above = (power_input.avg_check - department_avg) / department_avg * 100
        bonus += math.floor(percent_above / 10) * config['avg_check_bonus_per_ten_percent']
    return bonus


def calculate_power_rating(power_input, ladder, config=None):
    """
    Computes the power rating and resolves its level.

    Args:
        power_input (PowerInput): Net sales, counts, tickets and streak.
        ladder (Sequence[PowerLevel]): Validated level ladder.
        config (dict): Overrides for POWER_DEFAULTS.

    Returns:
        PowerRating
    """
    settings = dict(POWER_DEFAULTS)
    settings.update(config or {})

    base_power = math.floor(max(0, power_input.net_sales) / settings['base_divisor'])
    quality_bonus = _quality_bonus(power_input, settings)
    # Streak and challenge bonuses are kept in the shape but not awarded yet.
    streak_bonus = 0
    challenge_bonus = 0

    total = base_power + quality_bonus + streak_bonus + challenge_bonus
    return PowerRating(
        base_power=base_power,
        quality_bonus=quality_bonus,
        streak_bonus=streak_bonus,
        challenge_bonus=challenge_bonus,
        level=level_from_power(total, ladder),
    )


def format_power(value):
    if value >= 1000:
        return f"{value / 1000:.1f}K"
    return str(value)
