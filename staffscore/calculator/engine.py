# ==============================================================================
# staffscore/calculator/engine.py
# ------------------------------------------------------------------------------
# Business settings loader and the period orchestrator that ties commission,
# streak, power, achievements and ranking together.
# ==============================================================================

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List

from flask import current_app

from staffscore.models import AppSetting

from .achievements import check_achievements
from .commission import calculate_salary
from .power import POWER_DEFAULTS, PowerInput, calculate_power_rating
from .ranking import rank_employees, rank_map, streak_reference_date
from .streak import calculate_streak

# --- Configuration Loader Class ---

class EngineConfig:
    """
    A singleton class to load and hold the tunable business rules from the database.
    This ensures the settings table is queried only once per application lifecycle.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            logging.info("Creating and loading EngineConfig instance...")
            instance = super(EngineConfig, cls).__new__(cls)
            try:
                instance.load_settings()
                logging.info("EngineConfig loaded successfully.")
            except Exception as e:
                logging.error(f"FATAL: Could not load settings from database. Engine cannot run. Error: {e}", exc_info=True)
                raise
            cls._instance = instance
        return cls._instance

    @classmethod
    def reset(cls):
        """Drops the cached instance so the next access reloads the settings."""
        cls._instance = None

    def load_settings(self):
        """Loads all settings from the AppSetting table into attributes."""
        settings_dict = {s.key: s.get_value() for s in AppSetting.query.all()}

        self.POWER_CONFIG = {
            'base_divisor': settings_dict.get('POWER_BASE_DIVISOR', POWER_DEFAULTS['base_divisor']),
            'no_returns_bonus': settings_dict.get('POWER_NO_RETURNS_BONUS', POWER_DEFAULTS['no_returns_bonus']),
            'no_returns_min_sales': settings_dict.get('POWER_NO_RETURNS_MIN_SALES', POWER_DEFAULTS['no_returns_min_sales']),
            'avg_check_bonus_per_ten_percent': settings_dict.get(
                'POWER_AVG_CHECK_BONUS_PER_TEN_PERCENT', POWER_DEFAULTS['avg_check_bonus_per_ten_percent']),
        }
        self.DEPARTMENT_ROLES = settings_dict.get('DEPARTMENT_ROLES', {'almaty': 'seller', 'astana': 'seller'})
        self.CHALLENGER_POSITIONS = settings_dict.get(
            'CHALLENGER_POSITIONS', current_app.config.get('CHALLENGER_POSITIONS', 3))

    def role_for_department(self, department):
        return self.DEPARTMENT_ROLES.get(department)


# --- Period Orchestrator ---

@dataclass
class EmployeeEvaluation:
    stats: object
    commission: object
    power: object
    new_achievements: list = field(default_factory=list)

    def to_dict(self, include_money=True):
        data = {
            'employee_id': self.stats.employee_id,
            'rank': self.stats.rank,
            'sales_count': self.stats.sales_count,
            'returns_count': self.stats.returns_count,
            'shift_count': self.stats.shift_count,
            'streak': self.stats.streak.to_dict(),
            'power': self.power.to_dict(),
            'new_achievements': [a.to_dict() for a in self.new_achievements],
        }
        if include_money:
            data.update({
                'gross_sales': self.stats.gross_sales,
                'returns': self.stats.returns_total,
                'net_sales': self.stats.net_sales,
                'avg_check': self.stats.avg_check,
                'return_rate': self.stats.return_rate,
                'salary': self.commission.to_dict(),
            })
        return data


@dataclass
class PeriodEvaluation:
    period: str
    reference_date: date
    rankings: List[object]
    power_rankings: List[object]
    employees: Dict[str, EmployeeEvaluation]

    @property
    def new_achievement_count(self):
        return sum(len(e.new_achievements) for e in self.employees.values())


def evaluate_period(period, stats_list, role, ladder, catalog, today, evaluated_at,
                    previous_rankings=None, personal_bests=None, earned_codes=None,
                    department_avg_check=0, power_config=None, challenger_positions=3):
    """
    Runs every engine component over one period's employee snapshots.

    Args:
        period (str): 'YYYY-MM'.
        stats_list (list[EmployeePeriodStats]): From `aggregate_period`, in a
            deterministic order (ties in net sales keep it).
        role (CompensationRole): Pay schedule applied to every employee.
        ladder (list[PowerLevel]): Level ladder for the power rating.
        catalog (list[AchievementDefinition]): Achievement catalog.
        today (date): The caller's notion of "today" for streaks.
        evaluated_at (datetime): Timestamp for newly earned achievements.
        previous_rankings (dict): employee_id -> prior-period ranking row
            (anything with `rank` and `avg_check`).
        personal_bests (dict): employee_id -> best single day before this period.
        earned_codes (dict): employee_id -> codes already earned this period.
        department_avg_check (float): Average ticket across the department.

    Returns:
        PeriodEvaluation: No I/O is performed; persisting is up to the caller.
    """
    previous_rankings = previous_rankings or {}
    personal_bests = personal_bests or {}
    earned_codes = earned_codes or {}
    reference_date = streak_reference_date(period, today)

    logging.info(f"--- Evaluating period {period} for {len(stats_list)} employees (streak reference {reference_date}). ---")

    previous_ranks = {emp_id: row.rank for emp_id, row in previous_rankings.items()}
    rankings = rank_employees(stats_list, previous_ranks, challenger_positions=challenger_positions)
    ranks = rank_map(rankings)

    evaluations = {}
    for stats in stats_list:
        prior = previous_rankings.get(stats.employee_id)
        snapshot = replace(
            stats,
            rank=ranks[stats.employee_id],
            streak=calculate_streak(stats.activity_dates, reference_date),
            prev_rank=prior.rank if prior is not None else None,
            prev_avg_check=prior.avg_check if prior is not None else None,
            personal_best_day=personal_bests.get(stats.employee_id),
        )

        commission = calculate_salary(snapshot.net_sales, role.tiers, role.base_salary)
        power = calculate_power_rating(PowerInput(
            net_sales=snapshot.net_sales,
            sales_count=snapshot.sales_count,
            returns_count=snapshot.returns_count,
            avg_check=snapshot.avg_check,
            department_avg_check=department_avg_check,
            streak=snapshot.streak.current_streak,
        ), ladder, power_config)
        new_achievements = check_achievements(
            snapshot, catalog, earned_codes.get(stats.employee_id, ()), evaluated_at
        )

        logging.debug(
            f"  {snapshot.employee_id}: rank {snapshot.rank}, net {snapshot.net_sales:,.0f}, "
            f"salary {commission.total_salary:,.0f}, power {power.total_power}, "
            f"streak {snapshot.streak.current_streak}/{snapshot.streak.max_streak}, "
            f"new badges {[a.code for a in new_achievements]}"
        )
        evaluations[stats.employee_id] = EmployeeEvaluation(
            stats=snapshot, commission=commission, power=power, new_achievements=new_achievements,
        )

    power_rankings = rank_employees(
        [evaluations[s.employee_id].stats for s in stats_list],
        key=lambda s: evaluations[s.employee_id].power.total_power,
        challenger_positions=challenger_positions,
    )

    result = PeriodEvaluation(
        period=period,
        reference_date=reference_date,
        rankings=rankings,
        power_rankings=power_rankings,
        employees=evaluations,
    )
    logging.info(f"--- Period {period} evaluated: {result.new_achievement_count} new achievements. ---")
    return result
