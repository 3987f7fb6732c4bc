# ==============================================================================
# staffscore/main/utils.py
# ------------------------------------------------------------------------------
# Store access around the engine: loads configuration and period inputs from
# the database, persists rankings and earned achievements, and builds the
# per-employee views.
# ==============================================================================
import json
import logging
import os
from datetime import timedelta

import pandas as pd
from sqlalchemy import func, or_

from staffscore import db
from staffscore.calculator import ConfigurationError
from staffscore.calculator.achievements import AchievementDefinition
from staffscore.calculator.aggregation import (aggregate_period, daily_breakdown, department_average_ticket,
                                              records_to_frame)
from staffscore.calculator.commission import CompensationRole, TierBand, calculate_salary
from staffscore.calculator.engine import EngineConfig, evaluate_period
from staffscore.calculator.power import PowerLevel
from staffscore.calculator.ranking import period_bounds, previous_period, rank_map
from staffscore.calculator.validator import validate_frames, validate_level_ladder, validate_tier_schedule
from staffscore.models import (Achievement, CompensationRole as RoleRow, Employee, EmployeeAchievement,
                               MonthlyRanking, PowerLevelDefinition, ReturnRecord, SaleRecord)

logger = logging.getLogger(__name__)


# --- Configuration ---

def load_role(code):
    """Loads a pay role and its validated tier schedule, or None if the role is unknown."""
    row = RoleRow.query.filter_by(code=code).first()
    if row is None:
        return None
    bands = tuple(
        TierBand(min_sales=b.min_sales, max_sales=b.max_sales, percentage=b.percentage, label=b.label, icon=b.icon or '')
        for b in sorted(row.bands, key=lambda b: b.min_sales)
    )
    errors = validate_tier_schedule(bands)
    if errors:
        for error in errors:
            logger.error(f"Role '{code}': {error}")
        raise ConfigurationError(f"Tier schedule for role '{code}' is invalid", errors)
    return CompensationRole(code=row.code, name=row.name, base_salary=row.base_salary,
                            tiers=bands, max_monthly_sales=row.max_monthly_sales)


def load_level_ladder():
    levels = [
        PowerLevel(level=row.level, name=row.name, min_power=row.min_power, icon=row.icon or '', color=row.color or 'gray')
        for row in PowerLevelDefinition.query.order_by(PowerLevelDefinition.min_power).all()
    ]
    errors = validate_level_ladder(levels)
    if errors:
        for error in errors:
            logger.error(f"Power ladder: {error}")
        raise ConfigurationError("Power level ladder is invalid", errors)
    return levels


def load_catalog():
    return [AchievementDefinition.from_row(row) for row in Achievement.query.order_by(Achievement.id).all()]


# --- Period inputs ---

def department_employee_ids(department):
    rows = Employee.query.filter_by(department=department, is_active=True).order_by(Employee.id).all()
    return [row.id for row in rows]


def period_frames(period, department, store_id=None, day=None):
    """
    Sale and return frames for one period, restricted to a department's employees.
    `store_id` keeps a single store's records; `day` narrows the window to that date.
    """
    start, end = (day, day + timedelta(days=1)) if day else period_bounds(period)
    sales = (SaleRecord.query.join(Employee, SaleRecord.employee_id == Employee.id)
             .filter(Employee.department == department,
                     SaleRecord.sale_date >= start, SaleRecord.sale_date < end))
    returns = (ReturnRecord.query.join(Employee, ReturnRecord.employee_id == Employee.id)
               .filter(Employee.department == department,
                       ReturnRecord.return_date >= start, ReturnRecord.return_date < end))
    if store_id:
        sales = sales.filter(SaleRecord.store_id == store_id)
        returns = returns.filter(ReturnRecord.store_id == store_id)
    return (records_to_frame(sales.order_by(SaleRecord.id).all(), 'sales'),
            records_to_frame(returns.order_by(ReturnRecord.id).all(), 'returns'))


def employee_records(employee_id, period):
    """One employee's sale and return rows of a period, across every store."""
    start, end = period_bounds(period)
    sales = (SaleRecord.query
             .filter(SaleRecord.employee_id == employee_id,
                     SaleRecord.sale_date >= start, SaleRecord.sale_date < end)
             .order_by(SaleRecord.sale_date, SaleRecord.id).all())
    returns = (ReturnRecord.query
               .filter(ReturnRecord.employee_id == employee_id,
                       ReturnRecord.return_date >= start, ReturnRecord.return_date < end)
               .order_by(ReturnRecord.return_date, ReturnRecord.id).all())
    return sales, returns


def load_previous_rankings(period, employee_ids):
    rows = MonthlyRanking.query.filter(
        MonthlyRanking.period == previous_period(period),
        MonthlyRanking.employee_id.in_(employee_ids),
    ).all()
    return {row.employee_id: row for row in rows}


def load_personal_bests(employee_ids, exclude_period):
    """Best single-day total per employee over every other persisted period."""
    rows = (db.session.query(MonthlyRanking.employee_id, func.max(MonthlyRanking.best_day_sales))
            .filter(MonthlyRanking.employee_id.in_(employee_ids), MonthlyRanking.period != exclude_period)
            .group_by(MonthlyRanking.employee_id).all())
    return {employee_id: best for employee_id, best in rows if best}


def load_earned_codes(period, employee_ids):
    earned = {}
    rows = EmployeeAchievement.query.filter(
        EmployeeAchievement.period == period,
        EmployeeAchievement.employee_id.in_(employee_ids),
    ).all()
    for row in rows:
        earned.setdefault(row.employee_id, set()).add(row.achievement_code)
    return earned


def evaluate_department(period, department, today, evaluated_at, store_id=None, day=None):
    """
    Loads everything the engine needs for one period and department and runs it.
    With `store_id` only that store's records count; with `day` only that date's,
    and streaks are measured up to it.

    Returns:
        tuple: (PeriodEvaluation, CompensationRole)

    Raises:
        LookupError: When the department has no pay role configured.
    """
    config = EngineConfig()
    role_code = config.role_for_department(department)
    role = load_role(role_code) if role_code else None
    if role is None:
        raise LookupError(f"No pay role configured for department '{department}'")

    employee_ids = department_employee_ids(department)
    sales_df, returns_df = period_frames(period, department, store_id=store_id, day=day)
    if day:
        today = day
    stats_list = aggregate_period(sales_df, returns_df, employee_ids=employee_ids)

    evaluation = evaluate_period(
        period, stats_list, role,
        ladder=load_level_ladder(),
        catalog=load_catalog(),
        today=today,
        evaluated_at=evaluated_at,
        previous_rankings=load_previous_rankings(period, employee_ids),
        personal_bests=load_personal_bests(employee_ids, period),
        earned_codes=load_earned_codes(period, employee_ids),
        department_avg_check=department_average_ticket(sales_df),
        power_config=config.POWER_CONFIG,
        challenger_positions=config.CHALLENGER_POSITIONS,
    )
    return evaluation, role


# --- Persistence ---

def save_rankings(period, department, entries):
    """
    Replaces a period's rankings for a department in a single transaction.
    Rows of the same employees left under another department are replaced too.
    """
    employee_ids = [entry.employee_id for entry in entries]
    try:
        MonthlyRanking.query.filter(
            MonthlyRanking.period == period,
            or_(MonthlyRanking.department == department, MonthlyRanking.employee_id.in_(employee_ids)),
        ).delete()
        for entry in entries:
            db.session.add(MonthlyRanking(
                employee_id=entry.employee_id, period=period, department=department, rank=entry.rank,
                gross_sales=entry.gross_sales, returns=entry.returns, net_sales=entry.net_sales,
                sales_count=entry.sales_count, returns_count=entry.returns_count,
                avg_check=entry.avg_check, best_day_sales=entry.best_day_sales,
            ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error(f"Saving rankings for {period}/{department} failed.", exc_info=True)
        raise
    logger.info(f"Saved {len(entries)} rankings for {period}/{department}.")
    return len(entries)


def record_achievements(period, evaluation):
    """Appends every newly earned achievement of an evaluation to the ledger."""
    count = 0
    try:
        for employee_id, result in evaluation.employees.items():
            for earned in result.new_achievements:
                db.session.add(EmployeeAchievement(
                    employee_id=employee_id, achievement_code=earned.code, period=period,
                    earned_at=earned.earned_at, metadata_json=json.dumps(earned.metadata, ensure_ascii=False),
                ))
                count += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error(f"Recording achievements for {period} failed.", exc_info=True)
        raise
    logger.info(f"Recorded {count} new achievements for {period}.")
    return count


def recalculate_period(period, department, today, evaluated_at):
    evaluation, _ = evaluate_department(period, department, today, evaluated_at)
    save_rankings(period, department, evaluation.rankings)
    record_achievements(period, evaluation)
    return evaluation


def badges_by_employee(period, employee_ids):
    """employee_id -> list of {code, name, icon} earned in the period."""
    badges = {}
    rows = EmployeeAchievement.query.filter(
        EmployeeAchievement.period == period,
        EmployeeAchievement.employee_id.in_(employee_ids),
    ).order_by(EmployeeAchievement.id).all()
    for row in rows:
        badges.setdefault(row.employee_id, []).append({
            'code': row.achievement_code,
            'name': row.achievement.name if row.achievement else row.achievement_code,
            'icon': row.achievement.icon if row.achievement else None,
        })
    return badges


# --- Employee views ---

def _percent_change(current, previous):
    if not previous or previous <= 0:
        return None
    return round((current - previous) / previous * 100)


def _stats_dict(stats, salary):
    return {
        'gross_sales': stats.gross_sales,
        'returns': stats.returns_total,
        'net_sales': stats.net_sales,
        'sales_count': stats.sales_count,
        'returns_count': stats.returns_count,
        'avg_check': stats.avg_check,
        'return_rate': round(stats.return_rate, 1),
        'salary': salary,
    }


def employee_profile(employee, period, today, evaluated_at):
    """
    One employee's standing in a period next to the previous one: figures,
    salary, streak, power, positions, achievements and the period's returns.

    Raises:
        LookupError: When the employee is not ranked in their department.
    """
    evaluation, role = evaluate_department(period, employee.department, today, evaluated_at)
    result = evaluation.employees.get(employee.id)
    if result is None:
        raise LookupError(f"Employee '{employee.id}' is not ranked in department '{employee.department}'")

    prev = previous_period(period)
    prev_sales, prev_returns = employee_records(employee.id, prev)
    prev_stats = aggregate_period(records_to_frame(prev_sales, 'sales'), records_to_frame(prev_returns, 'returns'),
                                  employee_ids=[employee.id])[0]
    prev_salary = calculate_salary(prev_stats.net_sales, role.tiers, role.base_salary).total_salary
    prev_row = load_previous_rankings(period, [employee.id]).get(employee.id)
    prev_position = prev_row.rank if prev_row is not None else None

    stats = result.stats
    salary = result.commission.total_salary
    power_position = rank_map(evaluation.power_rankings)[employee.id]

    current = _stats_dict(stats, salary)
    current.update({
        'tier': result.commission.current_tier.label,
        'position': stats.rank,
        'power_position': power_position,
        'streak': stats.streak.to_dict(),
        'power': result.power.to_dict(),
    })

    earned_rows = (EmployeeAchievement.query.filter_by(employee_id=employee.id)
                   .order_by(EmployeeAchievement.earned_at, EmployeeAchievement.id).all())
    earned = [{
        'code': row.achievement_code,
        'name': row.achievement.name if row.achievement else row.achievement_code,
        'icon': row.achievement.icon if row.achievement else None,
        'period': row.period,
        'earned_at': row.earned_at.isoformat() if row.earned_at else None,
        'details': row.details,
    } for row in earned_rows]
    available = [{'code': a.code, 'name': a.name, 'description': a.description, 'icon': a.icon}
                 for a in Achievement.query.filter_by(is_active=True).order_by(Achievement.id).all()]

    _, returns = employee_records(employee.id, period)

    return {
        'employee': {
            'id': employee.id,
            'name': employee.full_name,
            'department': employee.department,
            'photo_url': employee.photo_url,
        },
        'period': period,
        'previous_period': prev,
        'role': role.code,
        'current': current,
        'previous': dict(_stats_dict(prev_stats, prev_salary), position=prev_position),
        'changes': {
            'sales': _percent_change(stats.gross_sales, prev_stats.gross_sales),
            'net_sales': _percent_change(stats.net_sales, prev_stats.net_sales),
            'salary': _percent_change(salary, prev_salary),
            'position': prev_position - stats.rank if prev_position is not None else None,
            'sales_count': stats.sales_count - prev_stats.sales_count,
        },
        'achievements': {
            'earned': earned,
            'available': available,
            'earned_codes': sorted({row.achievement_code for row in earned_rows}),
        },
        'returns': [{'amount': r.amount, 'date': r.return_date.isoformat(), 'store_id': r.store_id} for r in returns],
    }


def employee_daily(employee, period):
    """Every day of the period for one employee, with the month's summary figures."""
    sales, returns = employee_records(employee.id, period)
    breakdown = daily_breakdown(period, records_to_frame(sales, 'sales'), records_to_frame(returns, 'returns'))
    breakdown.update({'employee_id': employee.id, 'name': employee.full_name, 'period': period})
    return breakdown


# --- Import ---

def _read_table(path):
    if os.path.splitext(path)[1].lower() == '.xlsx':
        return pd.read_excel(path)
    return pd.read_csv(path)


def import_record_files(sales_path, returns_path=None):
    """
    Imports sale (and optionally return) records exported from the retail system.
    Nothing is written unless both files pass validation.

    Returns:
        dict: {'sales': int, 'returns': int, 'errors': list}
    """
    sales_df = _read_table(sales_path)
    returns_df = _read_table(returns_path) if returns_path else None
    errors = validate_frames({'sales': sales_df, 'returns': returns_df})
    if errors:
        return {'sales': 0, 'returns': 0, 'errors': errors}

    frames = (('sales', sales_df, SaleRecord, 'sale_date'), ('returns', returns_df, ReturnRecord, 'return_date'))
    counts = {'sales': 0, 'returns': 0, 'errors': []}
    known = {e.id for e in Employee.query.all()}
    try:
        for name, df, model, date_col in frames:
            if df is None:
                continue
            for record in df.to_dict(orient='records'):
                employee_id = str(record['employee_id']).strip()
                if employee_id not in known:
                    department = record.get('department')
                    db.session.add(Employee(id=employee_id, department=None if pd.isna(department) else str(department)))
                    known.add(employee_id)
                external_id = record.get('external_id')
                if external_id is not None and not pd.isna(external_id):
                    external_id = str(external_id)
                    if model.query.filter_by(external_id=external_id).first():
                        continue
                else:
                    external_id = None
                db.session.add(model(
                    external_id=external_id,
                    employee_id=employee_id,
                    store_id=str(record['store_id']) if not pd.isna(record.get('store_id')) else None,
                    amount=float(str(record['amount']).replace(',', '')),
                    **{date_col: pd.to_datetime(record[date_col]).date()},
                ))
                counts[name] += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error("Importing records failed.", exc_info=True)
        raise
    logger.info(f"Imported {counts['sales']} sales and {counts['returns']} returns.")
    return counts
