# ==============================================================================
# staffscore/main/routes.py
# ------------------------------------------------------------------------------
# JSON endpoints of the dashboard. Each handler loads inputs through
# main.utils, runs the engine and returns its results; no business rules here.
# ==============================================================================

import math
from datetime import date, datetime

from flask import current_app, jsonify, request

from staffscore import db
from staffscore.calculator import ConfigurationError
from staffscore.calculator.commission import calculate_role_salary, motivation_message
from staffscore.calculator.ranking import parse_period, period_bounds
from staffscore.main import bp
from staffscore.main.utils import (badges_by_employee, employee_daily, employee_profile, evaluate_department,
                                   load_role, record_achievements, save_rankings)
from staffscore.models import Employee

# --- Helper Functions ---

def error_response(message, status):
    return jsonify({'error': message}), status


def _period(source):
    """Reads and validates `period` from a mapping; returns (period, error)."""
    period = source.get('period')
    if not period:
        return None, error_response('Parameter "period" (YYYY-MM) is required.', 400)
    try:
        parse_period(period)
    except ValueError:
        return None, error_response(f'Invalid period "{period}", expected YYYY-MM.', 400)
    return period, None


def _period_and_department(source):
    """Reads and validates `period` / `department` from a mapping; returns (period, department, error)."""
    period, error = _period(source)
    if error:
        return None, None, error
    department = source.get('department') or current_app.config['DEFAULT_DEPARTMENT']
    return period, department, None


def _day_in_period(value, period):
    """Parses an optional `date` parameter that must fall inside the period; returns (day, error)."""
    if not value:
        return None, None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return None, error_response(f'Invalid date "{value}", expected YYYY-MM-DD.', 400)
    start, end = period_bounds(period)
    if not start <= day < end:
        return None, error_response(f'Date {value} is outside period {period}.', 400)
    return day, None


def _run_evaluation(period, department, **filters):
    return evaluate_department(period, department, today=date.today(), evaluated_at=datetime.utcnow(), **filters)


def _get_employee(employee_id):
    return db.session.get(Employee, employee_id)


# --- Routes ---

@bp.route('/api/calculator')
def calculator():
    """Salary for a hypothetical net-sales figure on a role's schedule."""
    sales = request.args.get('sales', type=float)
    role_code = request.args.get('role', 'seller')
    if sales is None or not math.isfinite(sales) or sales < 0:
        return error_response('Parameter "sales" must be a non-negative number.', 400)

    try:
        role = load_role(role_code)
    except ConfigurationError as e:
        current_app.logger.error(f"Configuration error in calculator: {e} {e.errors}")
        return error_response(str(e), 500)
    if role is None:
        return error_response(f'Unknown role "{role_code}".', 404)

    result = calculate_role_salary(sales, role)
    payload = result.to_dict()
    payload['role'] = {'code': role.code, 'name': role.name, 'max_monthly_sales': role.max_monthly_sales}
    payload['motivation'] = motivation_message(result)
    return jsonify(payload)


@bp.route('/api/leaderboard')
def leaderboard():
    """
    Period leaderboard.
    `view=team` (default) ranks by net sales and includes money;
    `view=play` ranks by power rating and leaves every currency amount out.
    Optional `store` keeps one store's records, `date` (YYYY-MM-DD) a single day.
    """
    period, department, error = _period_and_department(request.args)
    if error:
        return error
    view = request.args.get('view', 'team')
    if view not in ('team', 'play'):
        return error_response('Parameter "view" must be "team" or "play".', 400)
    store = request.args.get('store')
    if store == 'all':
        store = None
    day, error = _day_in_period(request.args.get('date'), period)
    if error:
        return error

    try:
        evaluation, role = _run_evaluation(period, department, store_id=store, day=day)
    except LookupError as e:
        return error_response(str(e), 404)
    except ConfigurationError as e:
        current_app.logger.error(f"Configuration error while building leaderboard: {e} {e.errors}")
        return error_response(str(e), 500)

    include_money = view == 'team'
    entries = evaluation.rankings if include_money else evaluation.power_rankings
    employee_ids = [entry.employee_id for entry in entries]
    names = {e.id: e.full_name for e in Employee.query.filter(Employee.id.in_(employee_ids)).all()}
    badges = badges_by_employee(period, employee_ids)

    players = []
    for entry in entries:
        result = evaluation.employees[entry.employee_id]
        player = result.to_dict(include_money=include_money)
        player.update({
            'name': names.get(entry.employee_id, entry.employee_id),
            'position': entry.rank,
            'previous_position': entry.previous_rank,
            'position_change': entry.position_change,
            'is_new': entry.is_new,
            'is_challenger': entry.is_challenger,
            'challenger_rank': entry.challenger_rank,
            'badges': badges.get(entry.employee_id, []),
        })
        if not include_money:
            # Already-earned badges only; pending ones appear after recalculation.
            player.pop('new_achievements', None)
        players.append(player)

    return jsonify({
        'period': period,
        'department': department,
        'view': view,
        'store': store,
        'date': day.isoformat() if day else None,
        'role': role.code,
        'streak_reference_date': evaluation.reference_date.isoformat(),
        'players': players,
        'totals': {
            'players': len(players),
            'total_power': sum(r.power.total_power for r in evaluation.employees.values()),
        },
    })


@bp.route('/api/employee/<employee_id>')
def employee(employee_id):
    """One employee's period figures compared with the previous period."""
    period, error = _period(request.args)
    if error:
        return error
    person = _get_employee(employee_id)
    if person is None:
        return error_response(f'Unknown employee "{employee_id}".', 404)

    try:
        profile = employee_profile(person, period, today=date.today(), evaluated_at=datetime.utcnow())
    except LookupError as e:
        return error_response(str(e), 404)
    except ConfigurationError as e:
        current_app.logger.error(f"Configuration error while building employee profile: {e} {e.errors}")
        return error_response(str(e), 500)
    return jsonify(profile)


@bp.route('/api/employee/<employee_id>/daily')
def employee_days(employee_id):
    """Day-by-day sales of one employee over a period."""
    period, error = _period(request.args)
    if error:
        return error
    person = _get_employee(employee_id)
    if person is None:
        return error_response(f'Unknown employee "{employee_id}".', 404)
    return jsonify(employee_daily(person, period))


@bp.route('/api/rankings/recalculate', methods=['POST'])
def recalculate_rankings():
    """Recomputes and overwrites the persisted ranking of a period."""
    period, department, error = _period_and_department(request.get_json(silent=True) or {})
    if error:
        return error
    try:
        evaluation, _ = _run_evaluation(period, department)
        count = save_rankings(period, department, evaluation.rankings)
    except LookupError as e:
        return error_response(str(e), 404)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Ranking recalculation failed: {e}", exc_info=True)
        return error_response('Ranking recalculation failed.', 500)
    return jsonify({'success': True, 'period': period, 'department': department, 'count': count})


@bp.route('/api/achievements/calculate', methods=['POST'])
def calculate_achievements():
    """Evaluates the achievement rules for a period and appends what was newly earned."""
    period, department, error = _period_and_department(request.get_json(silent=True) or {})
    if error:
        return error
    try:
        evaluation, _ = _run_evaluation(period, department)
        earned = record_achievements(period, evaluation)
    except LookupError as e:
        return error_response(str(e), 404)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Achievement calculation failed: {e}", exc_info=True)
        return error_response('Achievement calculation failed.', 500)
    return jsonify({'success': True, 'period': period, 'department': department, 'earned': earned})
