# ==============================================================================
# staffscore/calculator/aggregation.py
# ------------------------------------------------------------------------------
# Groups raw sale / return records into one EmployeePeriodStats per employee.
# ==============================================================================

import logging
from datetime import timedelta

import pandas as pd

from . import InvalidRecordsError
from .ranking import period_bounds
from .schema import EXPECTED_FRAMES
from .stats import EmployeePeriodStats
from .validator import validate_frames

logger = logging.getLogger(__name__)


def _normalise(df, frame_name):
    """Returns a clean copy: string ids, float amounts, `date` objects."""
    rules = EXPECTED_FRAMES[frame_name]
    if df is None or df.empty:
        return pd.DataFrame(columns=rules['required_columns'])

    clean = df[rules['required_columns']].copy()
    clean['employee_id'] = clean['employee_id'].astype(str).str.strip()
    for col in rules['numeric_columns']:
        clean[col] = pd.to_numeric(clean[col].astype(str).str.replace(',', ''), errors='coerce').fillna(0.0)
    for col in rules['date_columns']:
        clean[col] = pd.to_datetime(clean[col]).dt.date
    return clean


def _check_frames(sales_df, returns_df):
    errors = validate_frames({'sales': _normalise(None, 'sales') if sales_df is None else sales_df,
                              'returns': returns_df})
    if errors:
        for error in errors:
            logger.error(error)
        raise InvalidRecordsError(errors)


def records_to_frame(records, frame_name):
    """Builds a frame from an iterable of dicts (or model rows exposing the columns)."""
    columns = EXPECTED_FRAMES[frame_name]['required_columns']
    rows = []
    for record in records:
        if isinstance(record, dict):
            rows.append({col: record.get(col) for col in columns})
        else:
            rows.append({col: getattr(record, col) for col in columns})
    return pd.DataFrame(rows, columns=columns)


def aggregate_period(sales_df, returns_df=None, employee_ids=None):
    """
    Aggregates one period's records per employee.

    Args:
        sales_df (pd.DataFrame): Columns employee_id, amount, sale_date.
        returns_df (pd.DataFrame): Columns employee_id, amount, return_date.
        employee_ids (Iterable[str]): When given, exactly these employees are
            returned (with zero stats if they have no records) and records for
            anyone else are ignored.

    Returns:
        list[EmployeePeriodStats]: Ordered by employee id.
    """
    _check_frames(sales_df, returns_df)

    sales = _normalise(sales_df, 'sales')
    returns = _normalise(returns_df, 'returns')

    if employee_ids is None:
        wanted = set(sales['employee_id']) | set(returns['employee_id'])
    else:
        wanted = {str(e) for e in employee_ids}

    daily_totals = {}
    sales_totals = {}
    if not sales.empty:
        for (employee_id, day), amount in sales.groupby(['employee_id', 'sale_date'])['amount'].sum().items():
            daily_totals.setdefault(employee_id, {})[day] = float(amount)
        for employee_id, row in sales.groupby('employee_id')['amount'].agg(['sum', 'count']).iterrows():
            sales_totals[employee_id] = (float(row['sum']), int(row['count']))

    return_totals = {}
    if not returns.empty:
        for employee_id, row in returns.groupby('employee_id')['amount'].agg(['sum', 'count']).iterrows():
            return_totals[employee_id] = (float(row['sum']), int(row['count']))

    results = []
    for employee_id in sorted(wanted):
        gross, count = sales_totals.get(employee_id, (0.0, 0))
        returned, returns_count = return_totals.get(employee_id, (0.0, 0))
        days = daily_totals.get(employee_id, {})
        results.append(EmployeePeriodStats(
            employee_id=employee_id,
            gross_sales=gross,
            returns_total=returned,
            sales_count=count,
            returns_count=returns_count,
            activity_dates=tuple(sorted(days)),
            daily_totals=days,
        ))

    logger.info(
        f"Aggregated {len(sales)} sales and {len(returns)} returns into {len(results)} employee snapshots."
    )
    return results


def department_average_ticket(sales_df):
    """Average sale amount across the whole department, 0 without sales."""
    sales = _normalise(sales_df, 'sales')
    if sales.empty:
        return 0.0
    return float(sales['amount'].sum()) / len(sales)


def daily_breakdown(period, sales_df, returns_df=None):
    """
    Day-by-day totals for every calendar day of a period, plus summary figures.
    Records dated outside the period are ignored; days without records are zero.

    Returns:
        dict: {'daily': [...], 'stats': {...}}
    """
    _check_frames(sales_df, returns_df)

    start, end = period_bounds(period)
    sales = _normalise(sales_df, 'sales')
    returns = _normalise(returns_df, 'returns')

    sales_by_day = {}
    if not sales.empty:
        for day, row in sales.groupby('sale_date')['amount'].agg(['sum', 'count']).iterrows():
            sales_by_day[day] = (float(row['sum']), int(row['count']))
    returns_by_day = {}
    if not returns.empty:
        for day, row in returns.groupby('return_date')['amount'].agg(['sum', 'count']).iterrows():
            returns_by_day[day] = (float(row['sum']), int(row['count']))

    daily = []
    day = start
    while day < end:
        sold, sales_count = sales_by_day.get(day, (0.0, 0))
        returned, returns_count = returns_by_day.get(day, (0.0, 0))
        daily.append({
            'date': day.isoformat(),
            'day': day.day,
            'sales': sold,
            'returns': returned,
            'net_sales': sold - returned,
            'sales_count': sales_count,
            'returns_count': returns_count,
        })
        day += timedelta(days=1)

    total_sales = sum(d['sales'] for d in daily)
    total_returns = sum(d['returns'] for d in daily)
    active_days = [d for d in daily if d['sales_count'] > 0]
    # Earliest day wins a tie for the best day.
    best = max(active_days, key=lambda d: d['sales'], default=None)

    return {
        'daily': daily,
        'stats': {
            'total_sales': total_sales,
            'total_returns': total_returns,
            'net_sales': total_sales - total_returns,
            'days_with_sales': len(active_days),
            'days_in_month': len(daily),
            'max_day_sales': max(d['sales'] for d in daily),
            'best_day': {'date': best['date'], 'sales': best['sales'], 'sales_count': best['sales_count']} if best else None,
            'avg_daily_sales': round(total_sales / len(active_days)) if active_days else 0,
        },
    }
