# tests/test_aggregation.py

from datetime import date
from types import SimpleNamespace

import pandas as pd
import pytest

from staffscore.calculator import InvalidRecordsError
from staffscore.calculator.aggregation import (aggregate_period, daily_breakdown, department_average_ticket,
                                              records_to_frame)
from staffscore.calculator.validator import validate_frames


@pytest.fixture
def sales_df():
    return pd.DataFrame([
        {'employee_id': 'e2', 'amount': 1_000, 'sale_date': '2024-06-01'},
        {'employee_id': 'e1', 'amount': 2_000, 'sale_date': '2024-06-01'},
        {'employee_id': 'e1', 'amount': 3_000, 'sale_date': '2024-06-01'},
        {'employee_id': 'e1', 'amount': '4,000', 'sale_date': '2024-06-03'},
    ])


@pytest.fixture
def returns_df():
    return pd.DataFrame([
        {'employee_id': 'e1', 'amount': 500, 'return_date': '2024-06-04'},
    ])


def test_totals_per_employee(sales_df, returns_df):
    stats = {s.employee_id: s for s in aggregate_period(sales_df, returns_df)}

    e1 = stats['e1']
    assert e1.gross_sales == 9_000
    assert e1.sales_count == 3
    assert e1.returns_total == 500
    assert e1.returns_count == 1
    assert e1.net_sales == 8_500
    assert e1.avg_check == 3_000
    assert e1.activity_dates == (date(2024, 6, 1), date(2024, 6, 3))
    assert e1.best_day_sales == 5_000
    assert e1.shift_count == 2

    assert stats['e2'].net_sales == 1_000
    assert stats['e2'].returns_count == 0


def test_results_sorted_by_employee_id(sales_df):
    assert [s.employee_id for s in aggregate_period(sales_df)] == ['e1', 'e2']


def test_employee_ids_restrict_and_fill(sales_df):
    stats = aggregate_period(sales_df, employee_ids=['e2', 'e3'])

    assert [s.employee_id for s in stats] == ['e2', 'e3']
    assert stats[1].gross_sales == 0
    assert stats[1].avg_check == 0
    assert stats[1].best_day_sales == 0
    assert stats[1].activity_dates == ()


def test_returns_only_employee(sales_df):
    returns = pd.DataFrame([{'employee_id': 'e9', 'amount': 100, 'return_date': '2024-06-02'}])
    stats = {s.employee_id: s for s in aggregate_period(sales_df, returns)}

    assert stats['e9'].net_sales == -100
    assert stats['e9'].sales_count == 0


def test_no_records_at_all():
    assert aggregate_period(None, employee_ids=['e1'])[0].gross_sales == 0
    assert aggregate_period(records_to_frame([], 'sales')) == []


def test_records_to_frame_accepts_dicts_and_rows():
    rows = [
        {'employee_id': 'e1', 'amount': 10, 'sale_date': date(2024, 6, 1), 'store_id': 's1'},
        SimpleNamespace(employee_id='e2', amount=20, sale_date=date(2024, 6, 2)),
    ]
    df = records_to_frame(rows, 'sales')

    assert list(df.columns) == ['employee_id', 'amount', 'sale_date']
    assert df['amount'].tolist() == [10, 20]


def test_invalid_frames_raise(sales_df):
    broken = sales_df.copy()
    broken.loc[0, 'amount'] = 'lots'
    with pytest.raises(InvalidRecordsError) as excinfo:
        aggregate_period(broken)
    assert 'must be a number' in str(excinfo.value)


def test_validate_frames_reports_every_problem():
    sales = pd.DataFrame([
        {'employee_id': 'e1', 'amount': -5, 'sale_date': '2024-06-01'},
        {'employee_id': ' ', 'amount': 10, 'sale_date': 'not-a-date'},
    ])
    returns = pd.DataFrame([{'employee_id': 'e1', 'amount': 5}])
    errors = validate_frames({'sales': sales, 'returns': returns})

    assert any('must not be negative' in e for e in errors)
    assert any('is not a date' in e for e in errors)
    assert any("'employee_id' is empty" in e for e in errors)
    assert any("missing required columns: return_date" in e for e in errors)


def test_validate_frames_requires_sales():
    assert validate_frames({}) == ["Required frame 'sales' is missing."]


def test_department_average_ticket(sales_df):
    assert department_average_ticket(sales_df) == 2_500
    assert department_average_ticket(records_to_frame([], 'sales')) == 0.0


def test_daily_breakdown(sales_df, returns_df):
    result = daily_breakdown('2024-06', sales_df, returns_df)
    daily = result['daily']

    assert len(daily) == 30
    assert daily[0] == {'date': '2024-06-01', 'day': 1, 'sales': 6_000, 'returns': 0, 'net_sales': 6_000,
                        'sales_count': 3, 'returns_count': 0}
    assert daily[1]['sales_count'] == 0
    assert daily[3]['returns'] == 500
    assert daily[3]['net_sales'] == -500

    stats = result['stats']
    assert stats['total_sales'] == 10_000
    assert stats['total_returns'] == 500
    assert stats['net_sales'] == 9_500
    assert stats['days_with_sales'] == 2
    assert stats['days_in_month'] == 30
    assert stats['max_day_sales'] == 6_000
    assert stats['best_day'] == {'date': '2024-06-01', 'sales': 6_000, 'sales_count': 3}
    assert stats['avg_daily_sales'] == 5_000


def test_daily_breakdown_ignores_other_periods_and_breaks_ties_early():
    sales = pd.DataFrame([
        {'employee_id': 'e1', 'amount': 700, 'sale_date': '2024-02-20'},
        {'employee_id': 'e1', 'amount': 700, 'sale_date': '2024-02-03'},
        {'employee_id': 'e1', 'amount': 9_000, 'sale_date': '2024-03-01'},
    ])
    result = daily_breakdown('2024-02', sales)

    assert len(result['daily']) == 29
    assert result['stats']['total_sales'] == 1_400
    assert result['stats']['best_day']['date'] == '2024-02-03'


def test_daily_breakdown_without_sales():
    result = daily_breakdown('2024-06', None)

    assert result['stats']['best_day'] is None
    assert result['stats']['avg_daily_sales'] == 0
    assert result['stats']['max_day_sales'] == 0
