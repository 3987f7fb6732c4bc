# tests/test_achievements.py

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from staffscore.calculator import ConfigurationError
from staffscore.calculator.achievements import AchievementDefinition, CriteriaType, check_achievements
from staffscore.calculator.stats import EmployeePeriodStats
from staffscore.calculator.streak import StreakResult

EARNED_AT = datetime(2024, 6, 30, 12, 0)


def make_stats(**overrides):
    values = dict(employee_id='e1', gross_sales=0, returns_total=0, sales_count=0, returns_count=0)
    values.update(overrides)
    return EmployeePeriodStats(**values)


def codes(earned):
    return [e.code for e in earned]


def only(criteria_type, value, **kwargs):
    return [AchievementDefinition(code='badge', criteria_type=criteria_type, criteria_value=value, **kwargs)]


def test_first_sale_and_sales_totals(catalog):
    stats = make_stats(gross_sales=600_000, sales_count=12)
    earned = codes(check_achievements(stats, catalog, set(), EARNED_AT))

    assert 'first_sale' in earned
    assert 'sales_100k' in earned
    assert 'sales_500k' in earned
    assert 'first_million' not in earned


def test_results_follow_catalog_order_and_carry_timestamp(catalog):
    stats = make_stats(gross_sales=1_200_000, sales_count=3)
    earned = check_achievements(stats, catalog, set(), EARNED_AT)

    assert codes(earned) == ['first_sale', 'sales_100k', 'sales_500k', 'first_million']
    assert all(e.earned_at == EARNED_AT for e in earned)
    assert earned[1].metadata == {'actual_sales': 1_200_000}


def test_rerun_with_earned_codes_awards_nothing(catalog):
    stats = make_stats(gross_sales=1_200_000, sales_count=30, rank=1, prev_rank=9,
                       streak=StreakResult(current_streak=8, max_streak=8))
    first = check_achievements(stats, catalog, set(), EARNED_AT)
    second = check_achievements(stats, catalog, {e.code for e in first}, EARNED_AT)

    assert first
    assert second == []


def test_same_input_same_output(catalog):
    stats = make_stats(gross_sales=150_000, sales_count=2, rank=2)
    assert check_achievements(stats, catalog, set(), EARNED_AT) == check_achievements(stats, catalog, set(), EARNED_AT)


def test_inactive_definitions_are_skipped():
    catalog = only(CriteriaType.SALES_COUNT, 1, is_active=False)
    assert check_achievements(make_stats(sales_count=5), catalog, set(), EARNED_AT) == []


def test_duplicate_codes_awarded_once():
    catalog = only(CriteriaType.SALES_COUNT, 1) + only(CriteriaType.SALES_COUNT, 2)
    assert codes(check_achievements(make_stats(sales_count=5), catalog, set(), EARNED_AT)) == ['badge']


def test_streak_uses_current_or_best():
    catalog = only(CriteriaType.STREAK_DAYS, 7)

    broken = make_stats(streak=StreakResult(current_streak=2, max_streak=7))
    assert codes(check_achievements(broken, catalog, set(), EARNED_AT)) == ['badge']

    short = make_stats(streak=StreakResult(current_streak=6, max_streak=6))
    assert check_achievements(short, catalog, set(), EARNED_AT) == []


@pytest.mark.parametrize('rank, expected', [(0, False), (1, True), (3, True), (4, False)])
def test_rank_requires_a_real_position(rank, expected):
    earned = check_achievements(make_stats(rank=rank), only(CriteriaType.RANK, 3), set(), EARNED_AT)
    assert bool(earned) is expected


def test_no_returns_needs_minimum_volume():
    catalog = only(CriteriaType.NO_RETURNS, 20)

    assert check_achievements(make_stats(), catalog, set(), EARNED_AT) == []
    assert check_achievements(make_stats(sales_count=25, returns_count=1), catalog, set(), EARNED_AT) == []

    earned = check_achievements(make_stats(sales_count=20), catalog, set(), EARNED_AT)
    assert earned[0].metadata == {'sales_count': 20, 'returns_count': 0}


def test_avg_check_growth():
    catalog = only(CriteriaType.AVG_CHECK_GROWTH, 10)
    stats = make_stats(gross_sales=12_000, sales_count=10)

    assert check_achievements(stats, catalog, set(), EARNED_AT) == []
    assert check_achievements(make_stats(gross_sales=12_000, sales_count=10, prev_avg_check=0),
                              catalog, set(), EARNED_AT) == []
    assert check_achievements(make_stats(gross_sales=10_500, sales_count=10, prev_avg_check=1_000),
                              catalog, set(), EARNED_AT) == []

    earned = check_achievements(make_stats(gross_sales=12_000, sales_count=10, prev_avg_check=1_000),
                                catalog, set(), EARNED_AT)
    assert earned[0].metadata['growth_percent'] == pytest.approx(20.0)
    assert earned[0].metadata['prev_avg_check'] == 1_000


def test_personal_best_day():
    catalog = only(CriteriaType.PERSONAL_BEST_DAY, 0)
    day = date(2024, 6, 3)

    assert check_achievements(make_stats(), catalog, set(), EARNED_AT) == []
    assert check_achievements(make_stats(daily_totals={day: 500}), catalog, set(), EARNED_AT)
    assert check_achievements(make_stats(daily_totals={day: 500}, personal_best_day=500),
                              catalog, set(), EARNED_AT) == []

    earned = check_achievements(make_stats(daily_totals={day: 500}, personal_best_day=400),
                                catalog, set(), EARNED_AT)
    assert earned[0].metadata == {'new_record': 500, 'previous_record': 400}


@pytest.mark.parametrize('prev_rank, rank, expected', [
    (None, 2, True),
    (7, 5, True),
    (3, 1, False),
    (8, 6, False),
    (None, 0, False),
])
def test_comeback(prev_rank, rank, expected):
    stats = make_stats(rank=rank, prev_rank=prev_rank)
    earned = check_achievements(stats, only(CriteriaType.COMEBACK, 5), set(), EARNED_AT)
    assert bool(earned) is expected


def test_definition_from_row():
    row = SimpleNamespace(code='first_sale', criteria_type='sales_count', criteria_value=1,
                          is_active=True, name='First sale', icon='🎯')
    definition = AchievementDefinition.from_row(row)

    assert definition.criteria_type is CriteriaType.SALES_COUNT
    assert definition.name == 'First sale'


def test_unknown_criteria_type_is_a_configuration_error():
    row = SimpleNamespace(code='weird', criteria_type='moon_phase', criteria_value=1,
                          is_active=True, name='', icon='')
    with pytest.raises(ConfigurationError):
        AchievementDefinition.from_row(row)


def test_earned_achievement_to_dict():
    earned = check_achievements(make_stats(sales_count=1), only(CriteriaType.SALES_COUNT, 1), set(), EARNED_AT)
    assert earned[0].to_dict() == {
        'code': 'badge', 'earned_at': EARNED_AT.isoformat(), 'metadata': {'sales_count': 1},
    }
