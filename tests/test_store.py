# tests/test_store.py

from datetime import date, datetime

import pytest

from staffscore import db
from staffscore.calculator import ConfigurationError
from staffscore.models import (CompensationRole, Employee, EmployeeAchievement, MonthlyRanking, SaleRecord,
                               TierBand)

TODAY = date(2024, 7, 1)
EVALUATED_AT = datetime(2024, 7, 1, 8, 0)


def test_seed_is_idempotent(seeded_app):
    from staffscore.models import Achievement, PowerLevelDefinition
    from staffscore.seed import seed_data

    seed_data()
    assert CompensationRole.query.count() == 3
    assert PowerLevelDefinition.query.count() == 10
    assert Achievement.query.count() == 12


def test_load_role_and_ladder(seeded_app):
    from staffscore.main.utils import load_catalog, load_level_ladder, load_role

    role = load_role('seller')
    assert role.base_salary == 80_000
    assert [band.percentage for band in role.tiers] == [3, 4, 5, 7, 8, 9]
    assert load_role('nope') is None
    assert load_level_ladder()[-1].name == 'GOAT'
    assert [d.code for d in load_catalog()][0] == 'first_sale'


def test_malformed_schedule_fails_fast(seeded_app):
    from staffscore.main.utils import load_role

    role = CompensationRole(code='broken', name='Broken', base_salary=0)
    role.bands.append(TierBand(min_sales=0, max_sales=1_000, percentage=5, label='A'))
    role.bands.append(TierBand(min_sales=2_000, max_sales=3_000, percentage=6, label='B'))
    db.session.add(role)
    db.session.commit()

    with pytest.raises(ConfigurationError) as excinfo:
        load_role('broken')
    assert excinfo.value.errors


def test_evaluate_department(shop):
    from staffscore.main.utils import evaluate_department

    evaluation, role = evaluate_department('2024-06', 'almaty', TODAY, EVALUATED_AT)

    assert role.code == 'seller'
    assert [e.employee_id for e in evaluation.rankings] == ['e2', 'e1']
    assert evaluation.rankings[0].net_sales == 2_500_000
    assert evaluation.rankings[1].gross_sales == 1_200_000


def test_unknown_department(shop):
    from staffscore.main.utils import evaluate_department

    with pytest.raises(LookupError):
        evaluate_department('2024-06', 'shymkent', TODAY, EVALUATED_AT)


def test_recalculation_overwrites_rankings(shop):
    from staffscore.main.utils import recalculate_period

    recalculate_period('2024-06', 'almaty', TODAY, EVALUATED_AT)
    assert MonthlyRanking.query.filter_by(period='2024-06').count() == 2
    first_badges = EmployeeAchievement.query.filter_by(period='2024-06').count()
    assert first_badges > 0

    db.session.add(SaleRecord(employee_id='e1', amount=2_000_000, sale_date=date(2024, 6, 20)))
    db.session.commit()
    evaluation = recalculate_period('2024-06', 'almaty', TODAY, EVALUATED_AT)

    rows = {r.employee_id: r for r in MonthlyRanking.query.filter_by(period='2024-06').all()}
    assert len(rows) == 2
    assert rows['e1'].rank == 1
    assert rows['e1'].net_sales == 3_200_000
    assert rows['e2'].rank == 2
    # Only codes that newly qualify are appended
    assert 'first_sale' not in [a.code for a in evaluation.employees['e1'].new_achievements]
    assert EmployeeAchievement.query.filter_by(period='2024-06').count() == \
        first_badges + evaluation.new_achievement_count


def test_rerun_without_changes_adds_nothing(shop):
    from staffscore.main.utils import recalculate_period

    recalculate_period('2024-06', 'almaty', TODAY, EVALUATED_AT)
    count = EmployeeAchievement.query.count()
    evaluation = recalculate_period('2024-06', 'almaty', TODAY, EVALUATED_AT)

    assert evaluation.new_achievement_count == 0
    assert EmployeeAchievement.query.count() == count


def test_previous_period_feeds_history(shop):
    from staffscore.main.utils import evaluate_department, load_personal_bests

    db.session.add(MonthlyRanking(employee_id='e1', period='2024-05', department='almaty', rank=7,
                                  net_sales=900_000, avg_check=200_000, best_day_sales=900_000))
    db.session.commit()

    assert load_personal_bests(['e1', 'e2'], '2024-06') == {'e1': 900_000}
    assert load_personal_bests(['e1'], '2024-05') == {}

    evaluation, _ = evaluate_department('2024-06', 'almaty', TODAY, EVALUATED_AT)
    e1 = evaluation.employees['e1']
    assert e1.stats.prev_rank == 7
    assert e1.stats.personal_best_day == 900_000
    codes = [a.code for a in e1.new_achievements]
    assert 'avg_check_up' in codes
    assert 'best_day' not in codes
    assert 'comeback' in codes


def test_badges_by_employee(shop):
    from staffscore.main.utils import badges_by_employee, recalculate_period

    recalculate_period('2024-06', 'almaty', TODAY, EVALUATED_AT)
    badges = badges_by_employee('2024-06', ['e1', 'e2'])

    assert {'code': 'first_million', 'name': 'First million', 'icon': '💎'} in badges['e2']
    stored = EmployeeAchievement.query.filter_by(employee_id='e2', achievement_code='first_million').one()
    assert stored.details == {'actual_sales': 2_600_000}
    assert stored.earned_at == EVALUATED_AT


# --- Import ---

def test_import_record_files(seeded_app, tmp_path):
    from staffscore.main.utils import import_record_files

    sales_file = tmp_path / 'sales.csv'
    sales_file.write_text(
        "external_id,employee_id,store_id,amount,sale_date,department\n"
        "s-1,e7,store-1,\"1,500\",2024-06-01,almaty\n"
        "s-2,e7,store-1,2500,2024-06-02,almaty\n"
    )
    returns_file = tmp_path / 'returns.csv'
    returns_file.write_text("employee_id,amount,return_date\ne7,300,2024-06-03\n")

    imported = import_record_files(str(sales_file), str(returns_file))
    assert imported == {'sales': 2, 'returns': 1, 'errors': []}
    assert db.session.get(Employee, 'e7').department == 'almaty'
    assert SaleRecord.query.filter_by(external_id='s-1').one().amount == 1_500

    again = import_record_files(str(sales_file))
    assert again['sales'] == 0
    assert SaleRecord.query.count() == 2


def test_import_rejects_invalid_files(seeded_app, tmp_path):
    from staffscore.main.utils import import_record_files

    sales_file = tmp_path / 'sales.csv'
    sales_file.write_text("employee_id,amount\ne1,100\n")

    imported = import_record_files(str(sales_file))
    assert imported['sales'] == 0
    assert imported['errors']
    assert SaleRecord.query.count() == 0


# --- CLI ---

def test_cli_seed_and_recalculate(app_with_db):
    runner = app_with_db.test_cli_runner()

    result = runner.invoke(args=['seed'])
    assert result.exit_code == 0
    assert CompensationRole.query.count() == 3

    db.session.add(Employee(id='e1', department='almaty'))
    db.session.add(SaleRecord(employee_id='e1', amount=10_000, sale_date=date(2024, 6, 3)))
    db.session.commit()

    result = runner.invoke(args=['recalculate', '2024-06'])
    assert result.exit_code == 0
    assert '1 ranked' in result.output
    assert MonthlyRanking.query.filter_by(period='2024-06').count() == 1


def test_cli_recalculate_rejects_bad_period(seeded_app):
    runner = seeded_app.test_cli_runner()

    result = runner.invoke(args=['recalculate', '2024-6'])
    assert result.exit_code != 0
    assert 'YYYY-MM' in result.output
    assert MonthlyRanking.query.count() == 0


def test_period_frames_filters(shop):
    from staffscore.main.utils import employee_records, period_frames

    db.session.add(SaleRecord(employee_id='e1', store_id='s9', amount=10, sale_date=date(2024, 6, 11)))
    db.session.commit()

    sales, returns = period_frames('2024-06', 'almaty', store_id='s9')
    assert list(sales['amount']) == [10]
    assert returns.empty

    sales, returns = period_frames('2024-06', 'almaty', day=date(2024, 6, 11))
    assert sorted(sales['amount']) == [10, 400_000]

    sales, returns = employee_records('e2', '2024-06')
    assert [s.amount for s in sales] == [2_600_000]
    assert [r.amount for r in returns] == [100_000]
