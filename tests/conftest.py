# tests/conftest.py

from datetime import date

import pytest

from staffscore.calculator.achievements import AchievementDefinition, CriteriaType
from staffscore.calculator.commission import CompensationRole, TierBand
from staffscore.calculator.power import PowerLevel
from staffscore.seed import DEFAULT_ACHIEVEMENTS, DEFAULT_LEVELS, STANDARD_TIERS


@pytest.fixture
def app_with_db():
    """
    Creates a new app instance for a test, sets up an in-memory database,
    and yields the app within an application context.
    """
    from config import TestConfig
    from staffscore import create_app, db
    from staffscore.calculator.engine import EngineConfig

    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        EngineConfig.reset()
        yield app  # The tests will run here
        EngineConfig.reset()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def seeded_app(app_with_db):
    """The same app with default settings, roles, ladder and catalog seeded."""
    from staffscore.seed import seed_data
    seed_data()
    return app_with_db


@pytest.fixture
def shop(seeded_app):
    """Two active sellers in Almaty, one inactive, one in Astana, with June records."""
    from staffscore import db
    from staffscore.models import Employee, ReturnRecord, SaleRecord

    db.session.add_all([
        Employee(id='e1', first_name='Aida', last_name='Serikova', department='almaty'),
        Employee(id='e2', first_name='Bolat', last_name='Nurlanov', department='almaty'),
        Employee(id='e3', first_name='Dana', last_name='Akhmetova', department='astana'),
        Employee(id='e4', first_name='Erlan', last_name='Ospanov', department='almaty', is_active=False),
    ])
    db.session.add_all([
        SaleRecord(employee_id='e1', amount=400_000, sale_date=date(2024, 6, 10)),
        SaleRecord(employee_id='e1', amount=400_000, sale_date=date(2024, 6, 11)),
        SaleRecord(employee_id='e1', amount=400_000, sale_date=date(2024, 6, 12)),
        SaleRecord(employee_id='e1', amount=900_000, sale_date=date(2024, 5, 31)),
        SaleRecord(employee_id='e2', amount=2_600_000, sale_date=date(2024, 6, 5)),
        SaleRecord(employee_id='e3', amount=500_000, sale_date=date(2024, 6, 5)),
        ReturnRecord(employee_id='e2', amount=100_000, return_date=date(2024, 6, 6)),
    ])
    db.session.commit()
    return seeded_app


@pytest.fixture
def client(shop):
    return shop.test_client()


@pytest.fixture
def standard_schedule():
    return tuple(TierBand(min_s, max_s, pct, label, icon) for min_s, max_s, pct, label, icon in STANDARD_TIERS)


@pytest.fixture
def seller_role(standard_schedule):
    return CompensationRole(code='seller', name='Seller', base_salary=80_000, tiers=standard_schedule,
                            max_monthly_sales=6_000_000)


@pytest.fixture
def ladder():
    return [PowerLevel(level, name, min_power, icon, color) for level, name, min_power, icon, color in DEFAULT_LEVELS]


@pytest.fixture
def catalog():
    return [
        AchievementDefinition(code=code, criteria_type=CriteriaType(criteria_type), criteria_value=value,
                              name=name, icon=icon)
        for code, name, _, icon, criteria_type, value in DEFAULT_ACHIEVEMENTS
    ]
