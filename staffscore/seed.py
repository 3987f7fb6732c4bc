import json
import logging
from staffscore import db
from staffscore.models import Achievement, AppSetting, CompensationRole, PowerLevelDefinition, TierBand

DEFAULT_SETTINGS = {
    # key: [value, description, value_type]
    'POWER_BASE_DIVISOR': ['10000', 'Net sales divided by this give the base power', 'int'],
    'POWER_NO_RETURNS_BONUS': ['10', 'Power bonus for a period without returns', 'int'],
    'POWER_NO_RETURNS_MIN_SALES': ['10', 'Minimum number of sales for the no-returns bonus', 'int'],
    'POWER_AVG_CHECK_BONUS_PER_TEN_PERCENT': ['5', 'Power bonus per full 10% above the department average ticket', 'int'],
    'CHALLENGER_POSITIONS': ['3', 'Top positions flagged as challengers on the public board', 'int'],
    'DEPARTMENT_ROLES': [json.dumps({'almaty': 'seller', 'astana': 'seller'}),
                         'Pay role applied to each department (JSON)', 'json'],
}

# Six 1M-wide bands; the jump after 3M (5% -> 7%) rewards reaching the monthly goal.
STANDARD_TIERS = [
    # (min, max, percentage, label, icon)
    (0, 1_000_000, 3, 'Rookie', 'sprout'),
    (1_000_000, 2_000_000, 4, 'Seller', 'shopping-bag'),
    (2_000_000, 3_000_000, 5, 'Experienced', 'star'),
    (3_000_000, 4_000_000, 7, 'Master', 'flame'),
    (4_000_000, 5_000_000, 8, 'Pro', 'zap'),
    (5_000_000, 6_000_000, 9, 'Legend', 'crown'),
]

DEFAULT_ROLES = [
    # (code, name, base_salary, max_monthly_sales)
    ('senior-admin', 'Senior administrator', 150_000, 6_000_000),
    ('admin-cashier', 'Administrator-cashier', 110_000, 6_000_000),
    ('seller', 'Seller', 80_000, 6_000_000),
]

DEFAULT_LEVELS = [
    # (level, name, min_power, icon, color)
    (1, 'ROOKIE', 0, '🌱', 'gray'),
    (2, 'SELLER', 101, '💼', 'gray'),
    (3, 'SKILLED', 201, '⭐', 'gray'),
    (4, 'MASTER', 351, '🎯', 'cyan'),
    (5, 'PRO', 501, '🔥', 'cyan'),
    (6, 'EXPERT', 701, '💎', 'cyan'),
    (7, 'ELITE', 901, '👑', 'magenta'),
    (8, 'LEGEND', 1201, '🏆', 'magenta'),
    (9, 'CHAMPION', 1501, '⚡', 'gold'),
    (10, 'GOAT', 2001, '💠', 'rainbow'),
]

DEFAULT_ACHIEVEMENTS = [
    # (code, name, description, icon, criteria_type, criteria_value)
    ('first_sale', 'First sale', 'Make the first sale of the month', '🎯', 'sales_count', 1),
    ('sales_100k', '100k club', 'Sell 100,000 in a month', '💵', 'sales_total', 100_000),
    ('sales_500k', 'Half a million', 'Sell 500,000 in a month', '💰', 'sales_total', 500_000),
    ('first_million', 'First million', 'Sell 1,000,000 in a month', '💎', 'sales_total', 1_000_000),
    ('streak_7', 'On fire', '7 days in a row with sales', '🔥', 'streak_days', 7),
    ('streak_14', 'Unstoppable', '14 days in a row with sales', '⚡', 'streak_days', 14),
    ('top_1', 'Number one', 'Finish the month in first place', '👑', 'rank', 1),
    ('top_3', 'Podium', 'Finish the month in the top 3', '🏆', 'rank', 3),
    ('no_returns', 'Clean sheet', 'No returns with at least 20 sales', '✨', 'no_returns', 20),
    ('avg_check_up', 'Bigger baskets', 'Average ticket up 10% on last month', '📈', 'avg_check_growth', 10),
    ('best_day', 'Personal best', 'Beat your best single day', '🌟', 'personal_best_day', 0),
    ('comeback', 'Comeback', 'Back in the top 5 after being outside it', '🚀', 'comeback', 5),
]


def seed_data():
    """Populates the database with default settings, schedules, ladder and catalog."""
    # Seed App Settings
    for key, data in DEFAULT_SETTINGS.items():
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting: # Only add if it doesn't exist
            setting = AppSetting(key=key, value=data[0], description=data[1], value_type=data[2])
            db.session.add(setting)
            logging.info(f'Seeding setting: {key}')

    # Seed roles with the standard tier schedule
    for code, name, base_salary, max_sales in DEFAULT_ROLES:
        if CompensationRole.query.filter_by(code=code).first():
            continue
        logging.info(f'Seeding role {code} with the standard tier schedule...')
        role = CompensationRole(code=code, name=name, base_salary=base_salary, max_monthly_sales=max_sales)
        for min_s, max_s, pct, label, icon in STANDARD_TIERS:
            role.bands.append(TierBand(min_sales=min_s, max_sales=max_s, percentage=pct, label=label, icon=icon))
        db.session.add(role)

    # Seed the power ladder
    if PowerLevelDefinition.query.count() == 0:
        logging.info('Seeding default power levels...')
        for level, name, min_power, icon, color in DEFAULT_LEVELS:
            db.session.add(PowerLevelDefinition(level=level, name=name, min_power=min_power, icon=icon, color=color))

    # Seed the achievement catalog
    for code, name, description, icon, criteria_type, value in DEFAULT_ACHIEVEMENTS:
        if not Achievement.query.filter_by(code=code).first():
            db.session.add(Achievement(code=code, name=name, description=description, icon=icon,
                                       criteria_type=criteria_type, criteria_value=value, is_active=True))
            logging.info(f'Seeding achievement: {code}')

    db.session.commit()
    logging.info('Seeding complete.')
