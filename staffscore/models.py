# ==============================================================================
# staffscore/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from staffscore import db
import json


class Employee(db.Model):
    """
    A member of staff as known to the retail-management system.
    The primary key is that system's identifier so synced records can refer to it directly.
    """
    __tablename__ = 'employee'
    id = db.Column(db.String(64), primary_key=True)
    first_name = db.Column(db.String(128), nullable=False, default='')
    last_name = db.Column(db.String(128), nullable=False, default='')
    department = db.Column(db.String(64), index=True)
    is_active = db.Column(db.Boolean, default=True)
    photo_url = db.Column(db.String(512))

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f'<Employee {self.id}: {self.full_name}>'


class SaleRecord(db.Model):
    """One retail sale, as fetched from the retail-management API."""
    __tablename__ = 'sale_record'
    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(64), unique=True)
    employee_id = db.Column(db.String(64), db.ForeignKey('employee.id'), index=True, nullable=False)
    store_id = db.Column(db.String(64), index=True)
    amount = db.Column(db.Float, nullable=False, default=0)
    sale_date = db.Column(db.Date, index=True, nullable=False)

    def __repr__(self):
        return f'<SaleRecord {self.id}: {self.employee_id} {self.amount} on {self.sale_date}>'


class ReturnRecord(db.Model):
    """One customer return, attributed to the employee who made the original sale."""
    __tablename__ = 'return_record'
    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(64), unique=True)
    employee_id = db.Column(db.String(64), db.ForeignKey('employee.id'), index=True, nullable=False)
    store_id = db.Column(db.String(64), index=True)
    amount = db.Column(db.Float, nullable=False, default=0)
    return_date = db.Column(db.Date, index=True, nullable=False)

    def __repr__(self):
        return f'<ReturnRecord {self.id}: {self.employee_id} {self.amount} on {self.return_date}>'


class CompensationRole(db.Model):
    """
    A pay role: fixed base salary plus its own progressive tier schedule.
    """
    __tablename__ = 'compensation_role'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    base_salary = db.Column(db.Float, nullable=False, default=0)
    max_monthly_sales = db.Column(db.Float)

    bands = db.relationship('TierBand', backref='role', lazy='select',
                            order_by='TierBand.min_sales', cascade="all, delete-orphan")

    def __repr__(self):
        return f'<CompensationRole {self.code}: {self.base_salary:,.0f}>'


class TierBand(db.Model):
    """
    Stores one sales band of a role's tier schedule.
    `percentage` is a percent value (5 means 5%).
    """
    __tablename__ = 'tier_band'
    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey('compensation_role.id'), nullable=False)
    min_sales = db.Column(db.Float, nullable=False)
    max_sales = db.Column(db.Float, nullable=False)
    percentage = db.Column(db.Float, nullable=False, default=0)
    label = db.Column(db.String(64), nullable=False)
    icon = db.Column(db.String(32), default='')

    def __repr__(self):
        return f'<TierBand {self.id}: {self.label} ({self.min_sales}-{self.max_sales}) @ {self.percentage}%>'


class PowerLevelDefinition(db.Model):
    """One rung of the public power-rating ladder."""
    __tablename__ = 'power_level'
    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.Integer, unique=True, nullable=False)
    name = db.Column(db.String(64), nullable=False)
    min_power = db.Column(db.Integer, nullable=False)
    icon = db.Column(db.String(32), default='')
    color = db.Column(db.String(32), default='gray')

    def __repr__(self):
        return f'<PowerLevel {self.level}: {self.name} >= {self.min_power}>'


class Achievement(db.Model):
    """
    Achievement catalog entry. `criteria_type` must be one of the engine's
    CriteriaType values; `criteria_value` is its threshold.
    """
    __tablename__ = 'achievement'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(512))
    icon = db.Column(db.String(32))
    criteria_type = db.Column(db.String(32), nullable=False)
    criteria_value = db.Column(db.Float, default=0)
    is_active = db.Column(db.Boolean, default=True)

    def __repr__(self):
        return f'<Achievement {self.code}: {self.criteria_type} {self.criteria_value}>'


class EmployeeAchievement(db.Model):
    """
    Append-only ledger of earned achievements. Rows are never updated or deleted;
    an employee earns a code at most once per period.
    """
    __tablename__ = 'employee_achievement'
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), db.ForeignKey('employee.id'), index=True, nullable=False)
    achievement_code = db.Column(db.String(64), db.ForeignKey('achievement.code'), nullable=False)
    period = db.Column(db.String(7), index=True, nullable=False)
    earned_at = db.Column(db.DateTime, default=datetime.utcnow)
    # Column to store the audit metadata as a JSON string
    metadata_json = db.Column(db.Text, nullable=True)

    achievement = db.relationship('Achievement', lazy='joined')

    __table_args__ = (db.UniqueConstraint('employee_id', 'achievement_code', 'period', name='_employee_code_period_uc'),)

    @property
    def details(self):
        return json.loads(self.metadata_json) if self.metadata_json else {}

    def __repr__(self):
        return f'<EmployeeAchievement {self.employee_id}: {self.achievement_code} ({self.period})>'


class MonthlyRanking(db.Model):
    """
    One employee's persisted rank and aggregate figures for one period.
    Recomputing a period overwrites its rows.
    """
    __tablename__ = 'monthly_ranking'
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), db.ForeignKey('employee.id'), index=True, nullable=False)
    period = db.Column(db.String(7), index=True, nullable=False)
    department = db.Column(db.String(64), index=True)
    rank = db.Column(db.Integer, nullable=False)
    gross_sales = db.Column(db.Float, default=0)
    returns = db.Column(db.Float, default=0)
    net_sales = db.Column(db.Float, default=0)
    sales_count = db.Column(db.Integer, default=0)
    returns_count = db.Column(db.Integer, default=0)
    avg_check = db.Column(db.Float, default=0)
    best_day_sales = db.Column(db.Float, default=0)
    calculated_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('employee_id', 'period', name='_employee_period_uc'),)

    def __repr__(self):
        return f'<MonthlyRanking {self.period} #{self.rank}: {self.employee_id}>'


class AppSetting(db.Model):
    """
    Stores key-value pairs for the tunable business rules (power-rating
    constants, department roles) so they can change without a deploy.
    """
    __tablename__ = 'app_setting'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.String(256), nullable=False)
    description = db.Column(db.String(512))
    value_type = db.Column(db.String(32), default='string') # e.g., 'float', 'int', 'string', 'json'

    def __repr__(self):
        return f'<AppSetting {self.key}: {self.value}>'

    def get_value(self):
        """Casts the string value to its correct Python type."""
        if self.value_type == 'float':
            return float(self.value)
        if self.value_type == 'int':
            return int(self.value)
        if self.value_type == 'json':
            return json.loads(self.value)
        return self.value
