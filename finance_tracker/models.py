import enum
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from . import db
from .money import ZERO, as_float


class CategoryStatus(str, enum.Enum):
    HEALTHY = 'healthy'
    OVERDRAWN = 'overdrawn'
    ADJUSTED = 'adjusted'


class HistoryReason(str, enum.Enum):
    MANUAL_ADJUST = 'manual-adjust'
    AUTO_ADJUST = 'auto-adjust'
    MONTHLY_RESET = 'monthly-reset'


def _enum_column(enum_cls):
    # Persist the hyphenated values ('auto-adjust'), not the member names.
    return db.Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


def _iso(value):
    return value.isoformat() if value else None


# Models
class User(db.Model, UserMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    currency = db.Column(db.String(3), nullable=False, default='USD')
    theme = db.Column(db.String(20), nullable=False, default='system')
    auto_adjust_budgets = db.Column(db.Boolean, nullable=False, default=True)
    reset_day = db.Column(db.Integer, nullable=False, default=1)
    last_reset_date = db.Column(db.DateTime)

    categories = db.relationship('Category', backref='user', lazy=True, cascade='all, delete-orphan')
    history = db.relationship('CategoryHistory', backref='user', lazy=True, cascade='all, delete')
    notes = db.relationship('DayNote', backref='user', lazy=True, cascade='all, delete-orphan')
    expenses = db.relationship('Expense', backref='user', lazy=True, cascade='all, delete')
    income_sources = db.relationship('IncomeSource', backref='user', lazy=True, cascade='all, delete-orphan')
    savings_goals = db.relationship('SavingsGoal', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, pw: str):
        self.password_hash = generate_password_hash(pw)

    def check_password(self, pw: str) -> bool:
        return check_password_hash(self.password_hash, pw)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'displayName': self.display_name,
            'createdAt': _iso(self.created_at),
            'preferences': {
                'currency': self.currency,
                'theme': self.theme,
                'autoAdjustBudgets': bool(self.auto_adjust_budgets),
                'resetDay': int(self.reset_day or 1),
            },
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(80), nullable=False)
    color = db.Column(db.String(20), nullable=False)
    icon = db.Column(db.String(40), nullable=False)
    allocated_amount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    spent_total = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    status = db.Column(_enum_column(CategoryStatus), nullable=False, default=CategoryStatus.HEALTHY)
    overdrawn_amount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    updated_at = db.Column(db.DateTime, default=datetime.now)

    history = db.relationship('CategoryHistory', backref='category', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'icon': self.icon,
            'allocatedAmount': as_float(self.allocated_amount),
            'spentTotal': as_float(self.spent_total),
            'status': CategoryStatus(self.status).value,
            'overdrawnAmount': as_float(self.overdrawn_amount),
            'updatedAt': _iso(self.updated_at),
        }


class CategoryHistory(db.Model):
    """One allocation change. Rows are only ever appended, or removed by undo."""

    __tablename__ = 'category_history'

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    old_amount = db.Column(db.Numeric(10, 2), nullable=False)
    new_amount = db.Column(db.Numeric(10, 2), nullable=False)
    reason = db.Column(_enum_column(HistoryReason), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'categoryId': self.category_id,
            'userId': self.user_id,
            'at': _iso(self.at),
            'oldAmount': as_float(self.old_amount),
            'newAmount': as_float(self.new_amount),
            'reason': HistoryReason(self.reason).value,
        }


class DayNote(db.Model):
    __tablename__ = 'day_notes'
    __table_args__ = (db.UniqueConstraint('user_id', 'date', name='ux_day_note_user_date'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    pinned = db.Column(db.Boolean, nullable=False, default=False)

    items = db.relationship(
        'Expense', backref='note', lazy=True, cascade='all, delete-orphan', order_by='Expense.created_at'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'items': [e.to_dict() for e in self.items],
            'total': as_float(self.total),
            'createdAt': _iso(self.created_at),
            'pinned': bool(self.pinned),
        }


class Expense(db.Model):
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    note_id = db.Column(db.Integer, db.ForeignKey('day_notes.id'), nullable=False, index=True)
    # No relationship to Category: an expense outlives a deleted category and
    # is left uncategorized (NULL) where the database enforces foreign keys.
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'))
    type = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    tags = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'amount': as_float(self.amount),
            'currency': self.currency,
            'categoryId': self.category_id,
            'noteId': self.note_id,
            'createdAt': _iso(self.created_at),
            'tags': list(self.tags or []),
        }


class IncomeSource(db.Model):
    __tablename__ = 'income_sources'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    frequency = db.Column(db.String(30), nullable=False)
    payday = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': as_float(self.amount),
            'frequency': self.frequency,
            'payday': self.payday,
            'createdAt': _iso(self.created_at),
        }


class SavingsGoal(db.Model):
    __tablename__ = 'savings_goals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(120), nullable=False)
    target_amount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    contributions = db.relationship(
        'SavingsContribution', backref='goal', lazy=True, cascade='all, delete-orphan',
        order_by='SavingsContribution.date.desc()',
    )

    @property
    def current_saved(self):
        return sum((c.amount for c in self.contributions), ZERO)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'targetAmount': as_float(self.target_amount),
            'currentSaved': as_float(self.current_saved),
            'contributions': [c.to_dict() for c in self.contributions],
            'createdAt': _iso(self.created_at),
        }


class SavingsContribution(db.Model):
    __tablename__ = 'savings_contributions'

    id = db.Column(db.Integer, primary_key=True)
    goal_id = db.Column(db.Integer, db.ForeignKey('savings_goals.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    date = db.Column(db.DateTime, nullable=False, default=datetime.now)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': as_float(self.amount),
            'date': _iso(self.date),
            'createdAt': _iso(self.created_at),
        }
