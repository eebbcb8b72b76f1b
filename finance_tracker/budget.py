"""Budget period engine.

Spending accumulates on each category against its allocation. When spending
goes over, the category is either flagged overdrawn or, with auto-adjust on,
its allocation is raised to match and the change is written to the history
log. Once per period, on the user's reset day, all spending is zeroed.

The reset check is lazy: API handlers call :func:`check_and_reset_budgets`
before reading categories or notes, and ``flask sweep-resets`` runs it for
every user.
"""

from datetime import date, datetime
from typing import Optional

from flask import current_app

from . import db
from .errors import NotFound
from .models import Category, CategoryHistory, CategoryStatus, HistoryReason, User
from .money import ZERO, to_money

FEBRUARY = 2
LAST_SAFE_FEBRUARY_DAY = 28
MIN_RESET_DAY = 1
MAX_RESET_DAY = 29


# Reset period
def calculate_reset_date(reference: date, reset_day: int) -> datetime:
    """Midnight of ``reset_day`` in the month of ``reference``.

    February clamps day 29 to 28; every other month has at least 29 days.
    """
    if not MIN_RESET_DAY <= reset_day <= MAX_RESET_DAY:
        raise ValueError(f'reset_day must be between {MIN_RESET_DAY} and {MAX_RESET_DAY}, got {reset_day}')
    day = reset_day
    if reference.month == FEBRUARY and day > LAST_SAFE_FEBRUARY_DAY:
        day = LAST_SAFE_FEBRUARY_DAY
    return datetime(reference.year, reference.month, day)


def should_reset(last_reset_date: Optional[datetime], current_reset_date: datetime, now: datetime) -> bool:
    # No baseline yet: spending keeps accumulating. Accounts get a baseline
    # when they are created.
    if last_reset_date is None:
        return False
    return now >= current_reset_date and last_reset_date < current_reset_date


def perform_budget_reset(user: User, reset_date: datetime):
    """Zero every category of ``user`` and advance ``last_reset_date``.

    Changes are staged on the session only; the caller commits them as one
    transaction.
    """
    for category in user.categories:
        spent = to_money(category.spent_total)
        if spent > ZERO:
            db.session.add(CategoryHistory(
                category=category,
                user_id=user.id,
                at=reset_date,
                old_amount=spent,
                new_amount=ZERO,
                reason=HistoryReason.MONTHLY_RESET,
            ))
        category.spent_total = ZERO
        category.status = CategoryStatus.HEALTHY
        category.overdrawn_amount = ZERO
        category.updated_at = reset_date
    user.last_reset_date = reset_date


def check_and_reset_budgets(user_id, now: Optional[datetime] = None) -> bool:
    """Run the monthly reset for ``user_id`` if one is due.

    Returns True when a reset was performed. Never raises: a failed reset is
    rolled back and logged so that it cannot block the read that triggered it.
    """
    try:
        user = db.session.get(User, user_id)
        if user is None:
            return False
        now = now or datetime.now()
        reset_date = calculate_reset_date(now, user.reset_day or MIN_RESET_DAY)
        if not should_reset(user.last_reset_date, reset_date, now):
            return False
        perform_budget_reset(user, reset_date)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error checking budget reset for user %s', user_id)
        return False
    current_app.logger.info('Budget reset performed for user %s on %s', user_id, reset_date.isoformat())
    return True


# Spending
def _mark_healthy(category):
    category.status = CategoryStatus.HEALTHY
    category.overdrawn_amount = ZERO


def apply_spend_delta(user_id, category_id, delta, auto_adjust_enabled: bool, now: Optional[datetime] = None):
    """Add ``delta`` (negative for refunds/deletions) to a category's spending.

    Returns the updated category, or None when the category no longer exists.
    Changes are staged on the session; the caller commits.
    """
    category = Category.query.filter_by(id=category_id, user_id=user_id).first()
    if category is None:
        current_app.logger.warning(
            'Spend delta %s ignored: category %s not found for user %s', delta, category_id, user_id
        )
        return None

    now = now or datetime.now()
    new_spent = max(ZERO, to_money(to_money(category.spent_total) + to_money(delta)))
    allocated = to_money(category.allocated_amount)
    category.spent_total = new_spent
    category.updated_at = now

    if new_spent <= allocated:
        _mark_healthy(category)
    elif auto_adjust_enabled:
        db.session.add(CategoryHistory(
            category=category,
            user_id=user_id,
            at=now,
            old_amount=allocated,
            new_amount=new_spent,
            reason=HistoryReason.AUTO_ADJUST,
        ))
        category.allocated_amount = new_spent
        category.status = CategoryStatus.ADJUSTED
        category.overdrawn_amount = ZERO
    else:
        category.status = CategoryStatus.OVERDRAWN
        category.overdrawn_amount = to_money(new_spent - allocated)
    return category


# Allocation edits
def set_allocation(category: Category, new_amount, now: Optional[datetime] = None) -> bool:
    """Apply a manual allocation change; returns True if the amount changed.

    The status is recomputed right away against the new allocation. A manual
    edit never auto-adjusts: lowering the allocation below current spending
    leaves the category overdrawn.
    """
    new_amount = to_money(new_amount)
    old_amount = to_money(category.allocated_amount)
    if new_amount == old_amount:
        return False

    now = now or datetime.now()
    db.session.add(CategoryHistory(
        category=category,
        user_id=category.user_id,
        at=now,
        old_amount=old_amount,
        new_amount=new_amount,
        reason=HistoryReason.MANUAL_ADJUST,
    ))
    category.allocated_amount = new_amount
    category.updated_at = now

    spent = to_money(category.spent_total)
    if spent > new_amount:
        category.status = CategoryStatus.OVERDRAWN
        category.overdrawn_amount = to_money(spent - new_amount)
    else:
        _mark_healthy(category)
    return True


def undo_last_history_entry(user_id, category_id, now: Optional[datetime] = None) -> Category:
    """Drop the latest history entry of a category and roll back to its old amount.

    The rollback is blunt whatever the entry's reason: allocation and
    spending both become ``old_amount`` and the category is healthy again.
    """
    category = Category.query.filter_by(id=category_id, user_id=user_id).first()
    if category is None:
        raise NotFound('Category not found')
    entry = (
        CategoryHistory.query
        .filter_by(category_id=category_id, user_id=user_id)
        .order_by(CategoryHistory.at.desc(), CategoryHistory.id.desc())
        .first()
    )
    if entry is None:
        raise NotFound('No history entries to undo')

    restored = to_money(entry.old_amount)
    db.session.delete(entry)
    category.allocated_amount = restored
    category.spent_total = restored
    _mark_healthy(category)
    category.updated_at = now or datetime.now()
    return category
