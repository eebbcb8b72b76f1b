from datetime import date, datetime

import pandas as pd
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from . import db
from .models import Category, DayNote, Expense, IncomeSource
from .validation import Rule, parse_date, validate

bp = Blueprint('stats', __name__, url_prefix='/api/stats')

TREND_MONTHS = 6
EXPENSE_COLUMNS = ['category_id', 'amount', 'date']


def _period(rng, start, end, today=None):
    if start and end:
        return parse_date(start, 'start'), parse_date(end, 'end')
    today = today or date.today()
    if rng == 'all':
        return None, None
    if rng == 'year':
        return today.replace(month=1, day=1), today
    return today.replace(day=1), today


def expense_frame(user_id, start=None, end=None) -> pd.DataFrame:
    """Expenses of ``user_id`` dated by their day note, optionally within [start, end]."""
    q = (
        db.session.query(Expense.category_id, Expense.amount, DayNote.date)
        .join(DayNote, Expense.note_id == DayNote.id)
        .filter(Expense.user_id == user_id)
    )
    if start is not None:
        q = q.filter(DayNote.date >= start)
    if end is not None:
        q = q.filter(DayNote.date <= end)
    rows = [{'category_id': c, 'amount': float(a), 'date': d} for c, a, d in q]
    return pd.DataFrame(rows, columns=EXPENSE_COLUMNS)


def summarize(expenses: pd.DataFrame, categories, total_income: float) -> dict:
    """Totals, per-category breakdown and the monthly spending trend."""
    count = len(expenses)
    total_expenses = round(float(expenses['amount'].sum()), 2) if count else 0.0

    breakdown = []
    monthly = {}
    if count:
        grouped = expenses.groupby('category_id')['amount'].agg(['sum', 'count'])
        for cat in categories:
            if cat.id not in grouped.index:
                continue
            total = round(float(grouped.loc[cat.id, 'sum']), 2)
            if total <= 0:
                continue
            breakdown.append({
                'id': cat.id,
                'name': cat.name,
                'color': cat.color,
                'total': total,
                'count': int(grouped.loc[cat.id, 'count']),
                'percentage': round(total / total_expenses * 100, 2) if total_expenses > 0 else 0.0,
            })
        breakdown.sort(key=lambda row: row['total'], reverse=True)

        months = pd.to_datetime(expenses['date']).dt.strftime('%Y-%m')
        trend = expenses.groupby(months)['amount'].sum().sort_index().tail(TREND_MONTHS)
        monthly = {month: round(float(v), 2) for month, v in trend.items()}

    return {
        'totalExpenses': total_expenses,
        'totalIncome': round(float(total_income), 2),
        'balance': round(float(total_income) - total_expenses, 2),
        'categoryBreakdown': breakdown,
        'monthlyData': monthly,
        'transactionCount': count,
        'averageTransaction': round(total_expenses / count, 2) if count else 0.0,
    }


@bp.route('')
@login_required
@validate(query={
    'range': Rule('string', choices=('month', 'year', 'all')),
    'start': Rule('string'),
    'end': Rule('string'),
})
def statistics():
    start, end = _period(request.args.get('range', 'month'), request.args.get('start'), request.args.get('end'))
    expenses = expense_frame(current_user.id, start, end)
    categories = Category.query.filter_by(user_id=current_user.id).all()
    income = IncomeSource.query.filter_by(user_id=current_user.id).all()
    total_income = sum(float(i.amount) for i in income)

    payload = summarize(expenses, categories, total_income)
    payload['start'] = start.isoformat() if start else None
    payload['end'] = end.isoformat() if end else None
    payload['generatedAt'] = datetime.now().isoformat()
    return jsonify(payload)
