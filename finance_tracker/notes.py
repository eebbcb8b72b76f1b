"""Day notes and the expenses recorded in them.

Every expense mutation feeds the amount change into the category's
spending through :func:`~finance_tracker.budget.apply_spend_delta`, in the
same transaction as the expense row itself. Handlers run the monthly reset
check first so that a change on or after the reset day lands in the new
period.
"""

from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from . import db
from .budget import apply_spend_delta, check_and_reset_budgets
from .errors import NotFound, ensure
from .models import Category, DayNote, Expense
from .money import ZERO, to_money
from .validation import Rule, json_body, parse_date, validate, validate_fields

bp = Blueprint('notes', __name__, url_prefix='/api/notes')

EXPENSE_FIELDS = {
    'noteId': Rule('integer', required=True),
    'amount': Rule('number', required=True, check=lambda v: v > 0, message='Amount must be positive'),
    'type': Rule('string', required=True, min=1, max=120),
    'categoryId': Rule('integer', required=True),
    'currency': Rule('string', min=3, max=3),
    'tags': Rule('list', check=lambda tags: all(isinstance(t, str) for t in tags), message='tags must be strings'),
}

EXPENSE_UPDATE_FIELDS = {
    'id': Rule('integer', required=True),
    'amount': Rule('number', check=lambda v: v > 0, message='Amount must be positive'),
    'type': Rule('string', min=1, max=120),
    'categoryId': Rule('integer'),
    'currency': Rule('string', min=3, max=3),
    'tags': Rule('list', check=lambda tags: all(isinstance(t, str) for t in tags), message='tags must be strings'),
}


def _get_note_or_404(note_id):
    note = DayNote.query.filter_by(id=note_id, user_id=current_user.id).first()
    if note is None:
        raise NotFound('Note not found')
    return note


def _ensure_category(category_id):
    exists = Category.query.filter_by(id=category_id, user_id=current_user.id).first()
    if exists is None:
        raise NotFound('Category not found')


def _spend(category_id, delta):
    apply_spend_delta(current_user.id, category_id, delta, bool(current_user.auto_adjust_budgets))


@bp.route('')
@login_required
@validate(query={'from': Rule('string'), 'to': Rule('string')})
def list_notes():
    check_and_reset_budgets(current_user.id)

    q = DayNote.query.filter_by(user_id=current_user.id)
    start, end = request.args.get('from'), request.args.get('to')
    if start and end:
        q = q.filter(DayNote.date >= parse_date(start, 'from'), DayNote.date <= parse_date(end, 'to'))
    notes = q.order_by(DayNote.date.desc()).all()
    return jsonify([n.to_dict() for n in notes])


@bp.route('', methods=['POST'])
@login_required
def create():
    check_and_reset_budgets(current_user.id)
    data = json_body()
    if data.get('type') == 'note' or 'items' in data:
        return jsonify(_create_day_note(data)), 201
    return jsonify(_create_expense(data)), 201


def _create_day_note(data):
    validate_fields(data, {'date': Rule('string', required=True, min=1), 'pinned': Rule('boolean')})
    day = parse_date(data['date'])
    pinned = bool(data.get('pinned', False))

    note = DayNote.query.filter_by(user_id=current_user.id, date=day).first()
    if note is None:
        note = DayNote(user_id=current_user.id, date=day, total=ZERO, pinned=pinned)
        db.session.add(note)
    else:
        note.pinned = pinned
    db.session.commit()
    return note.to_dict()


def _create_expense(data):
    validate_fields(data, EXPENSE_FIELDS)
    note = _get_note_or_404(data['noteId'])
    _ensure_category(data['categoryId'])

    amount = to_money(data['amount'])
    expense = Expense(
        user_id=current_user.id,
        note=note,
        category_id=data['categoryId'],
        type=data['type'].strip(),
        amount=amount,
        currency=data.get('currency') or current_user.currency,
        created_at=datetime.now(),
        tags=list(data.get('tags') or []),
    )
    db.session.add(expense)
    note.total = to_money(note.total) + amount
    _spend(expense.category_id, amount)
    db.session.commit()
    return expense.to_dict()


@bp.route('/<int:note_id>', methods=['PUT'])
@login_required
@validate(body={'expense': Rule('object'), 'pinned': Rule('boolean')})
def update(note_id):
    check_and_reset_budgets(current_user.id)
    data = json_body()
    if data.get('expense'):
        return jsonify(_update_expense(note_id, data['expense']))
    return jsonify(_update_day_note(note_id, data))


def _update_expense(note_id, payload):
    validate_fields(payload, EXPENSE_UPDATE_FIELDS, 'expense')
    note = _get_note_or_404(note_id)
    expense = Expense.query.filter_by(id=payload['id'], user_id=current_user.id).first()
    ensure(expense is not None, 'Expense not found', NotFound)

    old_amount = to_money(expense.amount)
    old_category_id = expense.category_id
    old_note = expense.note
    new_amount = to_money(payload['amount']) if payload.get('amount') is not None else old_amount
    new_category_id = payload.get('categoryId') or old_category_id
    if new_category_id != old_category_id:
        _ensure_category(new_category_id)

    expense.type = (payload.get('type') or expense.type).strip()
    expense.amount = new_amount
    expense.currency = payload.get('currency') or expense.currency
    expense.category_id = new_category_id
    if payload.get('tags') is not None:
        expense.tags = list(payload['tags'])

    if old_note.id != note.id:
        old_note.total = to_money(old_note.total) - old_amount
        note.total = to_money(note.total) + new_amount
        expense.note = note
    elif new_amount != old_amount:
        note.total = to_money(note.total) + (new_amount - old_amount)

    if new_category_id != old_category_id:
        _spend(old_category_id, -old_amount)
        _spend(new_category_id, new_amount)
    elif new_amount != old_amount:
        _spend(new_category_id, new_amount - old_amount)

    db.session.commit()
    return expense.to_dict()


def _update_day_note(note_id, data):
    note = _get_note_or_404(note_id)
    note.pinned = bool(data.get('pinned'))
    db.session.commit()
    return note.to_dict()


@bp.route('/<int:note_id>', methods=['DELETE'])
@login_required
@validate(query={'expenseId': Rule('string')})
def delete(note_id):
    check_and_reset_budgets(current_user.id)
    expense_id = request.args.get('expenseId')
    if expense_id:
        _delete_expense(note_id, expense_id)
    else:
        _delete_day_note(note_id)
    return '', 204


def _delete_expense(note_id, expense_id):
    ensure(expense_id.isdigit(), 'query.expenseId must be an integer')
    expense = Expense.query.filter_by(id=int(expense_id), note_id=note_id, user_id=current_user.id).first()
    ensure(expense is not None, 'Expense not found', NotFound)

    amount = to_money(expense.amount)
    expense.note.total = to_money(expense.note.total) - amount
    _spend(expense.category_id, -amount)
    db.session.delete(expense)
    db.session.commit()


def _delete_day_note(note_id):
    note = DayNote.query.filter_by(id=note_id, user_id=current_user.id).first()
    if note is None:
        return
    for expense in note.items:
        _spend(expense.category_id, -to_money(expense.amount))
    db.session.delete(note)
    db.session.commit()
