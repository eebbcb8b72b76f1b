import json
from datetime import datetime

import pandas as pd
from flask import Blueprint, Response, jsonify
from flask_login import current_user, login_required

from .encryption import encrypt_payload
from .models import Category, CategoryHistory, DayNote, Expense, IncomeSource, SavingsGoal
from .validation import Rule, json_body, validate

bp = Blueprint('export', __name__, url_prefix='/api/export')

PASSPHRASE_FIELDS = {'passphrase': Rule('string', required=True, min=8)}

TABLES = (
    ('categories', Category),
    ('category_history', CategoryHistory),
    ('day_notes', DayNote),
    ('expenses', Expense),
    ('income_sources', IncomeSource),
    ('savings_goals', SavingsGoal),
)


def build_dataset(user) -> dict:
    dataset = {'exportedAt': datetime.now().isoformat(), 'user': user.to_dict()}
    for name, model in TABLES:
        rows = model.query.filter_by(user_id=user.id).order_by(model.id).all()
        if model is DayNote:
            # Expenses are exported on their own; keep notes flat.
            dataset[name] = [{k: v for k, v in r.to_dict().items() if k != 'items'} for r in rows]
        else:
            dataset[name] = [r.to_dict() for r in rows]
    return dataset


def flatten_dataset(dataset) -> pd.DataFrame:
    rows = [
        {'table': name, 'record': json.dumps(record, sort_keys=True)}
        for name, _ in TABLES
        for record in dataset.get(name, [])
    ]
    return pd.DataFrame(rows, columns=['table', 'record'])


def _csv_text(user) -> str:
    return flatten_dataset(build_dataset(user)).to_csv(index=False)


@bp.route('/json')
@login_required
def export_json():
    return jsonify(build_dataset(current_user))


@bp.route('/csv')
@login_required
def export_csv():
    filename = f'finance-export-{datetime.now():%Y%m%d}.csv'
    return Response(
        _csv_text(current_user),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


# Encrypted exports
@bp.route('/json', methods=['POST'])
@login_required
@validate(body=PASSPHRASE_FIELDS)
def export_json_encrypted():
    return jsonify(encrypt_payload(build_dataset(current_user), json_body()['passphrase']))


@bp.route('/csv', methods=['POST'])
@login_required
@validate(body=PASSPHRASE_FIELDS)
def export_csv_encrypted():
    return jsonify(encrypt_payload({'csv': _csv_text(current_user)}, json_body()['passphrase']))
