from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from . import db
from .errors import NotFound
from .models import IncomeSource
from .money import to_money
from .validation import Rule, json_body, validate

bp = Blueprint('income', __name__, url_prefix='/api/income')


@bp.route('')
@login_required
def list_income():
    rows = (
        IncomeSource.query
        .filter_by(user_id=current_user.id)
        .order_by(IncomeSource.created_at.desc(), IncomeSource.id.desc())
        .all()
    )
    return jsonify([r.to_dict() for r in rows])


@bp.route('', methods=['POST'])
@login_required
@validate(body={
    'name': Rule('string', required=True, min=1, max=120),
    'amount': Rule('number', required=True, min=0),
    'frequency': Rule('string', required=True, min=1, max=30),
    'payday': Rule('string', max=30),
})
def create_income():
    data = json_body()
    source = IncomeSource(
        user_id=current_user.id,
        name=data['name'].strip(),
        amount=to_money(data['amount']),
        frequency=data['frequency'],
        payday=data.get('payday'),
    )
    db.session.add(source)
    db.session.commit()
    return jsonify(source.to_dict()), 201


@bp.route('/<int:income_id>', methods=['PUT'])
@login_required
@validate(body={
    'name': Rule('string', min=1, max=120),
    'amount': Rule('number', min=0),
    'frequency': Rule('string', min=1, max=30),
    'payday': Rule('string', max=30),
})
def update_income(income_id):
    source = IncomeSource.query.filter_by(id=income_id, user_id=current_user.id).first()
    if source is None:
        raise NotFound('Income source not found')

    data = json_body()
    if data.get('name') is not None:
        source.name = data['name'].strip()
    if data.get('amount') is not None:
        source.amount = to_money(data['amount'])
    if data.get('frequency') is not None:
        source.frequency = data['frequency']
    if data.get('payday') is not None:
        source.payday = data['payday']
    db.session.commit()
    return jsonify(source.to_dict())


@bp.route('/<int:income_id>', methods=['DELETE'])
@login_required
def delete_income(income_id):
    IncomeSource.query.filter_by(id=income_id, user_id=current_user.id).delete()
    db.session.commit()
    return '', 204
