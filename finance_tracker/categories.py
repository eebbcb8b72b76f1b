from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from . import db
from .budget import check_and_reset_budgets, set_allocation, undo_last_history_entry
from .errors import NotFound
from .models import Category, CategoryHistory
from .money import ZERO, to_money
from .validation import Rule, json_body, validate

bp = Blueprint('categories', __name__, url_prefix='/api/categories')

CATEGORY_FIELDS = {
    'name': Rule('string', required=True, min=1, max=80),
    'color': Rule('string', required=True, min=1, max=20),
    'icon': Rule('string', required=True, min=1, max=40),
}


def _get_category_or_404(category_id):
    category = Category.query.filter_by(id=category_id, user_id=current_user.id).first()
    if category is None:
        raise NotFound('Category not found')
    return category


@bp.route('')
@login_required
def list_categories():
    check_and_reset_budgets(current_user.id)
    categories = Category.query.filter_by(user_id=current_user.id).order_by(Category.id).all()
    history = (
        CategoryHistory.query
        .filter_by(user_id=current_user.id)
        .order_by(CategoryHistory.at.desc(), CategoryHistory.id.desc())
        .all()
    )
    return jsonify({
        'categories': [c.to_dict() for c in categories],
        'history': [h.to_dict() for h in history],
    })


@bp.route('', methods=['POST'])
@login_required
@validate(body={**CATEGORY_FIELDS, 'allocatedAmount': Rule('number', min=0)})
def create_category():
    data = json_body()
    category = Category(
        user_id=current_user.id,
        name=data['name'].strip(),
        color=data['color'],
        icon=data['icon'],
        allocated_amount=to_money(data.get('allocatedAmount', 0)),
        spent_total=ZERO,
        overdrawn_amount=ZERO,
        updated_at=datetime.now(),
    )
    db.session.add(category)
    db.session.commit()
    return jsonify(category.to_dict()), 201


@bp.route('/<int:category_id>', methods=['PUT'])
@login_required
@validate(body={**CATEGORY_FIELDS, 'allocatedAmount': Rule('number', required=True, min=0)})
def update_category(category_id):
    check_and_reset_budgets(current_user.id)
    data = json_body()
    category = _get_category_or_404(category_id)
    category.name = data['name'].strip()
    category.color = data['color']
    category.icon = data['icon']
    category.updated_at = datetime.now()
    set_allocation(category, data['allocatedAmount'])
    db.session.commit()
    return jsonify(category.to_dict())


@bp.route('/<int:category_id>', methods=['DELETE'])
@login_required
def delete_category(category_id):
    category = Category.query.filter_by(id=category_id, user_id=current_user.id).first()
    if category is not None:
        db.session.delete(category)
        db.session.commit()
    return '', 204


@bp.route('/<int:category_id>/history/undo', methods=['POST'])
@login_required
def undo_history(category_id):
    check_and_reset_budgets(current_user.id)
    category = undo_last_history_entry(current_user.id, category_id)
    db.session.commit()
    return jsonify(category.to_dict())
