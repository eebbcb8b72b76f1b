from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from . import db
from .errors import NotFound
from .models import SavingsContribution, SavingsGoal
from .money import ZERO, to_money
from .validation import Rule, json_body, validate

bp = Blueprint('savings', __name__, url_prefix='/api/savings')

DEFAULT_GOAL_TITLE = 'Savings Funds'


def _get_goal_or_404(goal_id):
    goal = SavingsGoal.query.filter_by(id=goal_id, user_id=current_user.id).first()
    if goal is None:
        raise NotFound('Goal not found')
    return goal


def _user_goals():
    return (
        SavingsGoal.query
        .filter_by(user_id=current_user.id)
        .order_by(SavingsGoal.created_at.desc(), SavingsGoal.id.desc())
        .all()
    )


@bp.route('')
@login_required
def list_goals():
    goals = _user_goals()
    # There is always at least one goal to contribute to.
    if not goals:
        db.session.add(SavingsGoal(user_id=current_user.id, title=DEFAULT_GOAL_TITLE, target_amount=ZERO))
        db.session.commit()
        goals = _user_goals()
    return jsonify([g.to_dict() for g in goals])


@bp.route('', methods=['POST'])
@login_required
@validate(body={
    'title': Rule('string', required=True, min=1, max=120),
    'targetAmount': Rule('number', required=True, min=0),
})
def create_goal():
    data = json_body()
    goal = SavingsGoal(user_id=current_user.id, title=data['title'].strip(), target_amount=to_money(data['targetAmount']))
    db.session.add(goal)
    db.session.commit()
    return jsonify(goal.to_dict()), 201


@bp.route('/<int:goal_id>/target', methods=['PUT'])
@login_required
@validate(body={'targetAmount': Rule('number', required=True, min=0)})
def update_target(goal_id):
    goal = _get_goal_or_404(goal_id)
    goal.target_amount = to_money(json_body()['targetAmount'])
    db.session.commit()
    return jsonify(goal.to_dict())


@bp.route('/<int:goal_id>/contributions', methods=['POST'])
@login_required
@validate(body={'amount': Rule('number', required=True, min=0)})
def add_contribution(goal_id):
    goal = _get_goal_or_404(goal_id)
    now = datetime.now()
    goal.contributions.append(SavingsContribution(
        user_id=current_user.id,
        amount=to_money(json_body()['amount']),
        date=now,
        created_at=now,
    ))
    db.session.commit()
    return jsonify(goal.to_dict())


@bp.route('/<int:goal_id>/contributions', methods=['DELETE'])
@login_required
def cash_out(goal_id):
    goal = _get_goal_or_404(goal_id)
    goal.contributions.clear()
    db.session.commit()
    return jsonify(goal.to_dict())


@bp.route('/<int:goal_id>/contributions/<int:contribution_id>', methods=['DELETE'])
@login_required
def delete_contribution(goal_id, contribution_id):
    goal = _get_goal_or_404(goal_id)
    SavingsContribution.query.filter_by(id=contribution_id, goal_id=goal.id, user_id=current_user.id).delete()
    db.session.commit()
    return jsonify(goal.to_dict())


@bp.route('/<int:goal_id>', methods=['DELETE'])
@login_required
def delete_goal(goal_id):
    goal = SavingsGoal.query.filter_by(id=goal_id, user_id=current_user.id).first()
    if goal is not None:
        db.session.delete(goal)
        db.session.commit()
    return '', 204
