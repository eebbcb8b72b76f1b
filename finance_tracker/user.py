from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from . import db
from .budget import MAX_RESET_DAY, MIN_RESET_DAY
from .validation import Rule, json_body, validate, validate_fields

bp = Blueprint('user', __name__, url_prefix='/api/user')

THEMES = ('system', 'light', 'dark')

PREFERENCE_FIELDS = {
    'currency': Rule('string', required=True, min=3, max=3),
    'theme': Rule('string', required=True, choices=THEMES),
    'autoAdjustBudgets': Rule('boolean', required=True),
    'resetDay': Rule('integer', min=MIN_RESET_DAY, max=MAX_RESET_DAY),
}


@bp.route('')
@login_required
def profile():
    return jsonify(current_user.to_dict())


@bp.route('/preferences', methods=['PUT'])
@login_required
@validate(body={'preferences': Rule('object', required=True)})
def update_preferences():
    prefs = json_body()['preferences']
    validate_fields(prefs, PREFERENCE_FIELDS, 'preferences')

    current_user.currency = prefs['currency'].upper()
    current_user.theme = prefs['theme']
    current_user.auto_adjust_budgets = prefs['autoAdjustBudgets']
    current_user.reset_day = prefs.get('resetDay') or MIN_RESET_DAY
    db.session.commit()
    return jsonify(current_user.to_dict())
