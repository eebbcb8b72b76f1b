from datetime import datetime

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from . import db
from .models import (
    Category, CategoryHistory, CategoryStatus, DayNote, Expense, IncomeSource, SavingsContribution, SavingsGoal,
)
from .money import ZERO

bp = Blueprint('maintenance', __name__, url_prefix='/api')


@bp.route('/health')
def health():
    return jsonify({'status': 'ok', 'timestamp': datetime.now().isoformat()})


@bp.route('/reset-data', methods=['POST'])
@login_required
def reset_data():
    """Wipe recorded activity but keep the account, its categories and goals."""
    user_id = current_user.id
    current_app.logger.info('Resetting data for user %s', user_id)

    for model in (Expense, DayNote, SavingsContribution, IncomeSource, CategoryHistory):
        model.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    Category.query.filter_by(user_id=user_id).update(
        {'spent_total': ZERO, 'overdrawn_amount': ZERO, 'status': CategoryStatus.HEALTHY},
        synchronize_session=False,
    )
    SavingsGoal.query.filter_by(user_id=user_id).update({'target_amount': ZERO}, synchronize_session=False)
    db.session.commit()
    return jsonify({'success': True, 'message': 'All data has been reset successfully'})
