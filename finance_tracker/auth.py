from datetime import datetime

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_user, logout_user

from . import db, login_manager
from .errors import TooManyRequests, Unauthorized, ValidationError
from .models import User
from .validation import Rule, json_body, validate

bp = Blueprint('auth', __name__, url_prefix='/api/auth')

MIN_PASSWORD_LENGTH = 8


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def _throttle():
    return current_app.extensions['login_throttle']


def create_user(username: str, password: str, display_name=None) -> User:
    """Create an account with default preferences.

    ``last_reset_date`` starts at creation time, so the first monthly reset
    happens on the next reset day rather than never.
    """
    username = username.strip().lower()
    if User.query.filter_by(username=username).first():
        raise ValidationError('Username already exists')
    user = User(
        username=username,
        display_name=display_name or username,
        currency=current_app.config['DEFAULT_CURRENCY'],
        last_reset_date=datetime.now(),
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


# Routes: Auth
@bp.route('/register', methods=['POST'])
@validate(body={
    'username': Rule('string', required=True, min=1, max=80),
    'password': Rule('string', required=True, min=MIN_PASSWORD_LENGTH),
    'displayName': Rule('string', max=120),
})
def register():
    data = json_body()
    user = create_user(data['username'], data['password'], data.get('displayName'))
    login_user(user)
    return jsonify({'user': user.to_dict()}), 201


@bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    username = data.get('username')
    password = data.get('password')
    if not isinstance(username, str) or not isinstance(password, str) or not username.strip() or not password:
        raise ValidationError('Username and password are required')

    username = username.strip().lower()
    throttle = _throttle()
    locked_until = throttle.locked_until(username)
    if locked_until:
        raise TooManyRequests(
            'Too many failed attempts. Please try again later.',
            payload={'lockoutEnd': int(locked_until * 1000)},
        )

    user = User.query.filter_by(username=username).first()
    if user is None or not user.check_password(password):
        remaining, locked_until = throttle.register_failure(username)
        current_app.logger.warning('Failed login for %s', username)
        if locked_until:
            raise TooManyRequests(
                f'Too many failed attempts. Account locked for {throttle.lockout_seconds} seconds.',
                payload={'lockoutEnd': int(locked_until * 1000)},
            )
        raise Unauthorized(f'Invalid username or password. {remaining} attempts remaining.')

    throttle.reset(username)
    login_user(user, remember=bool(data.get('remember')))
    return jsonify({'success': True, 'user': user.to_dict()})


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})


@bp.route('/status')
def status():
    if not current_user.is_authenticated:
        return jsonify({'authenticated': False})
    return jsonify({'authenticated': True, 'user': current_user.to_dict()})
