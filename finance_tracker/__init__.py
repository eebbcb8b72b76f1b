"""Personal finance tracker: a JSON API over categories, expenses, income and savings.

Create the application with :func:`create_app`; the module-level ``app.py``
does this for ``flask run`` and the maintenance scripts.
"""

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy

from .config import Config

db = SQLAlchemy()
login_manager = LoginManager()


def create_app(config_object=None, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Init
    db.init_app(app)
    login_manager.init_app(app)

    from .throttle import LoginThrottle
    app.extensions['login_throttle'] = LoginThrottle(
        max_attempts=app.config['LOGIN_MAX_ATTEMPTS'],
        lockout_seconds=app.config['LOGIN_LOCKOUT_SECONDS'],
    )

    from .errors import register_error_handlers
    register_error_handlers(app)

    from . import auth, categories, export, income, maintenance, notes, savings, stats, user
    for module in (auth, categories, notes, income, savings, user, stats, export, maintenance):
        app.register_blueprint(module.bp)

    from .cli import register_commands
    register_commands(app)

    return app


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Authentication required'}), 401
