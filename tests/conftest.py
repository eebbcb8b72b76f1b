from datetime import datetime
from decimal import Decimal

import pytest

from finance_tracker import create_app, db
from finance_tracker.config import TestingConfig
from finance_tracker.models import Category, User

PASSWORD = 'correct horse battery'


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(username='alice', **fields):
    fields.setdefault('last_reset_date', datetime.now())
    user = User(username=username, **fields)
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


def make_category(user, name='Food', allocated='100', spent='0', **fields):
    category = Category(
        user_id=user.id,
        name=name,
        color='#FF8A65',
        icon='icon-categories',
        allocated_amount=Decimal(allocated),
        spent_total=Decimal(spent),
        **fields,
    )
    db.session.add(category)
    db.session.commit()
    return category


@pytest.fixture
def user(app):
    return make_user(auto_adjust_budgets=False)


@pytest.fixture
def new_user(app):
    return make_user


@pytest.fixture
def new_category(app):
    return make_category


@pytest.fixture
def auth_client(client, user):
    resp = client.post('/api/auth/login', json={'username': user.username, 'password': PASSWORD})
    assert resp.status_code == 200
    return client
