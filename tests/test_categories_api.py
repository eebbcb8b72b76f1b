from datetime import datetime
from decimal import Decimal

from finance_tracker import db
from finance_tracker.models import Category, CategoryHistory

FOOD = {'name': 'Food', 'color': '#FF8A65', 'icon': 'icon-categories'}


def test_create_and_list(auth_client):
    resp = auth_client.post('/api/categories', json={**FOOD, 'allocatedAmount': 250})
    assert resp.status_code == 201
    created = resp.get_json()
    assert created['allocatedAmount'] == 250.0
    assert created['spentTotal'] == 0.0
    assert created['status'] == 'healthy'

    body = auth_client.get('/api/categories').get_json()
    assert [c['name'] for c in body['categories']] == ['Food']
    assert body['history'] == []


def test_create_validates_fields(auth_client):
    resp = auth_client.post('/api/categories', json={'name': '  ', 'color': '#fff', 'icon': 'x'})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'body.name must be at least 1 characters'

    resp = auth_client.post('/api/categories', json={**FOOD, 'allocatedAmount': -5})
    assert resp.status_code == 400


def test_update_records_manual_adjust(auth_client, user, new_category):
    food = new_category(user, allocated='100', spent='80')

    resp = auth_client.put(f'/api/categories/{food.id}', json={**FOOD, 'name': 'Groceries', 'allocatedAmount': 50})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['name'] == 'Groceries'
    assert body['status'] == 'overdrawn'
    assert body['overdrawnAmount'] == 30.0

    [entry] = auth_client.get('/api/categories').get_json()['history']
    assert (entry['reason'], entry['oldAmount'], entry['newAmount']) == ('manual-adjust', 100.0, 50.0)


def test_update_without_amount_change_writes_no_history(auth_client, user, new_category):
    food = new_category(user, allocated='100')
    resp = auth_client.put(f'/api/categories/{food.id}', json={**FOOD, 'color': '#000000', 'allocatedAmount': 100})
    assert resp.status_code == 200
    assert CategoryHistory.query.count() == 0


def test_update_unknown_category(auth_client):
    resp = auth_client.put('/api/categories/99', json={**FOOD, 'allocatedAmount': 1})
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Category not found'}


def test_cannot_touch_other_users_categories(auth_client, new_user, new_category):
    theirs = new_category(new_user('bob'))
    assert auth_client.put(f'/api/categories/{theirs.id}', json={**FOOD, 'allocatedAmount': 1}).status_code == 404
    assert auth_client.delete(f'/api/categories/{theirs.id}').status_code == 204
    assert db.session.get(Category, theirs.id) is not None
    assert auth_client.get('/api/categories').get_json()['categories'] == []


def test_delete_is_silent_when_missing(auth_client, user, new_category):
    food = new_category(user)
    assert auth_client.delete(f'/api/categories/{food.id}').status_code == 204
    assert auth_client.delete(f'/api/categories/{food.id}').status_code == 204
    assert Category.query.count() == 0


def test_undo_latest_history_entry(auth_client, user, new_category):
    food = new_category(user, allocated='100', spent='20')
    auth_client.put(f'/api/categories/{food.id}', json={**FOOD, 'allocatedAmount': 150})

    resp = auth_client.post(f'/api/categories/{food.id}/history/undo')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['allocatedAmount'] == 100.0
    assert body['spentTotal'] == 100.0
    assert body['status'] == 'healthy'

    resp = auth_client.post(f'/api/categories/{food.id}/history/undo')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'No history entries to undo'}


def test_listing_runs_due_reset(auth_client, user, new_category):
    food = new_category(user, allocated='100', spent='60')
    user.last_reset_date = datetime(2000, 1, 1)
    db.session.commit()

    body = auth_client.get('/api/categories').get_json()
    assert body['categories'][0]['spentTotal'] == 0.0
    assert [h['reason'] for h in body['history']] == ['monthly-reset']
    assert food.spent_total == Decimal('0')
    assert user.last_reset_date > datetime(2000, 1, 1)
