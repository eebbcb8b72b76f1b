import json
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pandas as pd
import pytest
from cryptography.exceptions import InvalidTag

from finance_tracker import db
from finance_tracker.encryption import decrypt_payload, encrypt_payload
from finance_tracker.export import flatten_dataset
from finance_tracker.models import (
    Category, CategoryHistory, CategoryStatus, DayNote, Expense, HistoryReason, IncomeSource, SavingsContribution,
    SavingsGoal,
)
from finance_tracker.stats import _period, summarize


def _frame(*rows):
    return pd.DataFrame(list(rows), columns=['category_id', 'amount', 'date'])


def test_summarize_breakdown_and_trend():
    categories = [
        SimpleNamespace(id=1, name='Food', color='#f00'),
        SimpleNamespace(id=2, name='Travel', color='#0f0'),
        SimpleNamespace(id=3, name='Unused', color='#00f'),
    ]
    expenses = _frame(
        (1, 30.0, date(2025, 1, 5)),
        (2, 60.0, date(2025, 2, 3)),
        (1, 10.0, date(2025, 2, 9)),
    )

    summary = summarize(expenses, categories, 500)

    assert summary['totalExpenses'] == 100.0
    assert summary['balance'] == 400.0
    assert summary['transactionCount'] == 3
    assert summary['averageTransaction'] == 33.33
    assert [(row['name'], row['total'], row['count'], row['percentage']) for row in summary['categoryBreakdown']] == [
        ('Travel', 60.0, 1, 60.0),
        ('Food', 40.0, 2, 40.0),
    ]
    assert summary['monthlyData'] == {'2025-01': 30.0, '2025-02': 70.0}


def test_summarize_keeps_last_six_months():
    expenses = _frame(*[(1, float(m), date(2025, m, 1)) for m in range(1, 9)])
    months = list(summarize(expenses, [], 0)['monthlyData'])
    assert months == ['2025-03', '2025-04', '2025-05', '2025-06', '2025-07', '2025-08']


def test_summarize_without_expenses():
    summary = summarize(_frame(), [], 1200)
    assert summary['totalExpenses'] == 0.0
    assert summary['balance'] == 1200.0
    assert summary['categoryBreakdown'] == []
    assert summary['monthlyData'] == {}
    assert summary['averageTransaction'] == 0.0


def test_period_ranges():
    today = date(2025, 6, 18)
    assert _period('month', None, None, today) == (date(2025, 6, 1), today)
    assert _period('year', None, None, today) == (date(2025, 1, 1), today)
    assert _period('all', None, None, today) == (None, None)
    assert _period('month', '2025-02-01', '2025-02-28', today) == (date(2025, 2, 1), date(2025, 2, 28))


def _seed_spending(user, category):
    for day, amount in ((date(2025, 2, 10), '20'), (date(2025, 3, 2), '35.50')):
        note = DayNote(user_id=user.id, date=day, total=Decimal(amount))
        note.items.append(Expense(user_id=user.id, category_id=category.id, type='Shop',
                                  amount=Decimal(amount), currency='USD'))
        db.session.add(note)
    db.session.add(IncomeSource(user_id=user.id, name='Salary', amount=Decimal('1000'), frequency='monthly'))
    db.session.commit()


def test_stats_endpoint_filters_by_note_date(auth_client, user, new_category):
    food = new_category(user)
    _seed_spending(user, food)

    body = auth_client.get('/api/stats?start=2025-03-01&end=2025-03-31').get_json()
    assert body['totalExpenses'] == 35.5
    assert body['totalIncome'] == 1000.0
    assert body['start'] == '2025-03-01'

    body = auth_client.get('/api/stats?range=all').get_json()
    assert body['transactionCount'] == 2
    assert body['start'] is None

    assert auth_client.get('/api/stats?range=decade').status_code == 400


def test_export_json_and_csv(auth_client, user, new_category):
    food = new_category(user)
    _seed_spending(user, food)

    data = auth_client.get('/api/export/json').get_json()
    assert data['user']['username'] == 'alice'
    assert len(data['expenses']) == 2
    assert 'items' not in data['day_notes'][0]

    resp = auth_client.get('/api/export/csv')
    assert resp.mimetype == 'text/csv'
    assert resp.headers['Content-Disposition'].startswith('attachment; filename=finance-export-')
    assert resp.get_data(as_text=True).splitlines()[0] == 'table,record'


def test_flatten_dataset_skips_unknown_keys():
    frame = flatten_dataset({'user': {'id': 1}, 'categories': [{'id': 7, 'name': 'Food'}], 'expenses': []})
    assert list(frame['table']) == ['categories']
    assert json.loads(frame['record'][0]) == {'id': 7, 'name': 'Food'}


# Maintenance
def test_health_is_public(client):
    body = client.get('/api/health').get_json()
    assert body['status'] == 'ok'


def test_reset_data_keeps_categories_and_goals(auth_client, user, new_category):
    food = new_category(user, allocated='100', spent='120', status=CategoryStatus.OVERDRAWN,
                        overdrawn_amount=Decimal('20'))
    _seed_spending(user, food)
    goal = SavingsGoal(user_id=user.id, title='Car', target_amount=Decimal('5000'))
    goal.contributions.append(SavingsContribution(user_id=user.id, amount=Decimal('100')))
    db.session.add_all([goal, CategoryHistory(category_id=food.id, user_id=user.id, old_amount=1,
                                              new_amount=2, reason=HistoryReason.MANUAL_ADJUST)])
    db.session.commit()

    resp = auth_client.post('/api/reset-data')
    assert resp.get_json()['success'] is True

    for model in (Expense, DayNote, IncomeSource, SavingsContribution, CategoryHistory):
        assert model.query.count() == 0
    category = db.session.get(Category, food.id)
    assert (category.spent_total, category.status, category.allocated_amount) == (
        Decimal('0'), CategoryStatus.HEALTHY, Decimal('100'))
    assert db.session.get(SavingsGoal, goal.id).target_amount == Decimal('0')


# Encrypted export
def test_encrypted_json_export_round_trips(auth_client, user, new_category):
    food = new_category(user)
    _seed_spending(user, food)

    resp = auth_client.post('/api/export/json', json={'passphrase': 'open sesame'})
    assert resp.status_code == 200
    envelope = resp.get_json()
    assert set(envelope) == {'ciphertext', 'iv', 'authTag', 'salt'}

    data = decrypt_payload(envelope, 'open sesame')
    assert data['user']['username'] == 'alice'
    assert len(data['expenses']) == 2


def test_encrypted_csv_export_round_trips(auth_client, user, new_category):
    new_category(user, 'Rent')

    envelope = auth_client.post('/api/export/csv', json={'passphrase': 'open sesame'}).get_json()
    lines = decrypt_payload(envelope, 'open sesame')['csv'].splitlines()
    assert lines[0] == 'table,record'
    assert lines[1].startswith('categories,')


def test_encrypted_export_rejects_wrong_passphrase(auth_client):
    envelope = auth_client.post('/api/export/json', json={'passphrase': 'open sesame'}).get_json()
    with pytest.raises(InvalidTag):
        decrypt_payload(envelope, 'wrong passphrase')


def test_encrypted_export_needs_long_passphrase(auth_client):
    assert auth_client.post('/api/export/json', json={'passphrase': 'short'}).status_code == 400
    assert auth_client.post('/api/export/csv', json={}).status_code == 400


def test_envelopes_use_fresh_salt_and_iv():
    first = encrypt_payload({'a': 1}, 'passphrase!')
    second = encrypt_payload({'a': 1}, 'passphrase!')
    assert first['salt'] != second['salt']
    assert first['iv'] != second['iv']
    assert decrypt_payload(second, 'passphrase!') == {'a': 1}
