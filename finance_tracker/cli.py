from datetime import date, datetime
from decimal import Decimal

import click

from . import db
from .budget import check_and_reset_budgets
from .errors import ValidationError
from .models import Category, DayNote, Expense, IncomeSource, SavingsContribution, SavingsGoal, User

DEMO_CATEGORIES = [
    ('Food', '#FF8A65', 'icon-categories', Decimal('300')),
    ('Transport', '#81D4FA', 'icon-wallet', Decimal('150')),
    ('Entertainment', '#A5D6A7', 'icon-goals', Decimal('100')),
]


def seed_demo_data(username='demo', password='demo-password'):
    from .auth import create_user
    from .budget import apply_spend_delta

    user = create_user(username, password, display_name='Demo User')
    categories = [
        Category(user_id=user.id, name=name, color=color, icon=icon, allocated_amount=amount)
        for name, color, icon, amount in DEMO_CATEGORIES
    ]
    db.session.add_all(categories)
    db.session.flush()

    note = DayNote(user_id=user.id, date=date.today(), total=Decimal('0'))
    db.session.add(note)
    for label, amount, category in (('Groceries', Decimal('45.50'), categories[0]),
                                    ('Bus ticket', Decimal('3.50'), categories[1])):
        note.items.append(Expense(user_id=user.id, category_id=category.id, type=label,
                                  amount=amount, currency=user.currency))
        note.total += amount
        db.session.flush()
        apply_spend_delta(user.id, category.id, amount, user.auto_adjust_budgets)

    db.session.add(IncomeSource(user_id=user.id, name='Monthly Salary', amount=Decimal('3000'),
                                frequency='monthly', payday=None))
    goal = SavingsGoal(user_id=user.id, title='Emergency Fund', target_amount=Decimal('5000'))
    for amount in (Decimal('500'), Decimal('300'), Decimal('400')):
        goal.contributions.append(SavingsContribution(user_id=user.id, amount=amount, date=datetime.now()))
    db.session.add(goal)
    db.session.commit()
    return user


def delete_user_account(username):
    """Delete ``username`` and everything it owns.

    Returns a mapping of what was removed, or None if there is no such user.
    """
    user = User.query.filter_by(username=username.strip().lower()).first()
    if user is None:
        return None
    removed = {
        'categories': len(user.categories),
        'history entries': len(user.history),
        'notes': len(user.notes),
        'expenses': len(user.expenses),
        'income sources': len(user.income_sources),
        'savings goals': len(user.savings_goals),
    }
    # Contributions hang off their goals; history and expenses off the user.
    db.session.delete(user)
    db.session.commit()
    return removed


def register_commands(app):
    @app.cli.command('initdb')
    def initdb():
        db.create_all()
        print('Database initialized.')

    @app.cli.command('create-user')
    @click.option('--username', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_user_command(username, password):
        from .auth import create_user
        try:
            user = create_user(username, password)
        except ValidationError as err:
            raise click.ClickException(err.message) from err
        print(f'Created user {user.username} (id {user.id}).')

    @app.cli.command('delete-user')
    @click.argument('username')
    @click.confirmation_option(prompt='Delete this user and all their data?')
    def delete_user_command(username):
        removed = delete_user_account(username)
        if removed is None:
            raise click.ClickException(f"User '{username}' not found.")
        summary = ', '.join(f'{count} {what}' for what, count in removed.items())
        print(f"Deleted user '{username}' ({summary}).")

    @app.cli.command('seed')
    @click.option('--username', default='demo', show_default=True)
    @click.option('--password', default='demo-password', show_default=True)
    def seed(username, password):
        db.create_all()
        try:
            user = seed_demo_data(username, password)
        except ValidationError as err:
            raise click.ClickException(err.message) from err
        print(f'Seed data created for user: {user.username}')

    @app.cli.command('sweep-resets')
    def sweep_resets():
        """Run the monthly budget reset check for every user."""
        user_ids = [row.id for row in db.session.query(User.id).all()]
        performed = sum(1 for user_id in user_ids if check_and_reset_budgets(user_id))
        print(f'Checked {len(user_ids)} users, {performed} budget resets performed.')
