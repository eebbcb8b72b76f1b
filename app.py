from finance_tracker import create_app, db
from finance_tracker.models import Category, CategoryHistory, User  # noqa: F401  # used by the maintenance scripts

app = create_app()


if __name__ == '__main__':
    # Create tables on first run
    with app.app_context():
        db.create_all()
    app.run(debug=True)
