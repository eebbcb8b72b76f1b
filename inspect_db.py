from app import app, User, Category, CategoryHistory

with app.app_context():
    print("Users in DB:")
    for user in User.query.all():
        last_reset = user.last_reset_date.isoformat() if user.last_reset_date else "never"
        print(f"- {user.id} | {user.username} | reset day {user.reset_day} | last reset {last_reset}")

    print("\nCategories in DB:")
    for cat in Category.query.order_by(Category.user_id, Category.id).all():
        print(f"- {cat.id} | {cat.name} | {cat.spent_total}/{cat.allocated_amount} | {cat.status.value} | User {cat.user_id}")

    print("\nCategory history:")
    for entry in CategoryHistory.query.order_by(CategoryHistory.at).all():
        print(f"- {entry.at:%Y-%m-%d %H:%M} | category {entry.category_id} | {entry.old_amount} -> {entry.new_amount} | {entry.reason.value}")
