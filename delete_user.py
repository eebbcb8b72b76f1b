import sys

from app import app
from finance_tracker.cli import delete_user_account

username = sys.argv[1] if len(sys.argv) > 1 else input("Enter username to delete: ")

with app.app_context():
    removed = delete_user_account(username)
    if removed is None:
        print(f"❌ User '{username}' not found.")
        sys.exit(1)
    print(f"✅ User '{username}' deleted along with:")
    for what, count in removed.items():
        print(f"   {count} {what}")
