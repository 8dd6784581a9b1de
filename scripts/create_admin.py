"""Bootstrap an admin account.

Creates the account if the email is unknown, otherwise promotes the
existing account to admin. The password must satisfy the password policy.

Usage:
    PYTHONPATH=src python scripts/create_admin.py --email admin@example.com --username admin
    (password from --password or ADMIN_PASSWORD)
"""

import argparse
import getpass
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from adapter.mongodb.connection import DATABASE_NAME, get_mongodb_client
from adapter.mongodb.user_repository import MongoUserRepository
from domain.model.errors import DuplicateError, StorageError, ValidationError
from domain.model.user import Role
from services.password import PasswordPolicy, hash_password, validate_password


def create_admin(repo, username: str, email: str, password: str) -> str:
    """Return 'created' or 'promoted'."""
    existing = repo.get_by_email(email)
    if existing:
        repo.update_role(existing.id, Role.ADMIN)
        return 'promoted'

    validate_password(password, PasswordPolicy.from_env())
    try:
        repo.create(username=username, email=email, password_hash=hash_password(password), role=Role.ADMIN)
    except DuplicateError:
        # Created concurrently; promote instead
        user = repo.get_by_email(email)
        if user is None:
            raise StorageError(f"Account {email} reported as duplicate but could not be loaded")
        repo.update_role(user.id, Role.ADMIN)
        return 'promoted'
    return 'created'


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument('--email', default=os.getenv('ADMIN_EMAIL'))
    parser.add_argument('--username', default=os.getenv('ADMIN_USERNAME', 'admin'))
    parser.add_argument('--password', default=os.getenv('ADMIN_PASSWORD'))
    args = parser.parse_args()

    if not args.email:
        print("--email or ADMIN_EMAIL is required", file=sys.stderr)
        return 2
    password = args.password or getpass.getpass("Admin password: ")

    client = get_mongodb_client()
    if not client:
        print("MongoDB connection failed (check MONGO_URL)", file=sys.stderr)
        return 1

    repo = MongoUserRepository(client[DATABASE_NAME])
    repo.ensure_indexes()
    try:
        outcome = create_admin(repo, args.username, args.email, password)
    except ValidationError as e:
        for err in e.errors or [{"message": e.message}]:
            print(f"- {err['message']}", file=sys.stderr)
        return 2
    except StorageError as e:
        print(e.message, file=sys.stderr)
        return 1

    print(f"Admin {outcome}: {args.email}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
