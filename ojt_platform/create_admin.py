"""
Create an admin account.

Run: python -m ojt_platform.create_admin admin@example.com 's3cret-pass'
"""

import argparse

from ojt_platform.core.auth import hash_password
from ojt_platform.core.logger import logger
from ojt_platform.schemas.schemas import UserRole
from ojt_platform.services.mongo_service import UserService


def create_admin(email: str, password: str) -> str:
    """Insert an admin user and return its id. Raises Conflict if the email exists."""
    user_id = UserService().create(email, hash_password(password), UserRole.admin.value)
    logger.info(f"Admin account {email} created ({user_id})")
    return user_id


def main():
    parser = argparse.ArgumentParser(description="Create an OJT Platform admin account")
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args()
    create_admin(args.email, args.password)


if __name__ == "__main__":
    main()
