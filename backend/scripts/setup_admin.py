"""
Create (or with --force, overwrite) the system administrator account.
Run with: python -m scripts.setup_admin [email password [name]] [--force]

Values not given on the command line come from ADMIN_EMAIL, ADMIN_PASSWORD
and ADMIN_NAME.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
from typing import Optional

from sqlalchemy.orm import Session

from scoreboard.config import get_settings
from scoreboard.database import SessionLocal, engine, Base
import scoreboard.models  # noqa: F401
from scoreboard.models.enums import UserRole
from scoreboard.models.user import User
from scoreboard.services.activity import log_admin_user_created
from scoreboard.services.auth import AuthService
from scoreboard.services.passwords import password_policy_errors


def parse_args(argv=None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create the Scoreboard administrator account")
    parser.add_argument("email", nargs="?", default=settings.admin_email)
    parser.add_argument("password", nargs="?", default=settings.admin_password)
    parser.add_argument("name", nargs="?", default=settings.admin_name)
    parser.add_argument("--force", action="store_true", help="overwrite an existing account with this email")
    return parser.parse_args(argv)


def setup_admin(db: Session, email: str, password: str, name: str, force: bool = False) -> Optional[User]:
    """Return the admin account, or None when one exists and ``force`` is off."""
    existing = AuthService.get_user_by_email(db, email)
    if existing and not force:
        print(f"User {email} already exists. Use --force to overwrite it.")
        return None

    if existing:
        # Overwrite in place so memberships and score history stay attached
        print("Overwriting existing account...")
        existing.name = name
        existing.hashed_password = AuthService.get_password_hash(password)
        existing.role = UserRole.ADMIN
        admin = existing
    else:
        admin = AuthService.create_user(db, email, password, name=name, role=UserRole.ADMIN)

    log_admin_user_created(db, admin, created_by="system", commit=False)
    db.commit()
    db.refresh(admin)
    return admin


def main(argv=None) -> int:
    args = parse_args(argv)
    print("Starting admin setup...")
    print(f"Email: {args.email}")
    print(f"Name: {args.name}")

    errors = password_policy_errors(args.password)
    if errors:
        for error in errors:
            print(f"  - {error}")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = setup_admin(db, args.email, args.password, args.name, force=args.force)
        if admin is None:
            return 1
        print("Admin user ready.")
        print(f"   ID: {admin.id}")
        print(f"   Email: {admin.email}")
        print(f"   Role: {admin.role.value}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
