"""
Create (or reset) an admin account.

Usage:
    python -m corpus_admin.create_admin
    python -m corpus_admin.create_admin --email admin@example.com --name "Site Admin"

Missing values are prompted for; the password is always read without echo
unless passed with --password. If the email already exists, that account
is promoted to admin, re-activated and given the new password.
"""
import argparse
import asyncio
import getpass
import sys
from datetime import datetime
from typing import Optional, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from corpus_admin.core.database import get_session_local, init_db, close_db
from corpus_admin.core.security import get_password_hash
from corpus_admin.models.user import User, UserRole
from corpus_admin.schemas.user import UserCreate


async def create_or_update_admin(db: AsyncSession, admin: UserCreate) -> Tuple[User, bool]:
    """
    Returns:
        (user, created) - created is False when an existing account was reset
    """
    email = admin.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    now = datetime.utcnow()
    hashed = get_password_hash(admin.password)

    if user:
        user.hashed_password = hashed
        user.role = UserRole.ADMIN
        user.is_active = True
        user.updated_at = now
        created = False
    else:
        user = User(
            email=email,
            name=admin.name,
            hashed_password=hashed,
            role=UserRole.ADMIN,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        created = True

    await db.commit()
    return user, created


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or reset a Corpus Admin admin account")
    parser.add_argument("--email", help="Admin email address")
    parser.add_argument("--name", help="Display name (2-100 characters)")
    parser.add_argument("--password", help="Password (min 8 characters); prompted if omitted")
    return parser.parse_args(argv)


def prompt_missing(args: argparse.Namespace) -> UserCreate:
    email = args.email or input("Admin email: ").strip()
    name = args.name or input("Admin name: ").strip()
    password = args.password
    if not password:
        password = getpass.getpass("Password (min 8 characters): ")
        if password != getpass.getpass("Confirm password: "):
            raise SystemExit("Passwords do not match")

    return UserCreate(email=email, name=name, password=password, role=UserRole.ADMIN)


async def run(admin: UserCreate) -> None:
    await init_db()
    try:
        session_local = get_session_local()
        async with session_local() as db:
            user, created = await create_or_update_admin(db, admin)
    finally:
        await close_db()

    if created:
        print(f"Created admin user: {user.email}")
    else:
        print(f"Updated existing user {user.email}: role=admin, password reset")


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        admin = prompt_missing(args)
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"  {field}: {error['msg']}", file=sys.stderr)
        raise SystemExit(1)

    asyncio.run(run(admin))


if __name__ == "__main__":
    main()
