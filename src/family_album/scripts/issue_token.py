# src/family_album/scripts/issue_token.py
"""Create a family member if needed and print a bearer token for them.

Account management is out of scope for the web application, so members
are provisioned from the command line:

    python -m family_album.scripts.issue_token --email ana@example.com --name Ana
"""
from __future__ import annotations

import argparse

from sqlalchemy import select
from sqlalchemy.orm import Session

from family_album.core.security import create_access_token
from family_album.db.session import SessionLocal
from family_album.models import User


def get_or_create_user(db: Session, email: str, display_name: str, is_admin: bool) -> User:
    """Return the user with ``email``, creating it on first use.

    Args:
        db: Database session
        email: Login e-mail of the family member
        display_name: Name shown next to their posts
        is_admin: Whether the member may manage every post

    Returns:
        The existing or newly created user
    """
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(email=email, display_name=display_name, is_admin=is_admin)
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"[issue_token] created user {user.id} <{email}>")
    elif is_admin and not user.is_admin:
        user.is_admin = True
        db.commit()
        print(f"[issue_token] promoted user {user.id} to admin")
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue an access token for a family member")
    parser.add_argument("--email", required=True, help="Login e-mail of the member")
    parser.add_argument("--name", default=None, help="Display name (defaults to the e-mail)")
    parser.add_argument("--admin", action="store_true", help="Grant administrator rights")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = get_or_create_user(db, args.email, args.name or args.email, args.admin)
        print(create_access_token(user.id))
    finally:
        db.close()


if __name__ == "__main__":
    main()
