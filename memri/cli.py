"""CLI commands for Memri."""

import argparse
import getpass
import sys

from sqlalchemy.orm import Session

from memri.config import settings
from memri.database import Base, SessionLocal, engine
from memri.models import User
from memri.services.auth import PasswordHasher
from memri.services.sessions import SessionService, SqlSessionBackend


def create_user(username: str, password: str | None = None, display_name: str | None = None) -> None:
    """Create a login account."""
    db: Session = SessionLocal()

    try:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            print(f"Error: User '{username}' already exists.")
            sys.exit(1)

        # Get password if not provided
        if not password:
            password = getpass.getpass("Password: ")
            password_confirm = getpass.getpass("Confirm password: ")
            if password != password_confirm:
                print("Error: Passwords do not match.")
                sys.exit(1)

        if len(password) < 8:
            print("Error: Password must be at least 8 characters.")
            sys.exit(1)

        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        user = User(
            username=username,
            password_hash=hasher.hash(password),
            display_name=display_name or username,
        )
        db.add(user)
        db.commit()

        print(f"User created successfully: {username}")

    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(bind=bind or engine)
    print("Database tables created.")


def sweep_sessions() -> int:
    """Delete expired sessions once and report how many were removed."""
    service = SessionService.from_settings(SqlSessionBackend(SessionLocal), settings)
    count = service.sweep()
    print(f"Removed {count} expired session(s).")
    return count


def main():
    parser = argparse.ArgumentParser(description="Memri CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # create-user command
    create_user_parser = subparsers.add_parser("create-user", help="Create a user")
    create_user_parser.add_argument("--username", required=True, help="Login name")
    create_user_parser.add_argument(
        "--password", help="Password (will prompt if not provided)"
    )
    create_user_parser.add_argument("--display-name", help="Name shown in the app")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("sweep-sessions", help="Delete expired sessions now")

    args = parser.parse_args()

    if args.command == "init-db":
        init_db()
    elif args.command == "create-user":
        create_user(args.username, args.password, args.display_name)
    elif args.command == "sweep-sessions":
        sweep_sessions()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
