"""
Create a user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user "Site Admin" admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.exceptions import ConflictError
from app.core.security import hash_password
from app.models.user import ROLE_USER, ROLES
from app.repositories.user_repository import UserRepository
from app.schemas.common import NAME_MAX_LEN, NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account from the command line.")
    parser.add_argument("name", help=f"Display name ({NAME_MIN_LEN}-{NAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default=ROLE_USER, choices=list(ROLES))
    args = parser.parse_args(argv)

    name = args.name.strip()
    if not (NAME_MIN_LEN <= len(name) <= NAME_MAX_LEN):
        print("Invalid name length.", file=sys.stderr)
        return 1
    email = args.email.strip().lower()
    if "@" not in email:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        repository = UserRepository(db)
        if repository.email_exists(email):
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = repository.create(
            name=name,
            email=email,
            password_hash=hash_password(args.password, rounds=settings.BCRYPT_ROUNDS),
            role=args.role,
        )
        print(f"Created user '{user.email}' with role '{user.role}' (id {user.id}).")
        return 0
    except ConflictError:
        print(f"User '{email}' already exists.", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
