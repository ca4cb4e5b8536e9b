"""
Create an account without going through the HTTP API. Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD
Example:
  python -m app.scripts.create_user alice alice@example.com your-secure-password
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import AccountError
from app.core.security import get_password_hasher
from app.services.credential_store import CredentialStore, UserCandidate

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account.")
    parser.add_argument("username", help="Username (1-255 chars, unique)")
    parser.add_argument("email", help="Email used to log in (unique)")
    parser.add_argument("password", help="Password (1-128 chars)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=get_settings().LOG_LEVEL, format="%(levelname)s %(name)s %(message)s")

    db = SessionLocal()
    try:
        store = CredentialStore(db, get_password_hasher())
        user = store.create(
            UserCandidate(username=args.username, email=args.email, password=args.password)
        )
        print(f"Created user '{user.username}' <{user.email}> with id {user.id}.")
        return 0
    except AccountError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
