"""Credential store: persistence of user records with unique username and email."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import (
    ConcurrentUpdateError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from app.core.security import PasswordHasher
from app.models import User

logger = logging.getLogger(__name__)

STORAGE_UNAVAILABLE = "Storage is unavailable"


@dataclass
class UserCandidate:
    """Registration input before the password is hashed."""

    username: str | None
    email: str | None
    password: str | None


def _require(value: str | None, field: str, *, strip: bool = True) -> str:
    text = value.strip() if (strip and value is not None) else value
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    return value


class CredentialStore:
    """Create, look up and save User records. Storage failures become InfrastructureError."""

    def __init__(self, session: Session, hasher: PasswordHasher) -> None:
        self.session = session
        self.hasher = hasher

    def create(self, candidate: UserCandidate) -> User:
        username = _require(candidate.username, "username").strip()
        email = _require(candidate.email, "email").strip()
        password = _require(candidate.password, "password", strip=False)

        try:
            if self.session.query(User.id).filter(User.username == username).first():
                raise ConflictError("Username already exists")
            if self.session.query(User.id).filter(User.email == email).first():
                raise ConflictError("Email already exists")

            user = User(
                username=username,
                email=email,
                password_hash=self.hasher.hash(password),
                tokens=[],
            )
            self.session.add(user)
            self.session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same identity.
            self.session.rollback()
            logger.info("Unique constraint violated on registration: %s", e.orig)
            raise ConflictError("Username or email already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to create user")
            raise InfrastructureError(STORAGE_UNAVAILABLE, cause=e) from e

        logger.info("Created user id=%s", user.id)
        return user

    def find_by_email(self, email: str) -> User | None:
        try:
            return self.session.query(User).filter(User.email == email).first()
        except SQLAlchemyError as e:
            logger.exception("Failed to look up user by email")
            raise InfrastructureError(STORAGE_UNAVAILABLE, cause=e) from e

    def find_by_id(self, user_id: str) -> User | None:
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to look up user by id")
            raise InfrastructureError(STORAGE_UNAVAILABLE, cause=e) from e

    def reload(self, user: User) -> User | None:
        """Discard local state for user and read the current row."""
        user_id = user.id
        self.session.expire_all()
        return self.find_by_id(user_id)

    def save(self, user: User) -> None:
        """
        Persist mutations to an existing user.

        Raises NotFoundError if the row is gone and ConcurrentUpdateError if
        another writer bumped its version first.
        """
        user_id = user.id
        try:
            self.session.add(user)
            self.session.commit()
        except StaleDataError as e:
            self.session.rollback()
            if self.find_by_id(user_id) is None:
                raise NotFoundError("User not found") from e
            raise ConcurrentUpdateError("User was modified concurrently") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to save user id=%s", user_id)
            raise InfrastructureError(STORAGE_UNAVAILABLE, cause=e) from e
