"""ORM model for user accounts and their issued bearer tokens."""

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, func

from app.models.base import Base


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    User account with credential and active token list.

    tokens: list of {"token": "<jwt>"} records, most recent last.
    version: row version for optimistic locking of token-list updates.
    """

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_user_id)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    tokens = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __mapper_args__ = {"version_id_col": version}

    def token_strings(self) -> list[str]:
        """Return the raw token strings in insertion order."""
        return [record["token"] for record in (self.tokens or []) if record.get("token")]

    def has_token(self, token: str) -> bool:
        return token in self.token_strings()
