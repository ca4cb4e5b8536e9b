"""Password hashing and JWT issuance/verification for bearer-token sessions."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import cached_property, lru_cache
from typing import Any

import bcrypt
import jwt

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72

# Min/max lengths for input validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
EMAIL_MIN_LEN = 3
EMAIL_MAX_LEN = 320
PASSWORD_MIN_LEN = 1
PASSWORD_MAX_LEN = 128


class PasswordHasher:
    """One-way salted bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash. Malformed hashes never match."""
        if not hashed:
            return False
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    @cached_property
    def dummy_hash(self) -> str:
        """Hash of a random password, checked when no user matches so timing stays the same."""
        return self.hash(uuid.uuid4().hex)


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of checking a presented bearer token."""

    user_id: str | None
    valid: bool
    expired: bool = False


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuer:
    """Creates and verifies signed, expiring JWTs bound to a user id."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    def issue(self, user_id: str) -> str:
        """Create a JWT with sub, iat, exp and a unique jti."""
        if not self.secret:
            raise ValueError("Token signing secret is not configured")
        now = self.clock()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.ttl,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenVerification:
        """
        Check signature and expiry. Fails closed: any signature mismatch,
        malformed token, missing subject or missing secret is invalid.
        """
        if not self.secret or not token:
            return TokenVerification(user_id=None, valid=False)
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            payload = self._decode_ignoring_expiry(token)
            sub = payload.get("sub") if payload else None
            return TokenVerification(user_id=sub or None, valid=False, expired=True)
        except jwt.PyJWTError as e:
            logger.debug("Rejected token: %s", e)
            return TokenVerification(user_id=None, valid=False)

        sub = payload.get("sub")
        if not sub or not isinstance(sub, str):
            return TokenVerification(user_id=None, valid=False)
        return TokenVerification(user_id=sub, valid=True)

    def _decode_ignoring_expiry(self, token: str) -> dict[str, Any] | None:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except jwt.PyJWTError:
            return None


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Return the process-wide hasher built from settings."""
    return PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Return the process-wide token issuer built from settings."""
    cfg = get_settings()
    return TokenIssuer(
        secret=cfg.JWT_SECRET.get_secret_value(),
        algorithm=cfg.JWT_ALGORITHM,
        ttl=timedelta(minutes=cfg.JWT_EXPIRE_MINUTES),
    )
