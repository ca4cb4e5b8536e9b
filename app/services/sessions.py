"""Session lifecycle: register, login, logout and logout from all devices."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from app.core.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    NotFoundError,
    OperationError,
)
from app.core.security import PasswordHasher, TokenIssuer
from app.models import User
from app.services.credential_store import CredentialStore, UserCandidate

logger = logging.getLogger(__name__)

# Read-modify-write attempts for a token-list update before giving up.
MAX_SAVE_ATTEMPTS = 3

LOGIN_FAILED = "Unable to login"
NO_TOKENS = "No tokens found for this user."


@dataclass(frozen=True)
class LoginResult:
    user: User
    token: str


TokenMutation = Callable[[list[dict]], list[dict]]


class SessionManager:
    """Orchestrates the credential store, password hasher and token issuer."""

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer

    def register(self, username: str | None, email: str | None, password: str | None) -> User:
        """Create an account. Does not log the user in."""
        user = self.store.create(UserCandidate(username=username, email=email, password=password))
        logger.info("Registered user id=%s", user.id)
        return user

    def login(self, email: str, password: str) -> LoginResult:
        """
        Check credentials and issue a new bearer token.

        Unknown email and wrong password raise the same AuthenticationError so
        callers cannot tell which check failed.
        """
        user = self.store.find_by_email(email) if email else None
        hashed = user.password_hash if user is not None else self.hasher.dummy_hash
        if not self.hasher.verify(password or "", hashed) or user is None:
            logger.info("Login failed")
            raise AuthenticationError(LOGIN_FAILED)

        token = self.issuer.issue(user.id)

        def append(records: list[dict]) -> list[dict]:
            live = [r for r in records if self.issuer.verify(r.get("token", "")).valid]
            return live + [{"token": token}]

        user = self._update_tokens(user, append)
        logger.info("Login succeeded for user id=%s", user.id)
        return LoginResult(user=user, token=token)

    def logout(self, user: User | None, token: str | None) -> User:
        """Revoke the presented token only."""
        if user is None or not token:
            raise OperationError(NO_TOKENS)
        user = self._update_tokens(
            user, lambda records: [r for r in records if r.get("token") != token]
        )
        logger.info("Logged out one session for user id=%s", user.id)
        return user

    def logout_all(self, user: User | None) -> User:
        """Revoke every token issued to the user."""
        if user is None:
            raise OperationError(NO_TOKENS)
        user = self._update_tokens(user, lambda records: [])
        logger.info("Logged out all sessions for user id=%s", user.id)
        return user

    def _update_tokens(self, user: User, mutate: TokenMutation) -> User:
        """Apply mutate to the token list and save, reloading and retrying on write conflicts."""
        for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
            # Assign a new list so the JSON column is marked dirty.
            user.tokens = mutate(list(user.tokens or []))
            try:
                self.store.save(user)
                return user
            except ConcurrentUpdateError:
                logger.warning(
                    "Concurrent update on user id=%s (attempt %s/%s)",
                    user.id,
                    attempt,
                    MAX_SAVE_ATTEMPTS,
                )
                fresh = self.store.reload(user)
                if fresh is None:
                    raise NotFoundError("User not found")
                user = fresh
        raise OperationError("Could not update sessions, please retry")
