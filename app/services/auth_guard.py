"""Bearer-token authentication for protected requests."""

import logging
from dataclasses import dataclass

from app.core.errors import UnauthorizedError
from app.core.security import TokenIssuer
from app.models import User
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Resolved user and the raw token that authenticated the request."""

    user: User
    token: str


def authenticate(
    token: str | None,
    issuer: TokenIssuer,
    store: CredentialStore,
) -> AuthContext:
    """
    Verify the bearer token and resolve it to a live user and token pair.

    Rejects with UnauthorizedError when no bearer token was presented,
    the token is invalid or expired, the user no longer exists, or the token
    was revoked. Read-only.
    """
    if not token:
        raise UnauthorizedError()

    result = issuer.verify(token)
    if not result.valid or result.user_id is None:
        logger.info("Rejected token (expired=%s)", result.expired)
        raise UnauthorizedError()

    user = store.find_by_id(result.user_id)
    if user is None:
        logger.info("Token subject %s no longer exists", result.user_id)
        raise UnauthorizedError()

    if not user.has_token(token):
        logger.info("Revoked token presented for user id=%s", user.id)
        raise UnauthorizedError()

    return AuthContext(user=user, token=token)
