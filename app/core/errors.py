"""Error taxonomy for the account service.

Services raise these; app.api.errors translates them into HTTP responses.
"""


class AccountError(Exception):
    """Base class for all account-service failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AccountError):
    """A required field is missing or malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConflictError(AccountError):
    """Username or email is already taken."""


class AuthenticationError(AccountError):
    """Bad credentials at login. The message is intentionally generic."""

    def __init__(self, message: str = "Unable to login") -> None:
        super().__init__(message)


class UnauthorizedError(AccountError):
    """Missing, invalid, expired or revoked bearer token."""

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class NotFoundError(AccountError):
    """The user record no longer exists."""


class ConcurrentUpdateError(AccountError):
    """Another writer updated the same user record first."""


class OperationError(AccountError):
    """Inconsistent internal state, e.g. logout without a resolved user or token."""


class InfrastructureError(AccountError):
    """Storage is unreachable or failed."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)
