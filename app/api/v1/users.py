"""User account endpoints and the auth dependencies they share."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import (
    PasswordHasher,
    TokenIssuer,
    get_password_hasher,
    get_token_issuer,
)
from app.schemas.users import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    UserProfile,
)
from app.services.auth_guard import AuthContext, authenticate
from app.services.credential_store import CredentialStore
from app.services.sessions import SessionManager

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_credential_store(
    db: Annotated[Session, Depends(get_db)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> CredentialStore:
    """Dependency: credential store bound to the request's DB session."""
    return CredentialStore(db, hasher)


def get_session_manager(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> SessionManager:
    return SessionManager(store, hasher, issuer)


def get_auth_context(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthContext:
    """Dependency: require a live Bearer token. Raises UnauthorizedError (401) otherwise."""
    token = credentials.credentials if credentials is not None else None
    return authenticate(token, issuer, store)


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
def register(
    body: RegisterRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> MessageResponse:
    """Create an account. Log in separately to obtain a token."""
    sessions.register(body.username, body.email, body.password)
    return MessageResponse(message="User registered successfully!")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}},
)
def login(
    body: LoginRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> LoginResponse:
    """
    Authenticate with email and password; returns the profile and a JWT.
    Include the token in the Authorization header as: Bearer <token>
    """
    result = sessions.login(body.email, body.password)
    return LoginResponse(user=UserProfile.model_validate(result.user), token=result.token)


@router.get("/me", response_model=UserProfile)
def read_profile(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserProfile:
    return UserProfile.model_validate(ctx.user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={500: {"model": ErrorResponse}},
)
def logout(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> MessageResponse:
    """Revoke the token used for this request."""
    sessions.logout(ctx.user, ctx.token)
    return MessageResponse(message="Logged out successfully!")


@router.post(
    "/logoutAll",
    response_model=MessageResponse,
    responses={500: {"model": ErrorResponse}},
)
def logout_all(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> MessageResponse:
    """Revoke every token issued to the current user."""
    sessions.logout_all(ctx.user)
    return MessageResponse(message="Logged out from all devices successfully!")
