"""Request/response schemas for the user account endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import (
    EMAIL_MAX_LEN,
    EMAIL_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class RegisterRequest(BaseModel):
    """New account details."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        description="Unique username",
    )
    email: str = Field(
        ...,
        min_length=EMAIL_MIN_LEN,
        max_length=EMAIL_MAX_LEN,
        description="Unique email, used to log in",
    )
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Plain-text password",
    )


class LoginRequest(BaseModel):
    """Credentials for login. Missing fields fail as a normal bad login."""

    email: str = Field(default="", description="Account email")
    password: str = Field(default="", description="Password")


class UserProfile(BaseModel):
    """Public view of a user (no password hash, no tokens)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str


class LoginResponse(BaseModel):
    """Profile plus the newly issued bearer token."""

    user: UserProfile
    token: str = Field(..., description="JWT bearer token")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
