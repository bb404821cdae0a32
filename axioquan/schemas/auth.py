"""Pydantic schemas for auth forms, public user views and action results."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignUpForm(BaseModel):
    username: str
    email: str
    password: str
    confirm_password: str
    name: str
    role: str | None = None  # defaults to settings.default_role


class LoginForm(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    """Partial update: None keeps the stored value."""

    name: str | None = None
    bio: str | None = None
    timezone: str | None = None
    locale: str | None = None


class PublicUser(BaseModel):
    """User row without secret fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    name: str
    bio: str | None = None
    image: str | None = None
    is_active: bool = True
    locale: str | None = None
    timezone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login: datetime | None = None


class AuthUser(BaseModel):
    """Result of a successful login: identity plus role membership."""

    id: str
    username: str
    email: str
    name: str
    image: str | None = None
    roles: list[str] = Field(default_factory=list)
    primary_role: str


class StatusUser(BaseModel):
    name: str
    email: str
    primary_role: str


class AuthStatus(BaseModel):
    is_authenticated: bool
    user: StatusUser | None = None


class ActionResult(BaseModel):
    """Uniform outcome of every auth action."""

    success: bool
    message: str
    errors: list[str] | None = None
    data: Any = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "ActionResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, errors: list[str] | None = None) -> "ActionResult":
        return cls(success=False, message=message, errors=errors or [message])
