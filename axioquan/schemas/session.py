"""Pydantic schemas for the client-held session record."""
from typing import Literal

from pydantic import BaseModel, model_validator

SESSION_SCHEMA_VERSION = 1


class SessionIdentity(BaseModel):
    """Identity and role membership carried by a session."""

    user_id: str
    email: str
    name: str
    roles: list[str]
    primary_role: str

    @model_validator(mode="after")
    def _primary_role_is_held(self):
        if self.primary_role not in self.roles:
            raise ValueError(f"primary_role '{self.primary_role}' is not one of roles {self.roles}")
        return self


class SessionData(SessionIdentity):
    """Encoded into the session cookie. ``expires`` is a UNIX timestamp in seconds."""

    version: Literal[1] = SESSION_SCHEMA_VERSION
    expires: float

    def identity(self) -> SessionIdentity:
        return SessionIdentity(
            user_id=self.user_id,
            email=self.email,
            name=self.name,
            roles=list(self.roles),
            primary_role=self.primary_role,
        )
