from axioquan.schemas.auth import (
    ActionResult,
    AuthStatus,
    AuthUser,
    LoginForm,
    ProfileUpdate,
    PublicUser,
    SignUpForm,
)
from axioquan.schemas.session import SessionData, SessionIdentity

__all__ = [
    "ActionResult",
    "AuthStatus",
    "AuthUser",
    "LoginForm",
    "ProfileUpdate",
    "PublicUser",
    "SessionData",
    "SessionIdentity",
    "SignUpForm",
]
