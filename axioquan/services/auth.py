"""Auth actions: the surface page handlers call.

Every action returns an ``ActionResult``. Failures are logged here and
converted; nothing raises past these functions.
"""
import re

import structlog
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.config import get_settings
from axioquan.core.exceptions import (
    DuplicateAccountError,
    SignupValidationError,
    StoreTimeout,
)
from axioquan.core.security import hash_password, validate_password_strength, verify_password
from axioquan.schemas.auth import (
    ActionResult,
    AuthStatus,
    AuthUser,
    LoginForm,
    ProfileUpdate,
    PublicUser,
    SignUpForm,
    StatusUser,
)
from axioquan.schemas.session import SessionIdentity
from axioquan.services import accounts, role_sync
from axioquan.services.session import CookieJar, SessionManager

logger = structlog.get_logger(__name__)

# Simple, practical email check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# users.username column width
MAX_USERNAME_LENGTH = 50

INVALID_CREDENTIALS = "Invalid email or password"
UNAVAILABLE = "The service is temporarily unavailable, please try again"


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _store_failure(message: str, exc: Exception) -> ActionResult:
    if isinstance(exc, StoreTimeout):
        return ActionResult.fail(message, [UNAVAILABLE])
    return ActionResult.fail(message, ["An unexpected error occurred"])


def _check_signup_fields(form: SignUpForm, email: str) -> None:
    errors = []
    username = (form.username or "").strip()
    if not username:
        errors.append("Username is required")
    elif len(username) > MAX_USERNAME_LENGTH:
        errors.append(f"Username must be at most {MAX_USERNAME_LENGTH} characters long")
    if not email or not EMAIL_RE.match(email):
        errors.append("Email address is invalid")
    if not (form.name or "").strip():
        errors.append("Name is required")

    strength = validate_password_strength(form.password)
    if errors:
        raise SignupValidationError("Invalid signup data", errors + strength.errors)
    if not strength.is_valid:
        raise SignupValidationError("Password validation failed", strength.errors)

    if form.password != form.confirm_password:
        raise SignupValidationError("Passwords do not match")


async def sign_up(db: AsyncSession, form: SignUpForm) -> ActionResult:
    """Register a user with a primary role and an empty profile."""
    email = _normalize_email(form.email)
    role_name = form.role or get_settings().default_role
    try:
        _check_signup_fields(form, email)

        if await accounts.email_or_username_taken(db, email, form.username.strip()):
            raise DuplicateAccountError()

        user = await accounts.create_account(
            db,
            username=form.username.strip(),
            email=email,
            hashed_password=hash_password(form.password),
            name=form.name.strip(),
            role_name=role_name,
        )
    except (SignupValidationError, DuplicateAccountError) as exc:
        return ActionResult.fail(exc.message, exc.errors)
    except Exception as exc:
        # unknown role, store failure: detail stays in the logs
        logger.exception("signup_failed", username=form.username, role=role_name)
        return _store_failure("Registration failed", exc)

    logger.info("signup_succeeded", user_id=user.id, role=role_name)
    return ActionResult.ok(
        f"User registered successfully as {role_name}",
        data=PublicUser.model_validate(user),
    )


async def login(db: AsyncSession, form: LoginForm) -> ActionResult:
    """Check credentials; the same message covers every credential failure."""
    email = _normalize_email(form.email)
    try:
        record = await accounts.get_active_user_with_roles(db, email=email)
        if record is None or not verify_password(form.password, record.user.hashed_password):
            logger.info("login_rejected")
            return ActionResult.fail("Authentication failed", [INVALID_CREDENTIALS])

        user = record.user
        await accounts.stamp_last_login(db, user.id)
    except Exception as exc:
        logger.exception("login_failed")
        return _store_failure("Login failed", exc)

    primary_role = record.primary_role
    if primary_role is None:
        primary_role = get_settings().default_role
        logger.warning("primary_role_missing", user_id=user.id, roles=record.roles, fallback=primary_role)

    logger.info("login_succeeded", user_id=user.id)
    return ActionResult.ok(
        "Login successful",
        data=AuthUser(
            id=user.id,
            username=user.username,
            email=user.email,
            name=user.name,
            image=user.image,
            roles=list(record.roles),
            primary_role=primary_role,
        ),
    )


async def login_with_session(
    db: AsyncSession,
    jar: CookieJar,
    form: LoginForm,
    manager: SessionManager | None = None,
) -> ActionResult:
    result = await login(db, form)
    if not result.success:
        return result

    user: AuthUser = result.data
    manager = manager or SessionManager()
    try:
        manager.create(
            jar,
            SessionIdentity(
                user_id=user.id,
                email=user.email,
                name=user.name,
                roles=user.roles,
                primary_role=user.primary_role,
            ),
        )
    except ValueError:
        # pydantic rejects a primary role that is not among the roles
        logger.exception("session_create_failed", user_id=user.id)
        return ActionResult.fail("Session could not be created", ["Please try signing in again"])
    return result


def logout(jar: CookieJar, manager: SessionManager | None = None) -> ActionResult:
    (manager or SessionManager()).destroy(jar)
    return ActionResult.ok("Logged out successfully")


def logout_redirect(jar: CookieJar, manager: SessionManager | None = None, url: str = "/") -> RedirectResponse:
    """Log out and send the browser to the landing page."""
    logout(jar, manager)
    return jar.apply(RedirectResponse(url, status_code=303))


def refresh_session(jar: CookieJar, manager: SessionManager | None = None) -> ActionResult:
    if (manager or SessionManager()).refresh(jar):
        return ActionResult.ok("Session refreshed successfully")
    return ActionResult.fail("Failed to refresh session - user not authenticated")


def check_auth_status(jar: CookieJar, manager: SessionManager | None = None) -> ActionResult:
    session = (manager or SessionManager()).read(jar)
    if session is None:
        return ActionResult.ok("Not authenticated", data=AuthStatus(is_authenticated=False))
    return ActionResult.ok(
        "Authenticated",
        data=AuthStatus(
            is_authenticated=True,
            user=StatusUser(name=session.name, email=session.email, primary_role=session.primary_role),
        ),
    )


async def verify_current_password(db: AsyncSession, user_id: str, password: str) -> ActionResult:
    try:
        user = await accounts.get_active_user_by_id(db, user_id)
    except Exception as exc:
        logger.exception("password_check_failed", user_id=user_id)
        return _store_failure("Password verification failed", exc)
    if user is None or not verify_password(password, user.hashed_password):
        return ActionResult.fail("Current password is incorrect")
    return ActionResult.ok("Password verified")


async def get_user_by_email(db: AsyncSession, email: str) -> ActionResult:
    try:
        user = await accounts.get_active_user_by_email(db, _normalize_email(email))
    except Exception as exc:
        logger.exception("user_lookup_failed")
        return _store_failure("User lookup failed", exc)
    if user is None:
        return ActionResult.ok("User not found", data=None)
    return ActionResult.ok("User found", data=PublicUser.model_validate(user))


async def get_user_by_id(db: AsyncSession, user_id: str) -> ActionResult:
    try:
        user = await accounts.get_active_user_by_id(db, user_id)
    except Exception as exc:
        logger.exception("user_lookup_failed", user_id=user_id)
        return _store_failure("User lookup failed", exc)
    if user is None:
        return ActionResult.ok("User not found", data=None)
    return ActionResult.ok("User found", data=PublicUser.model_validate(user))


async def update_profile(db: AsyncSession, user_id: str, update: ProfileUpdate) -> ActionResult:
    try:
        user = await accounts.update_user_profile(db, user_id, update.model_dump())
    except Exception as exc:
        logger.exception("profile_update_failed", user_id=user_id)
        return _store_failure("Profile update failed", exc)
    if user is None:
        return ActionResult.fail("User not found or inactive", ["User not found"])
    logger.info("profile_updated", user_id=user_id)
    return ActionResult.ok("Profile updated successfully", data=PublicUser.model_validate(user))


async def update_user_session_roles(
    db: AsyncSession,
    jar: CookieJar,
    user_id: str,
    manager: SessionManager | None = None,
) -> ActionResult:
    if await role_sync.update_user_session(db, jar, user_id, manager):
        return ActionResult.ok("Session roles updated")
    return ActionResult.fail("Session roles could not be updated")


async def assign_user_role(
    db: AsyncSession,
    jar: CookieJar,
    user_id: str,
    role_name: str,
    primary: bool = False,
    manager: SessionManager | None = None,
) -> ActionResult:
    """Grant a role, then sync the current session if it belongs to that user."""
    try:
        await accounts.assign_role(db, user_id, role_name, primary=primary)
    except Exception as exc:
        logger.exception("role_assign_failed", user_id=user_id, role=role_name)
        return _store_failure("Role update failed", exc)

    manager = manager or SessionManager()
    current = manager.read(jar)
    if current is not None and current.user_id == user_id:
        await role_sync.update_user_session(db, jar, user_id, manager)
    return ActionResult.ok(f"Role '{role_name}' assigned")


async def invalidate_sessions(
    db: AsyncSession,
    jar: CookieJar,
    user_id: str | None = None,
    manager: SessionManager | None = None,
) -> ActionResult:
    """Wipe a user's server-side sessions, or drop the current cookie when no user is given."""
    if user_id is None:
        role_sync.invalidate_current_session(jar, manager)
        return ActionResult.ok("Current session invalidated")
    if await role_sync.invalidate_user_sessions(db, user_id):
        return ActionResult.ok("User sessions invalidated")
    return ActionResult.fail("Failed to invalidate user sessions")
