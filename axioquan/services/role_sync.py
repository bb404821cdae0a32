"""Role sync: rewrite a live session after its user's roles changed in the store."""
import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.config import get_settings
from axioquan.core.exceptions import AuthError
from axioquan.schemas.session import SessionIdentity
from axioquan.services import accounts
from axioquan.services.session import CookieJar, SessionManager

logger = structlog.get_logger(__name__)


async def update_user_session(
    db: AsyncSession,
    jar: CookieJar,
    user_id: str,
    manager: SessionManager | None = None,
) -> bool:
    """Reload roles for ``user_id`` into the current session.

    Returns False without touching the cookie when there is no session or
    the session belongs to somebody else.
    """
    manager = manager or SessionManager()
    current = manager.read(jar)
    if current is None:
        logger.info("role_sync_skipped", reason="no_session", user_id=user_id)
        return False
    if current.user_id != user_id:
        logger.warning("role_sync_skipped", reason="user_mismatch", user_id=user_id, session_user_id=current.user_id)
        return False

    try:
        record = await accounts.get_active_user_with_roles(db, user_id=user_id)
        if record is None:
            logger.info("role_sync_skipped", reason="user_not_found", user_id=user_id)
            return False
        identity = SessionIdentity(
            user_id=current.user_id,
            email=current.email,
            name=current.name,
            roles=record.roles,
            primary_role=record.primary_role or get_settings().default_role,
        )
    except (AuthError, SQLAlchemyError, ValidationError):
        logger.exception("role_sync_failed", user_id=user_id)
        return False

    manager.create(jar, identity)
    logger.info("role_sync_applied", user_id=user_id, roles=identity.roles, primary_role=identity.primary_role)
    return True


async def invalidate_user_sessions(db: AsyncSession, user_id: str) -> bool:
    """Delete every server-side session row of a user."""
    try:
        deleted = await accounts.delete_user_sessions(db, user_id)
    except (AuthError, SQLAlchemyError):
        logger.exception("invalidate_user_sessions_failed", user_id=user_id)
        return False
    logger.info("user_sessions_invalidated", user_id=user_id, deleted=deleted)
    return True


def invalidate_current_session(jar: CookieJar, manager: SessionManager | None = None) -> bool:
    """Drop the local session cookie only."""
    (manager or SessionManager()).destroy(jar)
    logger.info("current_session_invalidated")
    return True
