"""API routes: JSON auth status, refresh, role sync and invalidation."""
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.guards import get_cookie_jar, require_session
from axioquan.db.session import get_db
from axioquan.schemas.auth import ActionResult
from axioquan.services import auth as auth_actions
from axioquan.services.session import CookieJar, SessionManager, get_session_manager

router = APIRouter(prefix="/api", tags=["api"])

DbSession = Annotated[AsyncSession, Depends(get_db)]
Jar = Annotated[CookieJar, Depends(get_cookie_jar)]
Manager = Annotated[SessionManager, Depends(get_session_manager)]


def _json(result: ActionResult, jar: CookieJar, failure_status: int = 401) -> JSONResponse:
    status_code = 200 if result.success else failure_status
    return jar.apply(JSONResponse(result.model_dump(mode="json"), status_code=status_code))


@router.get("/auth/status")
async def auth_status(jar: Jar, manager: Manager):
    """Basic auth status without sensitive data."""
    return _json(auth_actions.check_auth_status(jar, manager), jar)


@router.post("/auth/refresh")
async def auth_refresh(jar: Jar, manager: Manager):
    """Extend the session if it is close to expiry."""
    return _json(auth_actions.refresh_session(jar, manager), jar)


@router.post("/auth/sync-roles")
async def auth_sync_roles(db: DbSession, jar: Jar, manager: Manager):
    """Reload the current user's roles into the session cookie."""
    session = manager.read(jar)
    if session is None:
        return _json(ActionResult.fail("Not authenticated"), jar)
    return _json(await auth_actions.update_user_session_roles(db, jar, session.user_id, manager), jar, 409)


@router.post("/auth/invalidate")
async def auth_invalidate(db: DbSession, jar: Jar, manager: Manager):
    """Drop the current session cookie."""
    return _json(await auth_actions.invalidate_sessions(db, jar, manager=manager), jar)


@router.post("/admin/users/{user_id}/invalidate", dependencies=[Depends(require_session("admin"))])
async def admin_invalidate_user(user_id: str, db: DbSession, jar: Jar, manager: Manager):
    """Wipe the server-side session rows of a user."""
    return _json(await auth_actions.invalidate_sessions(db, jar, user_id=user_id, manager=manager), jar, 500)
