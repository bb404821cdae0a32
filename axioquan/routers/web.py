"""Web routes: landing page, dashboards, profile, admin role grants. Jinja2 templates."""
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.config import BASE_DIR
from axioquan.core.guards import get_cookie_jar, optional_session, require_session
from axioquan.db.session import get_db
from axioquan.models.role import DEFAULT_ROLES
from axioquan.schemas.auth import ProfileUpdate
from axioquan.schemas.session import SessionData
from axioquan.services import auth as auth_actions
from axioquan.services.session import CookieJar, SessionManager, get_session_manager

router = APIRouter()
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

DbSession = Annotated[AsyncSession, Depends(get_db)]
Jar = Annotated[CookieJar, Depends(get_cookie_jar)]
Manager = Annotated[SessionManager, Depends(get_session_manager)]

ROLE_PAGE_TITLES = {
    "student": "Student Dashboard",
    "instructor": "Instructor Dashboard",
    "teaching_assistant": "Assistant Dashboard",
}


def _render(request: Request, jar: CookieJar, name: str, context: dict, status_code: int = 200):
    response = templates.TemplateResponse(request, name, context, status_code=status_code)
    return jar.apply(response)


def _blank_to_none(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


# ---------- routes ----------

@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    jar: Jar,
    current_session: Annotated[SessionData | None, Depends(optional_session)],
):
    return _render(request, jar, "home.html", {"current_session": current_session})


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    jar: Jar,
    manager: Manager,
    current_session: Annotated[SessionData, Depends(require_session())],
):
    status = auth_actions.check_auth_status(jar, manager)
    expires_in = max(0, round((current_session.expires - manager.clock()) / 60))
    return _render(
        request,
        jar,
        "dashboard.html",
        {
            "current_session": current_session,
            "auth_status": status.data,
            "expires_in_minutes": expires_in,
        },
    )


async def _role_page(request: Request, jar: CookieJar, current_session: SessionData, title: str):
    return _render(request, jar, "role_dashboard.html", {"current_session": current_session, "title": title})


@router.get("/dashboard/student", response_class=HTMLResponse)
async def student_dashboard(
    request: Request,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session("student"))],
):
    return await _role_page(request, jar, current_session, ROLE_PAGE_TITLES["student"])


@router.get("/dashboard/instructor", response_class=HTMLResponse)
async def instructor_dashboard(
    request: Request,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session("instructor"))],
):
    return await _role_page(request, jar, current_session, ROLE_PAGE_TITLES["instructor"])


@router.get("/dashboard/assistant", response_class=HTMLResponse)
async def assistant_dashboard(
    request: Request,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session("teaching_assistant"))],
):
    return await _role_page(request, jar, current_session, ROLE_PAGE_TITLES["teaching_assistant"])


@router.get("/dashboard/admin", response_class=HTMLResponse)
async def admin_dashboard(
    request: Request,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session("admin"))],
    message: str | None = None,
    error: str | None = None,
):
    return _render(
        request,
        jar,
        "admin.html",
        {
            "current_session": current_session,
            "roles": list(DEFAULT_ROLES),
            "message": message,
            "error": error,
        },
    )


@router.post("/dashboard/admin/roles", response_class=RedirectResponse)
async def admin_assign_role(
    request: Request,
    db: DbSession,
    jar: Jar,
    manager: Manager,
    current_session: Annotated[SessionData, Depends(require_session("admin"))],
    email: Annotated[str, Form()] = "",
    role: Annotated[str, Form()] = "",
    primary: Annotated[bool, Form()] = False,
):
    """Grant a role to a user (approval of a role-upgrade request)."""
    url = request.url_for("admin_dashboard")
    lookup = await auth_actions.get_user_by_email(db, email)
    if not lookup.success or lookup.data is None:
        return jar.apply(RedirectResponse(url.include_query_params(error="User not found"), status_code=303))

    result = await auth_actions.assign_user_role(db, jar, lookup.data.id, role, primary=primary, manager=manager)
    params = {"message": result.message} if result.success else {"error": result.message}
    return jar.apply(RedirectResponse(url.include_query_params(**params), status_code=303))


@router.get("/dashboard/profile", response_class=HTMLResponse)
async def profile_get(
    request: Request,
    db: DbSession,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session())],
    saved: int = 0,
):
    result = await auth_actions.get_user_by_id(db, current_session.user_id)
    return _render(
        request,
        jar,
        "profile.html",
        {
            "current_session": current_session,
            "user": result.data,
            "saved": saved,
            "errors": None if result.success else result.errors,
        },
    )


@router.post("/dashboard/profile", response_class=HTMLResponse)
async def profile_post(
    request: Request,
    db: DbSession,
    jar: Jar,
    current_session: Annotated[SessionData, Depends(require_session())],
    name: Annotated[str, Form()] = "",
    bio: Annotated[str, Form()] = "",
    timezone: Annotated[str, Form()] = "",
    locale: Annotated[str, Form()] = "",
):
    """Save the provided fields; blank inputs keep the stored value."""
    update = ProfileUpdate(
        name=_blank_to_none(name),
        bio=_blank_to_none(bio),
        timezone=_blank_to_none(timezone),
        locale=_blank_to_none(locale),
    )
    result = await auth_actions.update_profile(db, current_session.user_id, update)
    if not result.success:
        return _render(
            request,
            jar,
            "profile.html",
            {"current_session": current_session, "user": None, "saved": 0, "errors": result.errors},
            status_code=400,
        )
    return jar.apply(
        RedirectResponse(request.url_for("profile_get").include_query_params(saved=1), status_code=303)
    )
