"""Auth routes: login, signup, admin signup, logout. Session lives in a cookie."""
from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.config import BASE_DIR, get_settings
from axioquan.core.guards import get_cookie_jar
from axioquan.db.session import get_db
from axioquan.schemas.auth import LoginForm, SignUpForm
from axioquan.services import auth as auth_actions
from axioquan.services.session import CookieJar, SessionManager, get_session_manager

router = APIRouter()
settings = get_settings()
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

DbSession = Annotated[AsyncSession, Depends(get_db)]
Jar = Annotated[CookieJar, Depends(get_cookie_jar)]
Manager = Annotated[SessionManager, Depends(get_session_manager)]


def _render(request: Request, jar: CookieJar, name: str, context: dict, status_code: int = 200):
    response = templates.TemplateResponse(request, name, {"current_session": None, **context}, status_code=status_code)
    return jar.apply(response)


def _redirect(url, jar: CookieJar, **params) -> RedirectResponse:
    """303 redirect with query params, carrying pending cookie changes."""
    if params:
        url = url.include_query_params(**params)
    return jar.apply(RedirectResponse(url, status_code=303))


@router.get("/login", response_class=HTMLResponse)
async def login_get(request: Request, jar: Jar, manager: Manager, registered: int = 0):
    """Show login form; signed-in users go straight to the dashboard."""
    if manager.read(jar) is not None:
        return _redirect(request.url_for("dashboard"), jar)
    return _render(request, jar, "login.html", {"registered": registered})


@router.post("/login", response_class=HTMLResponse)
async def login_post(
    request: Request,
    db: DbSession,
    jar: Jar,
    manager: Manager,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
):
    """Authenticate, set the session cookie and go to the dashboard."""
    result = await auth_actions.login_with_session(db, jar, LoginForm(email=email, password=password), manager)
    if not result.success:
        return _render(
            request,
            jar,
            "login.html",
            {"message": result.message, "errors": result.errors, "email": email},
            status_code=400,
        )
    return _redirect(request.url_for("dashboard"), jar)


@router.get("/signup", response_class=HTMLResponse)
async def signup_get(request: Request, jar: Jar):
    return _render(request, jar, "signup.html", {"form": {}})


@router.post("/signup", response_class=HTMLResponse)
async def signup_post(
    request: Request,
    db: DbSession,
    jar: Jar,
    username: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    name: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    confirm_password: Annotated[str, Form()] = "",
):
    """Create a student account, then send the user to the login form."""
    form = SignUpForm(
        username=username,
        email=email,
        name=name,
        password=password,
        confirm_password=confirm_password,
    )
    result = await auth_actions.sign_up(db, form)
    if not result.success:
        return _render(
            request,
            jar,
            "signup.html",
            {"message": result.message, "errors": result.errors, "form": {"username": username, "email": email, "name": name}},
            status_code=400,
        )
    return _redirect(request.url_for("login_get"), jar, registered=1)


@router.get("/admin-signup", response_class=HTMLResponse)
async def admin_signup_get(request: Request, jar: Jar):
    return _render(request, jar, "admin_signup.html", {"form": {}})


@router.post("/admin-signup", response_class=HTMLResponse)
async def admin_signup_post(
    request: Request,
    db: DbSession,
    jar: Jar,
    username: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    name: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    confirm_password: Annotated[str, Form()] = "",
    admin_key: Annotated[str, Form()] = "",
):
    """Create an admin account; requires the registration key."""
    form_values = {"username": username, "email": email, "name": name}
    if not secrets.compare_digest(admin_key.encode("utf-8"), settings.admin_registration_key.encode("utf-8")):
        return _render(
            request,
            jar,
            "admin_signup.html",
            {"message": "Invalid admin key", "errors": ["Please provide a valid admin registration key."], "form": form_values},
            status_code=403,
        )

    form = SignUpForm(
        username=username,
        email=email,
        name=name,
        password=password,
        confirm_password=confirm_password,
        role="admin",
    )
    result = await auth_actions.sign_up(db, form)
    if not result.success:
        return _render(
            request,
            jar,
            "admin_signup.html",
            {"message": result.message, "errors": result.errors, "form": form_values},
            status_code=400,
        )
    return _redirect(request.url_for("login_get"), jar, registered=1)


@router.post("/logout", response_class=RedirectResponse)
async def logout_post(request: Request, jar: Jar, manager: Manager):
    """Clear session cookie and redirect to the landing page."""
    return auth_actions.logout_redirect(jar, manager, url=str(request.url_for("home")))
