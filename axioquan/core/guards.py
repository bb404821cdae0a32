"""Role gate for page handlers: session lookup, refresh and redirects."""
from typing import Annotated

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse

from axioquan.schemas.session import SessionData
from axioquan.services.session import CookieJar, SessionManager, get_session_manager

LOGIN_URL = "/login"
DASHBOARD_URL = "/dashboard"


class AuthRedirect(Exception):
    """Raised by a guard; turned into a 303 carrying the jar's cookie changes."""

    def __init__(self, url: str, jar: CookieJar):
        self.url = url
        self.jar = jar
        super().__init__(url)


async def auth_redirect_handler(request: Request, exc: AuthRedirect) -> RedirectResponse:
    return exc.jar.apply(RedirectResponse(exc.url, status_code=303))


def get_cookie_jar(request: Request) -> CookieJar:
    """One jar per request (FastAPI caches the dependency within a request)."""
    return CookieJar.from_request(request)


def require_session(role: str | None = None):
    """Dependency factory.

    Without a role: the session, refreshed if close to expiry.
    With a role: the session if it holds that role, else back to the dashboard.
    No session at all: to the login page.
    """

    async def dependency(
        jar: Annotated[CookieJar, Depends(get_cookie_jar)],
        manager: Annotated[SessionManager, Depends(get_session_manager)],
    ) -> SessionData:
        session = manager.read(jar)
        if session is None:
            raise AuthRedirect(LOGIN_URL, jar)
        if role is None:
            manager.refresh(jar)
            return manager.read(jar) or session
        if role not in session.roles:
            raise AuthRedirect(DASHBOARD_URL, jar)
        return session

    return dependency


def optional_session(
    jar: Annotated[CookieJar, Depends(get_cookie_jar)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SessionData | None:
    return manager.read(jar)
