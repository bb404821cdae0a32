"""Session cookie codec and refresh policy.

The session lives only in the client cookie. Handlers build a ``CookieJar``
from the incoming request, pass it to ``SessionManager`` and apply the jar
to whatever response they return. Nothing here reads ambient request state.

Cookie states: absent, valid (``now < expires``), expired (``now >= expires``).
"""
import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog
from jose import JWTError, jwt
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import Response

from axioquan.core.config import Settings, get_settings
from axioquan.core.exceptions import MalformedSessionError
from axioquan.schemas.session import SessionData, SessionIdentity

logger = structlog.get_logger(__name__)


class CookieJar:
    """Cookies of one request plus the Set-Cookie changes made while handling it."""

    def __init__(self, cookies: Mapping[str, str] | None = None):
        self._values: dict[str, str] = dict(cookies or {})
        self._pending: dict[str, dict[str, Any] | None] = {}
        self._delete_paths: dict[str, str] = {}

    @classmethod
    def from_request(cls, request: Request) -> "CookieJar":
        return cls(request.cookies)

    def get(self, name: str) -> str | None:
        return self._values.get(name)

    def set(self, name: str, value: str, **attrs: Any) -> None:
        self._values[name] = value
        self._pending[name] = {"value": value, **attrs}

    def delete(self, name: str, path: str = "/") -> None:
        self._values.pop(name, None)
        self._pending[name] = None
        self._delete_paths[name] = path

    @property
    def pending(self) -> dict[str, dict[str, Any] | None]:
        """Cookie name -> Set-Cookie attributes, or None for a deletion."""
        return dict(self._pending)

    def apply(self, response: Response) -> Response:
        for name, attrs in self._pending.items():
            if attrs is None:
                response.delete_cookie(name, path=self._delete_paths.get(name, "/"))
            else:
                response.set_cookie(key=name, **attrs)
        return response


class SessionManager:
    """Create, read, destroy and refresh the session cookie."""

    def __init__(self, settings: Settings | None = None, clock: Callable[[], float] = time.time):
        self.settings = settings or get_settings()
        self.clock = clock

    @property
    def cookie_name(self) -> str:
        return self.settings.session_cookie_name

    # ---------- codec ----------

    def encode(self, data: SessionData) -> str:
        return jwt.encode(data.model_dump(mode="json"), self.settings.secret_key, algorithm=self.settings.algorithm)

    def decode(self, value: str) -> SessionData:
        try:
            claims = jwt.decode(value, self.settings.secret_key, algorithms=[self.settings.algorithm])
            return SessionData.model_validate(claims)
        except (JWTError, ValidationError) as exc:
            raise MalformedSessionError("Session cookie is malformed") from exc

    # ---------- state machine ----------

    def create(self, jar: CookieJar, identity: SessionIdentity) -> SessionData:
        """Issue a fresh session; any previous cookie is replaced."""
        data = SessionData(
            **identity.model_dump(),
            expires=self.clock() + self.settings.session_duration_seconds,
        )
        jar.set(
            self.cookie_name,
            self.encode(data),
            max_age=self.settings.session_duration_seconds,
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
            path="/",
        )
        return data

    def read(self, jar: CookieJar) -> SessionData | None:
        value = jar.get(self.cookie_name)
        if not value:
            return None
        try:
            data = self.decode(value)
        except MalformedSessionError:
            logger.warning("session_cookie_malformed")
            self.destroy(jar)
            return None
        if self.clock() >= data.expires:
            logger.info("session_expired", user_id=data.user_id)
            self.destroy(jar)
            return None
        return data

    def destroy(self, jar: CookieJar) -> None:
        jar.delete(self.cookie_name, path="/")

    def should_refresh(self, jar: CookieJar) -> bool:
        data = self.read(jar)
        if data is None:
            return False
        return data.expires - self.clock() <= self.settings.session_refresh_threshold_seconds

    def refresh(self, jar: CookieJar) -> bool:
        """Extend a session close to expiry. False only when there is no session."""
        data = self.read(jar)
        if data is None:
            return False
        if data.expires - self.clock() > self.settings.session_refresh_threshold_seconds:
            return True
        self.create(jar, data.identity())
        logger.info("session_refreshed", user_id=data.user_id)
        return True


def get_session_manager() -> SessionManager:
    """FastAPI dependency; tests override it to inject a clock."""
    return SessionManager(get_settings())
