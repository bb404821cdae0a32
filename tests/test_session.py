import pytest
from jose import jwt
from pydantic import ValidationError

from axioquan.core.exceptions import MalformedSessionError
from axioquan.schemas.session import SessionData, SessionIdentity
from axioquan.services.session import CookieJar, SessionManager


def _identity(**overrides) -> SessionIdentity:
    values = {
        "user_id": "u-1",
        "email": "ada@example.com",
        "name": "Ada",
        "roles": ["student"],
        "primary_role": "student",
    }
    values.update(overrides)
    return SessionIdentity(**values)


def _reopen(jar: CookieJar, manager: SessionManager) -> CookieJar:
    """Next request from the same browser."""
    return CookieJar({manager.cookie_name: jar.get(manager.cookie_name)})


def test_create_then_read_preserves_identity(jar, manager, clock):
    created = manager.create(jar, _identity(roles=["student", "admin"], primary_role="admin"))
    session = manager.read(_reopen(jar, manager))
    assert session is not None
    assert session.identity() == _identity(roles=["student", "admin"], primary_role="admin")
    assert session.version == 1
    assert session.expires == created.expires == clock.now + 3600


def test_cookie_attributes(jar, manager):
    manager.create(jar, _identity())
    attrs = jar.pending["axioquan-user"]
    assert attrs["httponly"] is True
    assert attrs["secure"] is False
    assert attrs["samesite"] == "lax"
    assert attrs["path"] == "/"
    assert attrs["max_age"] == 3600


def test_production_cookie_is_secure(jar, settings, clock):
    settings.environment = "production"
    manager = SessionManager(settings, clock=clock)
    manager.create(jar, _identity())
    assert jar.pending[manager.cookie_name]["secure"] is True


def test_destroy_then_read_is_none(jar, manager):
    manager.create(jar, _identity())
    manager.destroy(jar)
    assert manager.read(jar) is None
    assert jar.pending[manager.cookie_name] is None


def test_read_without_cookie_is_none(jar, manager):
    assert manager.read(jar) is None
    assert jar.pending == {}


def test_session_valid_until_expiry_instant(jar, manager, clock):
    created = manager.create(jar, _identity())
    later = _reopen(jar, manager)

    clock.now = created.expires - 0.5
    assert manager.read(later) is not None

    clock.now = created.expires
    assert manager.read(later) is None
    assert later.pending[manager.cookie_name] is None


def test_malformed_cookie_is_destroyed(manager):
    jar = CookieJar({manager.cookie_name: "not-a-token"})
    assert manager.read(jar) is None
    assert jar.pending[manager.cookie_name] is None


def test_tampered_cookie_is_rejected(jar, manager, clock):
    manager.create(jar, _identity())
    forged = jwt.encode(
        {**_identity(roles=["admin"], primary_role="admin").model_dump(), "version": 1, "expires": clock.now + 3600},
        "some-other-secret",
        algorithm="HS256",
    )
    assert manager.read(CookieJar({manager.cookie_name: forged})) is None


def test_unknown_schema_version_is_rejected(manager, settings, clock):
    claims = {**_identity().model_dump(), "version": 2, "expires": clock.now + 3600}
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
    with pytest.raises(MalformedSessionError):
        manager.decode(token)


def test_primary_role_must_be_held():
    with pytest.raises(ValidationError):
        _identity(roles=["student"], primary_role="admin")
    with pytest.raises(ValidationError):
        SessionData(**_identity().model_dump(exclude={"primary_role"}), primary_role="instructor", expires=1.0)


def test_refresh_without_session_is_false(jar, manager):
    assert manager.refresh(jar) is False
    assert manager.should_refresh(jar) is False


def test_refresh_leaves_fresh_session_alone(jar, manager, clock):
    manager.create(jar, _identity())
    later = _reopen(jar, manager)
    clock.advance(60)
    assert manager.should_refresh(later) is False
    assert manager.refresh(later) is True
    assert later.pending == {}


def test_refresh_extends_session_near_expiry(jar, manager, clock):
    manager.create(jar, _identity(roles=["student", "instructor"], primary_role="instructor"))
    later = _reopen(jar, manager)
    clock.advance(3600 - 900)
    assert manager.should_refresh(later) is True
    assert manager.refresh(later) is True

    session = manager.read(later)
    assert session.expires == clock.now + 3600
    assert session.roles == ["student", "instructor"]
    assert session.primary_role == "instructor"


def test_refresh_of_expired_session_is_false(jar, manager, clock):
    manager.create(jar, _identity())
    later = _reopen(jar, manager)
    clock.advance(3600)
    assert manager.refresh(later) is False


def test_jar_apply_writes_set_cookie_headers(jar, manager):
    from starlette.responses import Response

    manager.create(jar, _identity())
    response = jar.apply(Response())
    header = response.headers["set-cookie"]
    assert header.startswith("axioquan-user=")
    assert "HttpOnly" in header
    assert "SameSite=lax" in header

    gone = CookieJar({manager.cookie_name: "x"})
    manager.destroy(gone)
    header = gone.apply(Response()).headers["set-cookie"]
    assert "Max-Age=0" in header or "expires=" in header.lower()
