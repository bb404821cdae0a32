import uuid

import pytest
from fastapi.testclient import TestClient

from axioquan.core.config import get_settings
from axioquan.main import app
from axioquan.services.session import SessionManager, get_session_manager
from conftest import STRONG_PASSWORD, FakeClock


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _account(prefix: str = "user") -> dict:
    tag = uuid.uuid4().hex[:8]
    return {
        "username": f"{prefix}_{tag}",
        "email": f"{prefix}_{tag}@example.com",
        "name": f"{prefix.title()} {tag}",
        "password": STRONG_PASSWORD,
        "confirm_password": STRONG_PASSWORD,
    }


def _signup_and_login(client: TestClient, account: dict, path: str = "/signup") -> None:
    response = client.post(path, data=account, follow_redirects=False)
    assert response.status_code == 303
    response = client.post(
        "/login",
        data={"email": account["email"], "password": account["password"]},
        follow_redirects=False,
    )
    assert response.status_code == 303


def test_health_and_request_id(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers.get("x-request-id")


def test_home_is_public(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Sign up" in response.text


def test_dashboard_requires_login(client):
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_signup_login_dashboard_logout(client):
    account = _account("student")
    response = client.post("/signup", data=account, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"].endswith("/login?registered=1")

    response = client.post(
        "/login",
        data={"email": account["email"], "password": account["password"]},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"].endswith("/dashboard")
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("axioquan-user=")
    assert "HttpOnly" in set_cookie

    response = client.get("/dashboard")
    assert response.status_code == 200
    assert account["name"] in response.text
    assert "student" in response.text

    # signed-in users skip the login form
    response = client.get("/login", follow_redirects=False)
    assert response.status_code == 303

    response = client.post("/logout", follow_redirects=False)
    assert response.status_code == 303
    client.cookies.clear()
    response = client.get("/dashboard", follow_redirects=False)
    assert response.headers["location"] == "/login"


def test_role_gates(client):
    _signup_and_login(client, _account("gate"))

    assert client.get("/dashboard/student").status_code == 200
    for path in ("/dashboard/instructor", "/dashboard/assistant", "/dashboard/admin"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"


def test_failed_login_shows_generic_error(client):
    account = _account("wrong")
    client.post("/signup", data=account, follow_redirects=False)
    response = client.post(
        "/login",
        data={"email": account["email"], "password": "Wr0ng!pass"},
        follow_redirects=False,
    )
    assert response.status_code == 400
    assert "Invalid email or password" in response.text
    assert "axioquan-user" not in response.headers.get("set-cookie", "")


def test_duplicate_signup_is_rejected(client):
    account = _account("dup")
    assert client.post("/signup", data=account, follow_redirects=False).status_code == 303
    response = client.post("/signup", data=account, follow_redirects=False)
    assert response.status_code == 400
    assert "User already exists" in response.text


def test_signup_with_blank_fields_renders_errors(client):
    response = client.post("/signup", data={"username": "", "email": ""}, follow_redirects=False)
    assert response.status_code == 400
    assert "Email address is invalid" in response.text


def test_admin_signup_requires_key(client):
    account = _account("admin")
    response = client.post("/admin-signup", data={**account, "admin_key": "nope"}, follow_redirects=False)
    assert response.status_code == 403
    assert "Invalid admin key" in response.text


def test_admin_grants_role(client):
    student = _account("pupil")
    assert client.post("/signup", data=student, follow_redirects=False).status_code == 303

    admin = _account("admin")
    _signup_and_login(client, {**admin, "admin_key": "test-admin-key"}, path="/admin-signup")
    assert client.get("/dashboard/admin").status_code == 200

    response = client.post(
        "/dashboard/admin/roles",
        data={"email": student["email"], "role": "instructor", "primary": "true"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert "message=" in response.headers["location"]

    response = client.post(
        "/dashboard/admin/roles",
        data={"email": "ghost@example.com", "role": "instructor"},
        follow_redirects=False,
    )
    assert "error=User+not+found" in response.headers["location"]

    client.cookies.clear()
    client.post("/login", data={"email": student["email"], "password": STRONG_PASSWORD}, follow_redirects=False)
    assert client.get("/dashboard/instructor").status_code == 200


def test_profile_update(client):
    account = _account("prof")
    _signup_and_login(client, account)

    assert client.get("/dashboard/profile").status_code == 200
    response = client.post("/dashboard/profile", data={"bio": "Likes proofs"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"].endswith("/dashboard/profile?saved=1")

    page = client.get("/dashboard/profile")
    assert "Likes proofs" in page.text
    assert account["name"] in page.text


def test_api_auth_status(client):
    response = client.get("/api/auth/status")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["is_authenticated"] is False

    account = _account("api")
    _signup_and_login(client, account)
    body = client.get("/api/auth/status").json()
    assert body["data"]["is_authenticated"] is True
    assert body["data"]["user"] == {
        "name": account["name"],
        "email": account["email"],
        "primary_role": "student",
    }


def test_api_refresh_and_sync(client):
    assert client.post("/api/auth/refresh").status_code == 401
    assert client.post("/api/auth/sync-roles").status_code == 401

    _signup_and_login(client, _account("sync"))
    assert client.post("/api/auth/refresh").status_code == 200
    assert client.post("/api/auth/sync-roles").status_code == 200

    response = client.post("/api/auth/invalidate")
    assert response.status_code == 200
    client.cookies.clear()
    assert client.get("/api/auth/status").json()["data"]["is_authenticated"] is False


def test_admin_invalidate_requires_admin(client):
    _signup_and_login(client, _account("plain"))
    response = client.post("/api/admin/users/some-id/invalidate", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def test_guard_refreshes_session_near_expiry(client):
    clock = FakeClock()
    app.dependency_overrides[get_session_manager] = lambda: SessionManager(get_settings(), clock=clock)
    try:
        _signup_and_login(client, _account("late"))
        clock.advance(3600 - 600)

        # role-gated pages hand back the session as is
        response = client.get("/dashboard/student")
        assert response.status_code == 200
        assert "axioquan-user" not in response.headers.get("set-cookie", "")

        response = client.get("/dashboard")
        assert response.status_code == 200
        assert response.headers["set-cookie"].startswith("axioquan-user=")
        assert "Max-Age=3600" in response.headers["set-cookie"]
    finally:
        app.dependency_overrides.pop(get_session_manager, None)
