"""Tests for login, lockout and the session middleware."""

from __future__ import annotations

import pytest

from adminportal.dashboard.server import PortalConfig, PortalServer
from adminportal.dashboard.server_auth import DEFAULT_AFTER_LOGIN, _safe_next
from adminportal.preferences import PreferencesStore
from adminportal.storage import Database, UserStatus


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path):
    """Create a temporary database for testing."""
    db = Database(tmp_path / "test.db")
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def portal_config():
    """Auth-required portal config over plain http."""
    return PortalConfig(enabled=True, secure_cookies=False, auth_required=True)


@pytest.fixture
async def portal_server(database, portal_config, tmp_path):
    """Create a portal server instance."""
    return PortalServer(
        config=portal_config,
        database=database,
        preferences=PreferencesStore(tmp_path / "prefs.json"),
    )


@pytest.fixture
async def admin_user(database):
    """Seed an account that can sign in."""
    return await database.add_user("admin@example.com", password="correct-horse", department="IT")


def _cookie(client, name: str):
    for cookie in client.session.cookie_jar:
        if cookie.key == name:
            return cookie.value
    return None


# =============================================================================
# Helpers
# =============================================================================


def test_safe_next_rejects_external_targets():
    """Only same-site paths are allowed after login."""
    assert _safe_next("/admin/users?page=2") == "/admin/users?page=2"
    assert _safe_next("//evil.example") == DEFAULT_AFTER_LOGIN
    assert _safe_next("https://evil.example") == DEFAULT_AFTER_LOGIN
    assert _safe_next(None) == DEFAULT_AFTER_LOGIN


# =============================================================================
# JSON Login
# =============================================================================


@pytest.mark.asyncio
async def test_login_requires_email_and_password(portal_server):
    """Missing credentials are a 400."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        resp = await client.post("/api/login", json={"Email": "admin@example.com"})
        assert resp.status == 400
        assert await resp.json() == {"success": False, "message": "Email and password are required."}


@pytest.mark.asyncio
async def test_login_unknown_email(portal_server):
    """Unknown accounts get the generic invalid-credentials answer."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        resp = await client.post("/api/login", json={"Email": "nobody@example.com", "Password": "x"})
        assert resp.status == 401
        assert (await resp.json())["message"] == "Invalid credentials."


@pytest.mark.asyncio
async def test_login_success_sets_strict_http_only_cookie(portal_server, admin_user, database):
    """A successful login issues a 24h HttpOnly SameSite=Strict session cookie."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        resp = await client.post(
            "/api/login",
            json={"Email": "admin@example.com", "Password": "correct-horse"},
        )
        assert resp.status == 200
        data = await resp.json()
        assert data == {"success": True, "message": "Login successful", "userId": admin_user}

        header = next(h for h in resp.headers.getall("Set-Cookie") if h.startswith("session="))
        assert "HttpOnly" in header
        assert "SameSite=Strict" in header
        assert "Max-Age=86400" in header
        assert "Path=/" in header
        assert "Secure" not in header

        # The cookie now authenticates API calls.
        resp = await client.get("/api/users")
        assert resp.status == 200
        users = (await resp.json())["data"]
        assert users[0]["email"] == "admin@example.com"

    logs = await database.list_session_logs()
    assert [log["status"] for log in logs] == ["login"]
    assert logs[0]["department"] == "IT"


@pytest.mark.asyncio
async def test_secure_cookie_flag_follows_config(database, admin_user, tmp_path):
    """Production config marks the session cookie Secure."""
    from aiohttp.test_utils import TestClient, TestServer

    server = PortalServer(
        config=PortalConfig(enabled=True, secure_cookies=True),
        database=database,
        preferences=PreferencesStore(tmp_path / "prefs.json"),
    )
    async with TestClient(TestServer(server._app)) as client:
        resp = await client.post(
            "/api/login",
            json={"email": "admin@example.com", "password": "correct-horse"},
        )
        assert resp.status == 200
        header = next(h for h in resp.headers.getall("Set-Cookie") if h.startswith("session="))
        assert "Secure" in header


@pytest.mark.asyncio
async def test_three_failed_attempts_lock_the_account(portal_server, admin_user, database):
    """The third wrong password locks the account; the right one is then refused."""
    from aiohttp.test_utils import TestClient, TestServer

    bad = {"Email": "admin@example.com", "Password": "wrong"}
    async with TestClient(TestServer(portal_server._app)) as client:
        first = await client.post("/api/login", json=bad)
        second = await client.post("/api/login", json=bad)
        third = await client.post("/api/login", json=bad)

        assert [first.status, second.status, third.status] == [401, 401, 403]
        locked = await third.json()
        assert locked["message"].startswith("Account locked after 3 failed attempts.")
        assert locked["lockUntil"]

        resp = await client.post(
            "/api/login",
            json={"Email": "admin@example.com", "Password": "correct-horse"},
        )
        assert resp.status == 403
        assert (await resp.json())["message"].startswith("Account is locked.")
        assert _cookie(client, "session") is None

    user = await database.get_user_by_id(admin_user)
    assert user["status"] == UserStatus.LOCKED.value


@pytest.mark.asyncio
async def test_successful_login_resets_failed_attempts(portal_server, admin_user, database):
    """A good password before the threshold clears the counter."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        await client.post("/api/login", json={"Email": "admin@example.com", "Password": "wrong"})
        resp = await client.post("/api/login", json={"Email": "admin@example.com", "Password": "correct-horse"})
        assert resp.status == 200

    user = await database.get_user_by_id(admin_user)
    assert user["login_attempts"] == 0


# =============================================================================
# Middleware
# =============================================================================


@pytest.mark.asyncio
async def test_api_requires_session(portal_server):
    """Protected API routes answer 401 JSON without a session."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        resp = await client.get("/api/users")
        assert resp.status == 401
        assert await resp.json() == {"success": False, "error": "Authentication required."}

        resp = await client.get("/healthz")
        assert resp.status == 200


@pytest.mark.asyncio
async def test_admin_page_redirects_to_login(portal_server):
    """Protected pages redirect to the login form with the original path."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        resp = await client.get("/admin/users?page=2", allow_redirects=False)
        assert resp.status == 302
        assert resp.headers["Location"] == "/login?next=%2Fadmin%2Fusers%3Fpage%3D2"


@pytest.mark.asyncio
async def test_forged_session_cookie_is_rejected(portal_server):
    """An unknown token is treated as no session."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        client.session.cookie_jar.update_cookies({"session": "forged"})
        resp = await client.get("/api/sessions")
        assert resp.status == 401


# =============================================================================
# Form Login / Logout
# =============================================================================


@pytest.mark.asyncio
async def test_login_form_round_trip(portal_server, admin_user, database):
    """The login page sets a CSRF cookie that the form post must echo."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        page = await client.get("/login?next=/admin/users")
        assert page.status == 200
        html = await page.text()
        assert "Sign in" in html
        csrf_token = _cookie(client, "portal_csrf")
        assert csrf_token and csrf_token in html

        rejected = await client.post(
            "/login",
            data={"email": "admin@example.com", "password": "correct-horse"},
            allow_redirects=False,
        )
        assert rejected.status == 403

        resp = await client.post(
            "/login",
            data={
                "csrf": csrf_token,
                "email": "admin@example.com",
                "password": "correct-horse",
                "next": "/admin/users",
            },
            allow_redirects=False,
        )
        assert resp.status == 303
        assert resp.headers["Location"] == "/admin/users"
        assert _cookie(client, "session")

        page = await client.get("/admin/users")
        assert page.status == 200
        assert "admin@example.com" in await page.text()

        resp = await client.post("/logout", data={"csrf": csrf_token}, allow_redirects=False)
        assert resp.status == 303
        assert resp.headers["Location"].startswith("/login")

        resp = await client.get("/api/users")
        assert resp.status == 401

    statuses = sorted(log["status"] for log in await database.list_session_logs())
    assert statuses == ["login", "logout"]


@pytest.mark.asyncio
async def test_login_form_failure_redirects_with_message(portal_server, admin_user):
    """Bad credentials go back to the form with the reason."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        client.session.cookie_jar.update_cookies({"portal_csrf": "tok"})
        resp = await client.post(
            "/login",
            data={"csrf": "tok", "email": "admin@example.com", "password": "nope"},
            allow_redirects=False,
        )
        assert resp.status == 303
        location = resp.headers["Location"]
        assert location.startswith("/login?")
        assert "error=1" in location
        assert "Invalid+credentials." in location


@pytest.mark.asyncio
async def test_api_logout_clears_session(portal_server, admin_user):
    """JSON logout revokes the token server-side."""
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(portal_server._app)) as client:
        await client.post("/api/login", json={"Email": "admin@example.com", "Password": "correct-horse"})
        token = _cookie(client, "session")
        assert token

        resp = await client.post("/api/logout")
        assert resp.status == 200
        assert await resp.json() == {"success": True, "message": "Logged out"}

        client.session.cookie_jar.update_cookies({"session": token})
        resp = await client.get("/api/users")
        assert resp.status == 401
