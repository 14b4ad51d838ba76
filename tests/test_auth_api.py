"""Auth routes + the session gate over HTTP.

Learn: Tests cover:
1. Registration + duplicate prevention (JSON and form posts)
2. Login → session cookie, one error message for every failure
3. GET /login reflecting the session
4. Gated routes redirecting anonymous visitors to /login
5. Logout destroying the session, re-login closing the old session's sockets
6. A session whose user no longer exists being dropped
"""

import pytest
from sqlalchemy import delete

from shopfloor.config import settings
from shopfloor.db.models import User
from shopfloor.realtime.coordinator import CLOSE_LOGIN_REQUIRED


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    r = await client.post("/register", json={"username": "alice", "password": "pw1"})
    assert r.status_code == 201
    assert r.json() == {"username": "alice"}
    # Registering does not log in.
    assert settings.session_cookie_name not in r.cookies


@pytest.mark.asyncio
async def test_register_with_form_post(client):
    r = await client.post("/register", data={"username": "bob", "password": "pw"})
    assert r.status_code == 201
    assert r.json()["username"] == "bob"


@pytest.mark.asyncio
async def test_register_duplicate_username(client):
    body = {"username": "alice", "password": "pw1"}
    assert (await client.post("/register", json=body)).status_code == 201

    r = await client.post("/register", json={"username": "alice", "password": "pw2"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_register_missing_password(client):
    r = await client.post("/register", json={"username": "alice"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_register_malformed_json(client):
    r = await client.post(
        "/register",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_register_min_password_length(client, monkeypatch):
    monkeypatch.setattr(settings, "min_password_length", 8)
    r = await client.post("/register", json={"username": "alice", "password": "short"})
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_sets_session_cookie(client):
    await client.post("/register", json={"username": "alice", "password": "pw1"})

    r = await client.post("/login", json={"username": "alice", "password": "pw1"})
    assert r.status_code == 200
    assert r.json() == {"username": "alice"}
    assert r.cookies.get(settings.session_cookie_name)

    r = await client.get("/login")
    assert r.json() == {"authenticated": True, "username": "alice"}


@pytest.mark.asyncio
async def test_login_failures_look_the_same(client):
    await client.post("/register", json={"username": "alice", "password": "pw1"})

    wrong = await client.post("/login", json={"username": "alice", "password": "pw2"})
    unknown = await client.post("/login", json={"username": "zed", "password": "pw1"})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()
    assert settings.session_cookie_name not in wrong.cookies


@pytest.mark.asyncio
async def test_login_state_anonymous(client):
    r = await client.get("/login")
    assert r.status_code == 200
    assert r.json() == {"authenticated": False, "username": None}


@pytest.mark.asyncio
async def test_relogin_rotates_session(alice_client):
    first = alice_client.cookies.get(settings.session_cookie_name)
    r = await alice_client.post("/login", json={"username": "alice", "password": "pw1"})
    second = r.cookies.get(settings.session_cookie_name)
    assert first and second and first != second


@pytest.mark.asyncio
async def test_relogin_closes_sockets_of_replaced_session(
    alice_client, app_state, make_connection
):
    old_sid = alice_client.cookies.get(settings.session_cookie_name)
    conn, socket = make_connection(session_id=old_sid)
    await app_state.coordinator.connect(conn)

    r = await alice_client.post("/login", json={"username": "alice", "password": "pw1"})
    assert r.status_code == 200

    assert socket.closed_with == (CLOSE_LOGIN_REQUIRED, "Session ended")
    assert len(app_state.coordinator.registry) == 0


# ═══════════════════════════════════════════════════════════
# Gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_gated_route_redirects_to_login(client):
    r = await client.get("/api/productos")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_gated_route_with_session(alice_client):
    r = await alice_client.get("/api/productos")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_gated_route_refreshes_session_cookie(alice_client):
    """The cookie expiry rolls forward with the server-side TTL."""
    sid = alice_client.cookies.get(settings.session_cookie_name)

    r = await alice_client.get("/api/productos")

    cookie = r.headers.get("set-cookie", "")
    assert f"{settings.session_cookie_name}={sid}" in cookie
    assert f"Max-Age={settings.session_ttl_seconds}" in cookie
    assert "HttpOnly" in cookie


@pytest.mark.asyncio
async def test_forged_session_id_is_anonymous(client):
    client.cookies.set(settings.session_cookie_name, "made-up-session-id")
    r = await client.get("/api/mensajes")
    assert r.status_code == 303


@pytest.mark.asyncio
async def test_session_for_deleted_user_is_dropped(alice_client, app_state):
    sid = alice_client.cookies.get(settings.session_cookie_name)
    async with app_state.databases.credentials() as db:
        await db.execute(delete(User).where(User.username == "alice"))
        await db.commit()

    r = await alice_client.get("/api/productos")
    assert r.status_code == 303
    assert await app_state.sessions.load(sid) is None


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout(alice_client, app_state):
    sid = alice_client.cookies.get(settings.session_cookie_name)

    r = await alice_client.post("/logout")
    assert r.status_code == 200
    assert r.json() == {"username": "alice", "logged_out": True}
    assert await app_state.sessions.load(sid) is None

    # The old session id no longer opens gated routes.
    alice_client.cookies.set(settings.session_cookie_name, sid)
    r = await alice_client.get("/api/productos")
    assert r.status_code == 303


@pytest.mark.asyncio
async def test_logout_requires_login(client):
    r = await client.post("/logout")
    assert r.status_code == 303
