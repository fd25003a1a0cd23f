"""Auth endpoint tests.

Learn: Tests cover:
1. The full register → duplicate → bad login → good login scenario
2. Missing-field validation (400) and malformed bodies
3. Identical 401s for unknown email vs wrong password
4. /auth/me with header, cookie, and a token for a vanished user
5. Internal failures answering a bare 500
"""

import pytest

from chatgate.auth.jwt import issue_token, verify_token
from chatgate.errors import InvalidCredentialsError
from chatgate.services.user_store import JsonFileUserStore


# ═══════════════════════════════════════════════════════════
# Registration + login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_login_scenario(client, sql_store):
    """register, duplicate register, wrong password, right password."""
    creds = {"email": "a@b.com", "password": "secret123", "name": "A"}

    r = await client.post("/auth/register", json=creds)
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == "a@b.com"
    assert body["user"]["name"] == "A"
    assert body["user"]["id"]
    assert "password" not in r.text
    assert "password_hash" not in body["user"]

    r = await client.post("/auth/register", json=creds)
    assert r.status_code == 409
    assert r.json() == {"error": "Email already registered"}
    assert await sql_store.count() == 1

    r = await client.post("/auth/login", json={"email": "a@b.com", "password": "wrong"})
    assert r.status_code == 401

    r = await client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})
    assert r.status_code == 200
    assert r.json()["token"]


@pytest.mark.asyncio
async def test_login_token_carries_profile(client, registered):
    creds, reg_body = registered
    r = await client.post(
        "/auth/login", json={"email": creds["email"], "password": creds["password"]}
    )
    body = r.json()
    claims = verify_token(body["token"])
    assert claims.email == creds["email"]
    assert claims.id == reg_body["user"]["id"] == body["user"]["id"]
    assert claims.name == creds["name"]


@pytest.mark.asyncio
async def test_register_token_is_valid(client):
    r = await client.post(
        "/auth/register", json={"email": "x@y.com", "password": "pw", "name": "X"}
    )
    assert verify_token(r.json()["token"]).email == "x@y.com"


@pytest.mark.asyncio
async def test_unknown_email_and_wrong_password_look_identical(client, registered):
    creds, _ = registered
    wrong_pw = await client.post(
        "/auth/login", json={"email": creds["email"], "password": "not-it"}
    )
    no_user = await client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": "not-it"}
    )
    assert wrong_pw.status_code == no_user.status_code == 401
    assert wrong_pw.json() == no_user.json() == {"error": "Invalid email or password"}


# ═══════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"password": "pw", "name": "A"},
        {"email": "a@b.com", "name": "A"},
        {"email": "a@b.com", "password": "pw"},
        {"email": "", "password": "pw", "name": "A"},
        {"email": "a@b.com", "password": "pw", "name": "   "},
        {},
    ],
)
async def test_register_missing_fields(client, body):
    r = await client.post("/auth/register", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"email": "a@b.com"}, {"password": "pw"}, {}])
async def test_login_missing_fields(client, body):
    r = await client.post("/auth/login", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields"}


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    r = await client.post(
        "/auth/register",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}


# ═══════════════════════════════════════════════════════════
# /auth/me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_bearer_token(client, registered, auth_headers):
    creds, body = registered
    r = await client.get("/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == body["user"]


@pytest.mark.asyncio
async def test_me_with_session_cookie(client, registered):
    _, body = registered
    r = await client.get("/auth/me", headers={"Cookie": f"token={body['token']}"})
    assert r.status_code == 200
    assert r.json()["email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/auth/me")
    assert r.status_code == 401
    assert r.json() == {"error": "Authentication required"}
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_invalid_token(client):
    r = await client.get("/auth/me", headers={"Authorization": "Bearer invalid_token"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_token_for_unknown_user(client):
    """A correctly signed token whose user isn't in the store."""
    from types import SimpleNamespace

    token = issue_token(SimpleNamespace(id="f" * 32, email="gone@b.com", name="Gone"))
    r = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Internal failures
# ═══════════════════════════════════════════════════════════


class ExplodingStore(JsonFileUserStore):
    async def find_by_email(self, email):
        raise RuntimeError("disk on fire: /var/secret/path")


@pytest.mark.asyncio
async def test_internal_errors_do_not_leak():
    from httpx import ASGITransport, AsyncClient

    from chatgate.main import create_app

    app = create_app(user_store=ExplodingStore(None))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        for path, body in [
            ("/auth/register", {"email": "a@b.com", "password": "pw", "name": "A"}),
            ("/auth/login", {"email": "a@b.com", "password": "pw"}),
        ]:
            r = await c.post(path, json=body)
            assert r.status_code == 500
            assert r.json() == {"error": "Internal server error"}
            assert "disk on fire" not in r.text
    await app.state.http_client.aclose()


def test_invalid_credentials_message_is_fixed():
    assert InvalidCredentialsError().message == "Invalid email or password"
