"""Auth API tests — the HTTP surface end to end.

Tests cover:
1. Registration + duplicate prevention + validation
2. Login → session token, generic failure message
3. Protected /me endpoint through the real auth gate
4. Logout / logout-all
5. Profile updates
6. Forgot / reset password
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from campushub.config import settings
from campushub.db.models import User, UserSession


def _email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def _register(client, email: str, password: str = "password_123", name: str = "User"):
    r = await client.post(
        "/api/auth/register",
        json={"email": email, "name": name, "password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_returns_token_and_public_user(client):
    """Register a new account — 201 with token and id/email/name only."""
    email = _email("reg")
    r = await client.post(
        "/api/auth/register",
        json={"name": "Test User", "email": email, "password": "secure_password_123"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "User registered successfully"
    assert body["token"]
    assert set(body["user"]) == {"id", "email", "name"}
    assert body["user"]["email"] == email
    assert body["user"]["name"] == "Test User"


@pytest.mark.asyncio
async def test_register_maps_id_number_and_department(client, db_session, registered):
    """idNumber/department land in roll_number/branch."""
    user = await db_session.get(User, uuid.UUID(registered["user"]["id"]))
    assert user.roll_number == "21CS042"
    assert user.branch == "CSE"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice."""
    email = _email("dup")
    await _register(client, email)

    r = await client.post(
        "/api/auth/register",
        json={"email": email, "name": "User 2", "password": "password_123"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "User already exists with this email"


@pytest.mark.asyncio
async def test_register_short_password(client, db_session):
    """Password must be at least 8 characters; nothing is stored."""
    r = await client.post(
        "/api/auth/register",
        json={"email": _email("short"), "name": "Short", "password": "abc"},
    )
    assert r.status_code == 422
    result = await db_session.execute(select(User))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_register_missing_fields(client):
    r = await client.post("/api/auth/register", json={"email": _email("missing")})
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client):
    email = _email("login")
    await _register(client, email, "my_password_123", "Login User")

    r = await client.post(
        "/api/auth/login",
        json={"email": email, "password": "my_password_123"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Login successful"
    assert body["token"]
    assert body["user"]["email"] == email
    assert "password_hash" not in body["user"]


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client):
    """Unknown email and wrong password produce the exact same response."""
    email = _email("enum")
    await _register(client, email, "correct_password")

    wrong_pw = await client.post(
        "/api/auth/login", json={"email": email, "password": "wrong_password"}
    )
    no_user = await client.post(
        "/api/auth/login",
        json={"email": _email("nobody"), "password": "wrong_password"},
    )
    assert wrong_pw.status_code == no_user.status_code == 400
    assert wrong_pw.content == no_user.content
    assert wrong_pw.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_each_login_creates_a_new_session(client, db_session):
    """N logins → N more session rows, all with distinct tokens."""
    email = _email("multi")
    registered = await _register(client, email)

    tokens = [registered["token"]]
    for _ in range(3):
        r = await client.post(
            "/api/auth/login", json={"email": email, "password": "password_123"}
        )
        tokens.append(r.json()["token"])

    result = await db_session.execute(
        select(UserSession).where(
            UserSession.user_id == uuid.UUID(registered["user"]["id"])
        )
    )
    sessions = result.scalars().all()
    assert len(sessions) == 4
    assert len({s.token for s in sessions}) == 4
    assert {s.token for s in sessions} == set(tokens)
    assert all(s.is_active for s in sessions)


# ═══════════════════════════════════════════════════════════
# Protected endpoint (/me)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, registered, auth_headers):
    r = await client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"user": registered["user"]}


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Access token required"
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_wrong_scheme(client, registered):
    r = await client.get(
        "/api/auth/me", headers={"Authorization": f"Basic {registered['token']}"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Access token required"


@pytest.mark.asyncio
async def test_me_with_invalid_token(client):
    r = await client.get(
        "/api/auth/me", headers={"Authorization": "Bearer invalid_token_here"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_gate_hides_failure_reason(client, db_session, registered, auth_headers):
    """Bad signature, logged-out and expired sessions all look the same."""
    tampered = registered["token"][:-2] + ("AA" if not registered["token"].endswith("AA") else "BB")
    r_bad = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {tampered}"}
    )

    # Expire the session server-side.
    await db_session.execute(
        update(UserSession)
        .where(UserSession.token == registered["token"])
        .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()
    r_expired = await client.get("/api/auth/me", headers=auth_headers)
    # Now it's also inactive.
    r_inactive = await client.get("/api/auth/me", headers=auth_headers)

    for r in (r_bad, r_expired, r_inactive):
        assert r.status_code == 401
        assert r.json() == {"detail": "Invalid or expired token"}


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_me_logout_me(client):
    """register → /me ok → logout → /me rejected with the same token."""
    r = await client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@x.com", "password": "pw123456"},
    )
    assert r.status_code == 201
    headers = {"Authorization": f"Bearer {r.json()['token']}"}

    r = await client.get("/api/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "alice@x.com"

    r = await client.post("/api/auth/logout", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Logout successful"}

    r = await client.get("/api/auth/me", headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_logout_only_revokes_that_device(client):
    email = _email("devices")
    phone = (await _register(client, email))["token"]
    r = await client.post(
        "/api/auth/login", json={"email": email, "password": "password_123"}
    )
    tablet = r.json()["token"]

    r = await client.post(
        "/api/auth/logout", headers={"Authorization": f"Bearer {phone}"}
    )
    assert r.status_code == 200

    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {tablet}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_logout_requires_auth(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_logout_all_only_affects_caller(client):
    alice = _email("alice")
    bob = _email("bob")
    a1 = (await _register(client, alice))["token"]
    r = await client.post(
        "/api/auth/login", json={"email": alice, "password": "password_123"}
    )
    a2 = r.json()["token"]
    b1 = (await _register(client, bob))["token"]

    r = await client.post(
        "/api/auth/logout-all", headers={"Authorization": f"Bearer {a1}"}
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Logged out from all devices successfully"

    for token in (a1, a2):
        r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {b1}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_after_logout_issues_fresh_session(client, registered, auth_headers):
    await client.post("/api/auth/logout", headers=auth_headers)

    r = await client.post(
        "/api/auth/login", json={"email": "alice@x.com", "password": "pw123456"}
    )
    new_token = r.json()["token"]
    assert new_token != registered["token"]

    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"})
    assert r.status_code == 200
    r = await client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_profile_partial(client, auth_headers):
    r = await client.put(
        "/api/auth/profile",
        json={
            "semester": 5,
            "section": "B",
            "skills": ["python", "react native"],
            "profileImage": "https://img.example.com/a.png",
        },
        headers=auth_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Profile updated successfully"
    user = body["user"]
    assert user["semester"] == "5"
    assert user["section"] == "B"
    assert user["skills"] == ["python", "react native"]
    assert user["achievements"] == []
    assert user["profileImage"] == "https://img.example.com/a.png"
    # Untouched fields keep their values
    assert user["name"] == "Alice"
    assert user["rollNumber"] == "21CS042"
    assert user["branch"] == "CSE"


@pytest.mark.asyncio
async def test_update_profile_null_is_ignored(client, auth_headers):
    r = await client.put(
        "/api/auth/profile",
        json={"name": None, "branch": "ECE"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice"
    assert r.json()["user"]["branch"] == "ECE"


@pytest.mark.asyncio
async def test_update_profile_email_taken(client, auth_headers):
    other = _email("taken")
    await _register(client, other)

    r = await client.put(
        "/api/auth/profile", json={"email": other}, headers=auth_headers
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already in use by another user"


@pytest.mark.asyncio
async def test_update_profile_own_email_is_fine(client, auth_headers):
    r = await client.put(
        "/api/auth/profile",
        json={"email": "alice@x.com", "name": "Alice K"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice K"


@pytest.mark.asyncio
async def test_update_profile_requires_auth(client):
    r = await client.put("/api/auth/profile", json={"name": "X"})
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_forgot_reset_and_reuse(client, registered):
    """forgot → reset → same token again is rejected."""
    r = await client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
    assert r.status_code == 200
    reset_token = r.json()["resetToken"]
    assert len(reset_token) == 64

    r = await client.post(
        "/api/auth/reset-password",
        json={"token": reset_token, "newPassword": "newpw123"},
    )
    assert r.status_code == 200
    assert r.json() == {"message": "Password reset successful"}

    r = await client.post(
        "/api/auth/reset-password",
        json={"token": reset_token, "newPassword": "again123"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired reset token"

    # New password works, old one doesn't
    r = await client.post(
        "/api/auth/login", json={"email": "alice@x.com", "password": "newpw123"}
    )
    assert r.status_code == 200
    r = await client.post(
        "/api/auth/login", json={"email": "alice@x.com", "password": "pw123456"}
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_forgot_password_unknown_email(client):
    r = await client.post(
        "/api/auth/forgot-password", json={"email": _email("ghost")}
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "User not found with this email"


@pytest.mark.asyncio
async def test_forgot_password_hides_token_when_disabled(client, registered, monkeypatch):
    monkeypatch.setattr(settings, "expose_reset_token", False)
    r = await client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
    assert r.status_code == 200
    assert r.json() == {"message": "Password reset link sent to your email"}


@pytest.mark.asyncio
async def test_reset_password_bogus_token(client, registered):
    r = await client.post(
        "/api/auth/reset-password",
        json={"token": "deadbeef", "newPassword": "newpw123"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_reset_password_short_password(client, registered):
    r = await client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
    r = await client.post(
        "/api/auth/reset-password",
        json={"token": r.json()["resetToken"], "newPassword": "short"},
    )
    assert r.status_code == 422
