"""
Test token resolution, the auth endpoints and the profile endpoints.
"""
from types import SimpleNamespace

from app.tests.fakes import now_iso


def session():
    return SimpleNamespace(access_token="access-123", refresh_token="refresh-456", expires_in=3600)


class TestTokenResolution:
    """These tests leave get_current_user in place and go through the fake auth server."""

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not Authenticated"

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_valid_token_loads_profile(self, client, db, member):
        db.auth.users["good-token"] = SimpleNamespace(id=member.id, email=member.email)

        response = client.get("/api/auth/me", headers={"Authorization": "Bearer good-token"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == member.email
        assert data["joined_events"] == []

    def test_suspended_account(self, client, db, member):
        next(p for p in db.rows("profile") if p["id"] == member.id)["is_active"] = False
        db.auth.users["good-token"] = SimpleNamespace(id=member.id, email=member.email)

        response = client.get("/api/auth/me", headers={"Authorization": "Bearer good-token"})

        assert response.status_code == 403

    def test_role_guard(self, client, db, member):
        db.auth.users["good-token"] = SimpleNamespace(id=member.id, email=member.email)
        response = client.get("/api/admin/stats", headers={"Authorization": "Bearer good-token"})
        assert response.status_code == 403


class TestAuthEndpoints:

    def test_register_requires_confirmation(self, client, db):
        db.auth.sign_up_result = SimpleNamespace(user=SimpleNamespace(id="new-1", email="new@example.com"), session=None)

        response = client.post("/api/auth/register", json={
            "email": "new@example.com", "password": "secret1", "fullName": "New Person"
        })

        assert response.status_code == 201
        assert response.json()["data"]["requires_confirmation"] is True
        profile = db.rows("profile")[0]
        assert (profile["id"], profile["role"], profile["full_name"]) == ("new-1", "user", "New Person")

    def test_register_short_password(self, client):
        response = client.post("/api/auth/register", json={"email": "new@example.com", "password": "123"})
        assert response.status_code == 422

    def test_login_returns_tokens_and_role(self, client, db, host):
        db.auth.sign_in_result = SimpleNamespace(
            user=SimpleNamespace(id=host.id, email=host.email, email_confirmed_at=now_iso()),
            session=session(),
        )

        response = client.post("/api/auth/login", json={"email": host.email, "password": "secret1"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["access_token"] == "access-123"
        assert data["user"]["role"] == "host"

    def test_login_unconfirmed_email(self, client, db, member):
        db.auth.sign_in_result = SimpleNamespace(
            user=SimpleNamespace(id=member.id, email=member.email, email_confirmed_at=None),
            session=session(),
        )
        response = client.post("/api/auth/login", json={"email": member.email, "password": "secret1"})
        assert response.status_code == 403

    def test_login_failure(self, client, db):
        db.auth.sign_in_error = RuntimeError("connection reset")
        response = client.post("/api/auth/login", json={"email": "x@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_forgot_password_does_not_reveal_accounts(self, client):
        response = client.post("/api/auth/forgot-password", json={
            "email": "nobody@example.com", "redirectUrl": "https://app.example.com/reset"
        })
        assert response.status_code == 200
        assert response.json()["message"].startswith("If An Account")

    def test_reset_password_mismatch(self, client, login, member):
        login(member)
        response = client.put("/api/auth/reset-password", json={"password": "abcdef", "confirmPassword": "abcdeg"})
        assert response.status_code == 400


class TestProfiles:

    def test_public_profile_hides_email(self, client, login, member, other_member):
        login(other_member)
        data = client.get(f"/api/users/{member.id}").json()["data"]
        assert data["full_name"] == "Alice Walker"
        assert "email" not in data

    def test_own_profile_is_complete(self, client, login, member):
        login(member)
        data = client.get(f"/api/users/{member.id}").json()["data"]
        assert data["email"] == member.email
        assert "hosted_events" in data

    def test_update_own_profile(self, client, login, member):
        login(member)

        response = client.put(f"/api/users/{member.id}", json={"bio": "Trail runner", "interests": ["running"]})

        assert response.status_code == 200
        assert response.json()["data"]["bio"] == "Trail runner"

    def test_cannot_update_someone_else(self, client, login, member, other_member):
        login(other_member)
        assert client.put(f"/api/users/{member.id}", json={"bio": "Hacked"}).status_code == 403

    def test_empty_update(self, client, login, member):
        login(member)
        assert client.put(f"/api/users/{member.id}", json={}).status_code == 400

    def test_become_host(self, client, db, login, member, host):
        login(member)
        response = client.post("/api/users/me/become-host")
        assert response.json()["data"]["host_status"] == "pending"
        assert client.post("/api/users/me/become-host").status_code == 409

        login(host)
        assert client.post("/api/users/me/become-host").status_code == 409
