"""
==============================================================================
Auth API Tests
==============================================================================

Register / login / refresh-token / logout / logout-all / change-password
against the HTTP surface, plus the session rotation guarantees.

==============================================================================
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.models import RefreshToken, User, AuditLog
from app.schemas.auth import LoginRequest
from app.services.auth_service import auth_service
from app.utils import security
from app.utils.exceptions import RefreshTokenInvalidException

from conftest import PASSWORD, login, refresh, use_cookies


REGISTER_BODY = {
    "name": "Alice",
    "email": "alice@example.com",
    "password": PASSWORD,
    "role": "customer",
}


def _set_cookie_headers(response) -> dict:
    """Map cookie name -> raw Set-Cookie header."""
    headers = {}
    for raw in response.headers.get_list("set-cookie"):
        headers[raw.split("=", 1)[0]] = raw
    return headers


class TestRegister:
    """POST /auth/register"""

    def test_register_then_profile(self, client: TestClient, db):
        """A fresh account is signed in and can read its own profile."""
        response = client.post("/auth/register", json=REGISTER_BODY)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["accessToken"]
        assert body["data"]["role"] == "customer"
        assert "refreshToken" not in body["data"]

        cookies = _set_cookie_headers(response)
        assert {"accessToken", "refreshToken"} <= cookies.keys()

        profile = client.get("/api/v1/profile")
        assert profile.status_code == 200
        alice = db.query(User).filter(User.email == "alice@example.com").one()
        assert profile.json()["data"]["id"] == alice.id

    def test_register_creates_user_and_session(self, client: TestClient, db):
        client.post("/auth/register", json=REGISTER_BODY)
        user = db.query(User).filter(User.email == "alice@example.com").one()
        assert user.tokenVersion == 0
        assert user.isRestricted is False
        assert user.password != PASSWORD
        assert db.query(RefreshToken).filter(RefreshToken.userId == user.id).count() == 1
        assert db.query(AuditLog).filter(AuditLog.action == "REGISTER").count() == 1

    def test_cookie_attributes(self, client: TestClient):
        response = client.post("/auth/register", json=REGISTER_BODY)
        cookies = _set_cookie_headers(response)

        access = cookies["accessToken"].lower()
        refresh_cookie = cookies["refreshToken"].lower()
        for header in (access, refresh_cookie):
            assert "httponly" in header
            assert "path=/" in header
            assert "samesite=lax" in header
            assert "secure" not in header
        assert "max-age=900" in access
        assert "max-age=604800" in refresh_cookie

    def test_duplicate_email(self, client: TestClient, alice):
        response = client.post("/auth/register", json=REGISTER_BODY)
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "DUPLICATE_ENTRY"

    def test_email_is_case_insensitive(self, client: TestClient, alice):
        response = client.post("/auth/register", json={**REGISTER_BODY, "email": "ALICE@example.com"})
        assert response.status_code == 409

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "NoDigitsHere"])
    def test_weak_password(self, client: TestClient, password):
        response = client.post("/auth/register", json={**REGISTER_BODY, "password": password})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["errors"]

    def test_cannot_self_register_as_admin(self, client: TestClient, db):
        response = client.post("/auth/register", json={**REGISTER_BODY, "role": "admin"})
        assert response.status_code == 400
        assert db.query(User).count() == 0


class TestLogin:
    """POST /auth/login"""

    def test_login_success(self, client: TestClient, alice, db):
        response = client.post("/auth/login", json={"email": alice.email, "password": PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["data"]["role"] == "customer"
        assert body["data"]["accessToken"] == response.cookies.get("accessToken")
        assert db.query(RefreshToken).filter(RefreshToken.userId == alice.id).count() == 1

    def test_each_login_opens_a_session(self, client: TestClient, alice, db):
        login(client, alice.email)
        login(client, alice.email)
        assert db.query(RefreshToken).filter(RefreshToken.userId == alice.id).count() == 2

    def test_unknown_email(self, client: TestClient):
        response = client.post("/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
        assert response.status_code == 400
        assert response.json()["message"] == "User not found"

    def test_wrong_password(self, client: TestClient, alice, db):
        response = client.post("/auth/login", json={"email": alice.email, "password": "Wrong1234"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email or password"
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"
        assert db.query(RefreshToken).count() == 0
        failed = db.query(AuditLog).filter(AuditLog.userId == alice.id).one()
        assert (failed.action, failed.status) == ("LOGIN", "FAILED")


class TestRefreshToken:
    """POST /auth/refresh-token"""

    def test_sequential_rotation(self, client: TestClient, alice):
        """Each refresh hands out new tokens; a consumed refresh token is dead."""
        tokens = login(client, alice.email)

        first = refresh(client, tokens["refreshToken"])
        assert first.status_code == 200
        rt1 = first.cookies.get("refreshToken")
        at1 = first.json()["data"]["accessToken"]

        second = refresh(client, rt1)
        assert second.status_code == 200
        rt2 = second.cookies.get("refreshToken")
        at2 = second.json()["data"]["accessToken"]

        assert at1 != tokens["accessToken"]
        assert at2 != at1
        assert rt2 != rt1

        third = refresh(client, rt1)
        assert third.status_code == 401

        assert refresh(client, rt2).status_code == 200

    def test_original_token_rejected_after_rotation(self, client: TestClient, alice):
        tokens = login(client, alice.email)
        assert refresh(client, tokens["refreshToken"]).status_code == 200
        response = refresh(client, tokens["refreshToken"])
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_rotation_rewrites_the_same_row(self, client: TestClient, alice, db):
        tokens = login(client, alice.email)
        row_id = db.query(RefreshToken).one().id

        response = refresh(client, tokens["refreshToken"])
        db.expire_all()
        rows = db.query(RefreshToken).all()
        assert len(rows) == 1
        assert rows[0].id == row_id
        assert rows[0].token == response.cookies.get("refreshToken")

    def test_missing_cookie(self, client: TestClient):
        client.cookies.clear()
        response = client.post("/auth/refresh-token")
        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token not provided"

    def test_garbage_token(self, client: TestClient):
        response = refresh(client, "definitely-not-a-jwt")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "REFRESH_TOKEN_INVALID"

    def test_access_token_is_not_a_refresh_token(self, client: TestClient, alice):
        tokens = login(client, alice.email)
        response = refresh(client, tokens["accessToken"])
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN_TYPE"

    def test_signed_but_unknown_token(self, client: TestClient, alice):
        """A validly signed refresh token without a session row is rejected."""
        forged, _ = security.create_refresh_token(alice, alice.tokenVersion)
        assert refresh(client, forged).status_code == 401

    def test_expired_row_rejected_and_removed(self, client: TestClient, alice, db):
        tokens = login(client, alice.email)
        row = db.query(RefreshToken).one()
        row.expiresAt = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        response = refresh(client, tokens["refreshToken"])
        assert response.status_code == 401
        assert db.query(RefreshToken).count() == 0

    def test_stale_token_version_rejected(self, client: TestClient, alice, db):
        """Refresh tokens minted before a tokenVersion bump die even with a live row."""
        tokens = login(client, alice.email)
        alice.tokenVersion += 1
        db.commit()

        assert refresh(client, tokens["refreshToken"]).status_code == 401

    def test_concurrent_rotation_loses_race(self, db, alice, monkeypatch):
        """If another request rotates the row first, the late caller gets nothing."""
        original = auth_service.login(db, LoginRequest(email=alice.email, password=PASSWORD))["refreshToken"]
        real_create = security.create_refresh_token

        def racing_create(user, version):
            db.query(RefreshToken).filter(RefreshToken.token == original).update(
                {"token": "rotated-by-another-request"}, synchronize_session=False,
            )
            return real_create(user, version)

        monkeypatch.setattr("app.services.auth_service.create_refresh_token", racing_create)
        with pytest.raises(RefreshTokenInvalidException):
            auth_service.refresh(db, original)


class TestLogout:
    """POST /auth/logout"""

    def test_logout_is_idempotent(self, client: TestClient, alice, db):
        tokens = login(client, alice.email)

        for _ in range(2):
            use_cookies(client, refreshToken=tokens["refreshToken"])
            response = client.post("/auth/logout")
            assert response.status_code == 200
            assert response.json()["success"] is True

        assert db.query(RefreshToken).count() == 0
        assert refresh(client, tokens["refreshToken"]).status_code == 401

    def test_logout_clears_cookies(self, client: TestClient, alice):
        tokens = login(client, alice.email)
        use_cookies(client, **tokens)
        response = client.post("/auth/logout")
        cookies = _set_cookie_headers(response)
        assert "max-age=0" in cookies["accessToken"].lower()
        assert "max-age=0" in cookies["refreshToken"].lower()

    def test_logout_without_cookie(self, client: TestClient):
        client.cookies.clear()
        assert client.post("/auth/logout").status_code == 200

    def test_logout_only_ends_that_device(self, client: TestClient, alice, db):
        device_a = login(client, alice.email)
        device_b = login(client, alice.email)
        use_cookies(client, refreshToken=device_a["refreshToken"])
        client.post("/auth/logout")

        assert refresh(client, device_a["refreshToken"]).status_code == 401
        assert refresh(client, device_b["refreshToken"]).status_code == 200


class TestLogoutAll:
    """POST /auth/logout-all"""

    def test_logout_all_ends_every_device(self, client: TestClient, alice, db):
        device_a = login(client, alice.email)
        device_b = login(client, alice.email)

        use_cookies(client, accessToken=device_a["accessToken"])
        response = client.post("/auth/logout-all")
        assert response.status_code == 200
        assert response.json()["data"]["revokedSessions"] == 2

        assert refresh(client, device_a["refreshToken"]).status_code == 401
        assert refresh(client, device_b["refreshToken"]).status_code == 401

        db.refresh(alice)
        assert alice.tokenVersion == 1
        assert db.query(RefreshToken).count() == 0

    def test_requires_authentication(self, client: TestClient):
        client.cookies.clear()
        assert client.post("/auth/logout-all").status_code == 401

    def test_new_login_after_logout_all_works(self, client: TestClient, alice):
        tokens = login(client, alice.email)
        use_cookies(client, accessToken=tokens["accessToken"])
        client.post("/auth/logout-all")

        fresh = login(client, alice.email)
        assert refresh(client, fresh["refreshToken"]).status_code == 200


class TestSessionsAndPasswordChange:

    def test_list_sessions(self, client: TestClient, alice):
        login(client, alice.email)
        tokens = login(client, alice.email)
        use_cookies(client, accessToken=tokens["accessToken"])
        response = client.get("/auth/sessions")
        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

    def test_change_password_signs_out_everywhere(self, client: TestClient, alice, db):
        other_device = login(client, alice.email)
        tokens = login(client, alice.email)
        use_cookies(client, accessToken=tokens["accessToken"])

        response = client.patch("/auth/change-password", json={
            "currentPassword": PASSWORD,
            "newPassword": "NewPassword2",
            "confirmPassword": "NewPassword2",
        })
        assert response.status_code == 200
        assert db.query(RefreshToken).count() == 0
        assert refresh(client, other_device["refreshToken"]).status_code == 401

        client.cookies.clear()
        assert client.post("/auth/login", json={"email": alice.email, "password": PASSWORD}).status_code == 400
        login(client, alice.email, "NewPassword2")

    def test_change_password_wrong_current(self, client: TestClient, alice):
        tokens = login(client, alice.email)
        use_cookies(client, accessToken=tokens["accessToken"])
        response = client.patch("/auth/change-password", json={
            "currentPassword": "Nope12345",
            "newPassword": "NewPassword2",
            "confirmPassword": "NewPassword2",
        })
        assert response.status_code == 400
