"""
Detached email delivery and the cookie policy.
"""

from unittest.mock import patch

from fastapi import Response
from fastapi.testclient import TestClient

from app.config import settings
from app.models import RoleName, User
from app.utils.cookies import set_auth_cookies, clear_auth_cookies
from app.utils.email import deliver_email, email_sender

from conftest import PASSWORD


def _register(client: TestClient, email: str, role: str = "customer"):
    return client.post("/auth/register", json={
        "name": "New User", "email": email, "password": PASSWORD, "role": role,
    })


class TestRegistrationEmails:

    def test_welcome_email(self, client: TestClient):
        with patch.object(email_sender, "send") as send:
            assert _register(client, "dave@example.com").status_code == 201
        recipients = [call.args[0] for call in send.call_args_list]
        assert recipients == ["dave@example.com"]

    def test_admins_hear_about_new_providers(self, client: TestClient, admin_user):
        with patch.object(email_sender, "send") as send:
            assert _register(client, "pro@example.com", role="provider").status_code == 201
        recipients = sorted(call.args[0] for call in send.call_args_list)
        assert recipients == ["admin@example.com", "pro@example.com"]

    def test_email_failure_does_not_fail_registration(self, client: TestClient, db):
        with patch.object(email_sender, "send", side_effect=OSError("smtp down")) as send:
            response = _register(client, "erin@example.com")
        assert response.status_code == 201
        assert send.call_count == settings.EMAIL_MAX_ATTEMPTS
        assert db.query(User).filter(User.email == "erin@example.com").one().role == RoleName.CUSTOMER


class TestDeliverEmail:

    def test_retries_then_succeeds(self):
        with patch.object(email_sender, "send", side_effect=[OSError("busy"), None]) as send:
            assert deliver_email("x@example.com", "Hi", "<p>hi</p>") is True
        assert send.call_count == 2

    def test_gives_up_after_max_attempts(self):
        with patch.object(email_sender, "send", side_effect=OSError("down")) as send:
            assert deliver_email("x@example.com", "Hi", "<p>hi</p>") is False
        assert send.call_count == settings.EMAIL_MAX_ATTEMPTS

    def test_unconfigured_sender_logs_instead(self, caplog):
        assert not email_sender.is_configured
        with caplog.at_level("INFO", logger="app.utils.email"):
            assert deliver_email("x@example.com", "Hello there", "<p>hi</p>") is True
        assert "Hello there" in caplog.text


class TestCookiePolicy:

    def _headers(self, response: Response) -> list[str]:
        return [
            value.decode().lower()
            for name, value in response.raw_headers
            if name == b"set-cookie"
        ]

    def test_development_cookies(self, monkeypatch):
        monkeypatch.setattr(settings, "NODE_ENV", "development")
        response = Response()
        set_auth_cookies(response, "a", "r")
        for header in self._headers(response):
            assert "httponly" in header
            assert "samesite=lax" in header
            assert "secure" not in header
            assert "domain=" not in header

    def test_production_cookies(self, monkeypatch):
        monkeypatch.setattr(settings, "NODE_ENV", "production")
        monkeypatch.setattr(settings, "COOKIE_DOMAIN", ".example.com")
        response = Response()
        set_auth_cookies(response, "a", "r")
        headers = self._headers(response)
        assert len(headers) == 2
        for header in headers:
            assert "httponly" in header
            assert "secure" in header
            assert "samesite=none" in header
            assert "domain=.example.com" in header

    def test_clear_matches_policy(self, monkeypatch):
        monkeypatch.setattr(settings, "NODE_ENV", "production")
        response = Response()
        clear_auth_cookies(response)
        headers = self._headers(response)
        assert {h.split("=", 1)[0] for h in headers} == {"accesstoken", "refreshtoken"}
        for header in headers:
            assert "max-age=0" in header
            assert "samesite=none" in header
            assert "secure" in header
