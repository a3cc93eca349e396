"""Tests for forgot/reset password and password change flows."""

import hashlib
import re
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.config import AuthConfig, Settings
from app.errors import EmailDeliveryError, InvalidOrExpiredToken, NotFound
from app.models.user import User
from app.services.auth import get_auth_service
from app.services.email import EmailService
from app.services.password_reset import PasswordResetService

TOKEN_IN_URL = re.compile(r"/api/v1/users/resetPassword/([0-9a-f]{64})")


def _request_reset(client: TestClient, email: str = "test@example.com") -> str:
    """Hit forgotPassword and return the clear-text token from the email."""
    with patch.object(EmailService, "send") as mock_send:
        response = client.post("/api/v1/users/forgotPassword", json={"email": email})
    assert response.status_code == 200
    message = mock_send.call_args.kwargs["message"]
    match = TOKEN_IN_URL.search(message)
    assert match, message
    return match.group(1)


def _get_user(db_session: Session, email: str = "test@example.com") -> User:
    db_session.expire_all()
    return db_session.query(User).filter(User.email == email).first()


class TestForgotPassword:
    """Tests for requesting a reset token."""

    def test_stores_hash_of_emailed_token(self, client: TestClient, test_user: dict, db_session: Session):
        """Only the SHA-256 digest is stored, with a ten minute expiry."""
        before = datetime.utcnow()
        token = _request_reset(client)

        user = _get_user(db_session)
        assert user.password_reset_token == hashlib.sha256(token.encode()).hexdigest()
        assert user.password_reset_token != token
        expected = before + timedelta(minutes=10)
        assert abs((user.password_reset_expires_at - expected).total_seconds()) < 5

    def test_email_sent_to_user(self, client: TestClient, test_user: dict):
        with patch.object(EmailService, "send") as mock_send:
            response = client.post("/api/v1/users/forgotPassword", json={"email": "test@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Token sent to email!"
        assert mock_send.call_args.kwargs["to"] == "test@example.com"
        assert "10 min" in mock_send.call_args.kwargs["subject"]

    def test_unknown_email(self, client: TestClient):
        response = client.post("/api/v1/users/forgotPassword", json={"email": "nobody@example.com"})
        assert response.status_code == 404

    def test_unknown_email_not_disclosed_when_configured(self, client: TestClient):
        """With disclosure off, unknown emails get the same 200 as known ones."""
        from app.config import get_settings

        settings = get_settings()
        with patch.object(settings, "PASSWORD_RESET_DISCLOSE_UNKNOWN_EMAIL", False):
            response = client.post("/api/v1/users/forgotPassword", json={"email": "nobody@example.com"})
        assert response.status_code == 200
        assert "If an account exists" in response.json()["message"]

    def test_new_token_replaces_previous(self, client: TestClient, test_user: dict):
        """Only the most recent token works."""
        first = _request_reset(client)
        second = _request_reset(client)
        assert first != second

        body = {"password": "newpass1", "passwordConfirm": "newpass1"}
        assert client.patch(f"/api/v1/users/resetPassword/{first}", json=body).status_code == 400
        assert client.patch(f"/api/v1/users/resetPassword/{second}", json=body).status_code == 200

    def test_email_failure_rolls_back_token(self, client: TestClient, test_user: dict, db_session: Session):
        """A failed delivery leaves no reset state behind."""
        with patch.object(EmailService, "send", side_effect=EmailDeliveryError()):
            response = client.post("/api/v1/users/forgotPassword", json={"email": "test@example.com"})
        assert response.status_code == 500
        assert response.json()["status"] == "error"
        assert "error sending the email" in response.json()["detail"]

        user = _get_user(db_session)
        assert user.password_reset_token is None
        assert user.password_reset_expires_at is None

    def test_unexpected_send_failure_rolls_back_token(
        self, client: TestClient, test_user: dict, db_session: Session
    ):
        """Failures outside the SMTP error types also clear the reset state."""
        error = UnicodeEncodeError("ascii", "usér", 2, 3, "ordinal not in range(128)")
        with patch.object(EmailService, "send", side_effect=error):
            response = client.post("/api/v1/users/forgotPassword", json={"email": "test@example.com"})
        assert response.status_code == 500
        assert "error sending the email" in response.json()["detail"]

        user = _get_user(db_session)
        assert user.password_reset_token is None
        assert user.password_reset_expires_at is None

    def test_smtp_error_becomes_delivery_error(self):
        """SMTP transport failures surface as EmailDeliveryError."""
        settings = Settings()
        service = EmailService(settings)
        service.backend = "smtp"
        with patch("app.services.email.smtplib.SMTP", side_effect=OSError("connection refused")):
            with pytest.raises(EmailDeliveryError):
                service.send(to="a@x.com", subject="s", message="m")


class TestResetPassword:
    """Tests for exchanging a reset token for a new password."""

    def test_reset_with_valid_token(self, client: TestClient, test_user: dict, db_session: Session):
        """Reset changes the password, clears the token and logs the user in."""
        token = _request_reset(client)
        response = client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "newpass1", "passwordConfirm": "newpass1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "test@example.com"

        user = _get_user(db_session)
        assert user.password_reset_token is None
        assert user.password_reset_expires_at is None
        assert user.password_changed_at is not None

        login = client.post("/api/v1/users/login", json={"email": "test@example.com", "password": "newpass1"})
        assert login.status_code == 200
        old_login = client.post("/api/v1/users/login", json={"email": "test@example.com", "password": "password123"})
        assert old_login.status_code == 401

    def test_new_session_token_works(self, client: TestClient, test_user: dict):
        token = _request_reset(client)
        response = client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "newpass1", "passwordConfirm": "newpass1"},
        )
        session_token = response.json()["token"]
        me = client.get(
            f"/api/v1/users/{test_user['user_id']}",
            headers={"Authorization": f"Bearer {session_token}"},
        )
        assert me.status_code == 200

    def test_token_is_single_use(self, client: TestClient, test_user: dict):
        token = _request_reset(client)
        body = {"password": "newpass1", "passwordConfirm": "newpass1"}
        assert client.patch(f"/api/v1/users/resetPassword/{token}", json=body).status_code == 200

        again = client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "another1", "passwordConfirm": "another1"},
        )
        assert again.status_code == 400

    def test_expired_token(self, client: TestClient, test_user: dict, db_session: Session):
        """An expired token fails and is cleared."""
        token = _request_reset(client)
        user = _get_user(db_session)
        user.password_reset_expires_at = datetime.utcnow() - timedelta(seconds=1)
        db_session.commit()

        response = client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "newpass1", "passwordConfirm": "newpass1"},
        )
        assert response.status_code == 400

        user = _get_user(db_session)
        assert user.password_reset_token is None
        assert user.password_reset_expires_at is None

    def test_unpresented_expired_token_replaced_by_next_request(
        self, client: TestClient, test_user: dict, db_session: Session
    ):
        """An expired token nobody presents stays stored until a new request overwrites it."""
        stale = _request_reset(client)
        user = _get_user(db_session)
        user.password_reset_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        user = _get_user(db_session)
        assert user.password_reset_token == hashlib.sha256(stale.encode()).hexdigest()

        fresh = _request_reset(client)
        user = _get_user(db_session)
        assert user.password_reset_token == hashlib.sha256(fresh.encode()).hexdigest()
        assert user.password_reset_expires_at > datetime.utcnow()

    def test_invalid_and_expired_look_the_same(self, client: TestClient, test_user: dict, db_session: Session):
        token = _request_reset(client)
        user = _get_user(db_session)
        user.password_reset_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        body = {"password": "newpass1", "passwordConfirm": "newpass1"}
        expired = client.patch(f"/api/v1/users/resetPassword/{token}", json=body)
        bogus = client.patch(f"/api/v1/users/resetPassword/{'0' * 64}", json=body)
        assert expired.status_code == bogus.status_code == 400
        assert expired.json() == bogus.json()

    def test_confirmation_must_match(self, client: TestClient, test_user: dict, db_session: Session):
        """A mismatched confirmation fails and leaves the token usable."""
        token = _request_reset(client)
        response = client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "newpass1", "passwordConfirm": "different"},
        )
        assert response.status_code == 400
        assert _get_user(db_session).password_reset_token is not None

    def test_reset_invalidates_prior_sessions(self, client: TestClient, test_user: dict):
        token = _request_reset(client)
        client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "newpass1", "passwordConfirm": "newpass1"},
        )
        response = client.get(f"/api/v1/users/{test_user['user_id']}", headers=test_user["headers"])
        assert response.status_code == 401
        assert "changed password" in response.json()["detail"]


class TestPasswordResetService:
    """Direct tests of the reset workflow with its own configuration."""

    def _service(self, minutes: int = 10) -> PasswordResetService:
        config = AuthConfig(
            secret_key="unit-test",
            algorithm="HS256",
            token_expire_minutes=60,
            reset_token_expire_minutes=minutes,
        )
        return PasswordResetService(config, get_auth_service(), EmailService(Settings()))

    def test_window_comes_from_config(self, db_session: Session, test_user: dict):
        service = self._service(minutes=30)
        with patch.object(EmailService, "send"):
            user = service.request_reset(db_session, "test@example.com", lambda t: f"http://x/{t}")
        remaining = user.password_reset_expires_at - datetime.utcnow()
        assert timedelta(minutes=29) < remaining <= timedelta(minutes=30)

    def test_zero_window_token_is_already_expired(self, db_session: Session, test_user: dict):
        service = self._service(minutes=0)
        urls = []
        with patch.object(EmailService, "send"):
            service.request_reset(db_session, "test@example.com", lambda t: urls.append(t) or t)
        with pytest.raises(InvalidOrExpiredToken):
            service.perform_reset(db_session, urls[0], "newpass1", "newpass1")

    def test_failure_building_link_clears_token(self, db_session: Session, test_user: dict):
        def broken_url(token: str) -> str:
            raise ValueError("no route")

        with patch.object(EmailService, "send") as mock_send:
            with pytest.raises(EmailDeliveryError):
                self._service().request_reset(db_session, "test@example.com", broken_url)
        mock_send.assert_not_called()

        user = _get_user(db_session)
        assert user.password_reset_token is None
        assert user.password_reset_expires_at is None

    def test_unknown_email_raises_not_found(self, db_session: Session):
        with pytest.raises(NotFound):
            self._service().request_reset(db_session, "nobody@example.com", lambda t: t)

    def test_deactivated_user_cannot_request_reset(self, db_session: Session, test_user: dict):
        user = _get_user(db_session)
        user.is_active = False
        db_session.commit()
        with pytest.raises(NotFound):
            self._service().request_reset(db_session, "test@example.com", lambda t: t)


class TestUpdateMyPassword:
    """Tests for changing the password while logged in."""

    def test_change_password(self, client: TestClient, test_user: dict):
        response = client.patch(
            "/api/v1/users/updateMyPassword",
            json={"currentPassword": "password123", "password": "changed1", "passwordConfirm": "changed1"},
            headers=test_user["headers"],
        )
        assert response.status_code == 200
        assert response.json()["token"]

        login = client.post("/api/v1/users/login", json={"email": "test@example.com", "password": "changed1"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client: TestClient, test_user: dict):
        response = client.patch(
            "/api/v1/users/updateMyPassword",
            json={"currentPassword": "wrong", "password": "changed1", "passwordConfirm": "changed1"},
            headers=test_user["headers"],
        )
        assert response.status_code == 400
        assert "current password is incorrect" in response.json()["detail"]

    def test_requires_authentication(self, client: TestClient):
        response = client.patch(
            "/api/v1/users/updateMyPassword",
            json={"currentPassword": "password123", "password": "changed1", "passwordConfirm": "changed1"},
        )
        assert response.status_code == 401

    def test_old_token_rejected_new_token_accepted(self, client: TestClient, test_user: dict):
        """Tokens issued before the change stop working; the new one works."""
        response = client.patch(
            "/api/v1/users/updateMyPassword",
            json={"currentPassword": "password123", "password": "changed1", "passwordConfirm": "changed1"},
            headers=test_user["headers"],
        )
        new_token = response.json()["token"]

        stale = client.get(f"/api/v1/users/{test_user['user_id']}", headers=test_user["headers"])
        assert stale.status_code == 401

        fresh = client.get(
            f"/api/v1/users/{test_user['user_id']}",
            headers={"Authorization": f"Bearer {new_token}"},
        )
        assert fresh.status_code == 200
