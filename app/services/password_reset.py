"""Password reset via an emailed one-time token."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import AuthConfig, get_auth_config
from app.errors import EmailDeliveryError, InvalidOrExpiredToken, NotFound
from app.models.user import User, hash_reset_token
from app.services.auth import AuthResult, AuthService, find_active_user_by_email, get_auth_service
from app.services.email import EmailService, get_email_service

logger = logging.getLogger("roomie")

RESET_EMAIL_TEMPLATE = (
    "Forgot your password? Submit a PATCH request with your new password and "
    "passwordConfirm to: {url}\n"
    "If you didn't forget your password, please ignore this email."
)


class PasswordResetService:
    """Issues reset tokens and exchanges them for a new password.

    Only the SHA-256 digest of a reset token is stored. Each user has at most
    one live token; issuing a new one overwrites the previous digest, and a
    token is cleared once it is used. Expiry is enforced at lookup: an
    expired token is rejected and cleared when presented, and one that is
    never presented stays on the row until the next reset request
    overwrites it.
    """

    def __init__(self, config: AuthConfig, auth_service: AuthService, email_service: EmailService) -> None:
        self.window = timedelta(minutes=config.reset_token_expire_minutes)
        self.auth_service = auth_service
        self.email_service = email_service

    def request_reset(self, db: Session, email: str, build_reset_url: Callable[[str], str]) -> User:
        """Create a reset token for ``email`` and mail the reset link.

        Raises NotFound if no active user has that email, and
        EmailDeliveryError (after clearing the token) if building or sending the
        mail fails for any reason.
        """
        user = find_active_user_by_email(db, email)
        if not user:
            raise NotFound("There is no user with that email address.")

        token = user.create_password_reset_token(self.window)
        db.commit()

        minutes = int(self.window.total_seconds() // 60)
        try:
            self.email_service.send(
                to=user.email,
                subject=f"Your password reset token (valid for {minutes} min)",
                message=RESET_EMAIL_TEMPLATE.format(url=build_reset_url(token)),
            )
        except Exception as e:
            user.clear_password_reset_token()
            db.commit()
            logger.warning("Reset email to user id=%s failed; reset token cleared", user.id)
            if isinstance(e, EmailDeliveryError):
                raise
            raise EmailDeliveryError() from e

        logger.info("Password reset token issued for user id=%s", user.id)
        return user

    def perform_reset(
        self,
        db: Session,
        token: str,
        password: str | None,
        password_confirm: str | None,
    ) -> AuthResult:
        """Set a new password using a valid reset token and log the user in."""
        user = (
            db.query(User)
            .filter(User.password_reset_token == hash_reset_token(token), User.is_active.is_(True))
            .first()
        )
        if not user:
            raise InvalidOrExpiredToken()

        if not user.password_reset_expires_at or user.password_reset_expires_at <= datetime.utcnow():
            user.clear_password_reset_token()
            db.commit()
            raise InvalidOrExpiredToken()

        user.set_password(password, password_confirm)
        user.clear_password_reset_token()
        db.commit()
        db.refresh(user)

        logger.info("Password reset completed for user id=%s", user.id)
        return self.auth_service.issue(user)


_password_reset_service: PasswordResetService | None = None


def get_password_reset_service() -> PasswordResetService:
    """Get singleton password reset service instance."""
    global _password_reset_service
    if _password_reset_service is None:
        _password_reset_service = PasswordResetService(get_auth_config(), get_auth_service(), get_email_service())
    return _password_reset_service
