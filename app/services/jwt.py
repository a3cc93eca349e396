"""JWT Token Service."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import AuthConfig, get_auth_config


class JWTService:
    """Handles session token creation and validation."""

    def __init__(self, config: AuthConfig) -> None:
        self.secret_key = config.secret_key
        self.algorithm = config.algorithm
        self.expire_minutes = config.token_expire_minutes

    def create_token(self, user_id: int, issued_at: datetime | None = None) -> str:
        """Create a signed token for the given user.

        ``iat`` keeps sub-second precision so it can be ordered against
        ``User.password_changed_at``.
        """
        issued_at = issued_at or datetime.utcnow()
        payload = {
            "sub": str(user_id),
            "iat": issued_at.replace(tzinfo=timezone.utc).timestamp(),
            "exp": issued_at + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Decode and validate a JWT token. Returns None if invalid."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if "sub" not in payload or "iat" not in payload:
            return None
        return payload


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService(get_auth_config())
    return _jwt_service
