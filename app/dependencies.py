"""Authentication dependencies for FastAPI routes."""

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import Forbidden
from app.models.user import ROLES, User
from app.services.auth import get_auth_service


def get_bearer_token(request: Request) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user. Raises 401 if invalid."""
    user = get_auth_service().authenticate(db, get_bearer_token(request))
    request.state.user = user
    return user


def require_role(*roles: str) -> Callable[..., User]:
    """Build a dependency that only lets users with one of ``roles`` through."""
    unknown = set(roles) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {', '.join(sorted(unknown))}")
    allowed = frozenset(roles)

    def guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise Forbidden()
        return user

    return guard
