"""User profile service."""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.errors import BadRequest, NotFound
from app.models.user import User
from app.schemas.user import UserUpdateRequest
from app.services.auth import normalize_email

logger = logging.getLogger("roomie")

# Keys that must go through /updateMyPassword instead.
CREDENTIAL_FIELDS = {"password", "passwordConfirm", "currentPassword"}
SELF_UPDATE_FIELDS = ("name", "email", "profilePicture", "about", "age", "college")


def filter_fields(data: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    """Keep only the allowed keys of ``data``."""
    return {key: value for key, value in data.items() if key in allowed}


class UserService:
    """Read, self-update and deactivate user records."""

    def list_users(self, db: Session) -> list[User]:
        """Get all active users, oldest first."""
        return db.query(User).filter(User.is_active.is_(True)).order_by(User.id).all()

    def get_user(self, db: Session, user_id: int) -> User:
        """Get an active user with their listings loaded."""
        user = (
            db.query(User)
            .options(selectinload(User.listings))
            .filter(User.id == user_id, User.is_active.is_(True))
            .first()
        )
        if not user:
            raise NotFound("No user found with that ID")
        return user

    def update_me(self, db: Session, user: User, patch: dict[str, Any]) -> User:
        """Apply an allow-listed profile update to the current user."""
        if CREDENTIAL_FIELDS & patch.keys():
            raise BadRequest("This route is not for password updates. Please use /updateMyPassword.")

        try:
            update = UserUpdateRequest.model_validate(filter_fields(patch, SELF_UPDATE_FIELDS))
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise BadRequest(f"Invalid input data. {messages}") from None

        changes = update.model_dump(exclude_unset=True)
        if "email" in changes:
            if changes["email"] is None:
                raise BadRequest("Email cannot be empty")
            changes["email"] = normalize_email(changes["email"])
        if "name" in changes and not (changes["name"] or "").strip():
            raise BadRequest("Name cannot be empty")

        for field, value in changes.items():
            setattr(user, field, value)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise BadRequest("Email already registered") from None
        db.refresh(user)
        return user

    def deactivate_me(self, db: Session, user: User) -> None:
        """Soft-delete the current user."""
        user.is_active = False
        db.commit()
        logger.info("User id=%s deactivated their account", user.id)


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
