"""Authentication service: signup, login, session checks and password changes."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import BadRequest, InvalidCredentials, Unauthorized
from app.models.listing import Listing
from app.models.user import User
from app.services.jwt import JWTService, get_jwt_service

logger = logging.getLogger("roomie")

LOGIN_FAILED_MESSAGE = "Incorrect email or password"


@dataclass
class AuthResult:
    """A user together with a freshly issued session token."""

    user: User
    token: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_active_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email), User.is_active.is_(True)).first()


class AuthService:
    """Handles user registration, login and session validation."""

    def __init__(self, jwt_service: JWTService) -> None:
        self.jwt_service = jwt_service

    def issue(self, user: User) -> AuthResult:
        return AuthResult(user=user, token=self.jwt_service.create_token(user.id))

    def signup(
        self,
        db: Session,
        name: str,
        email: str,
        password: str,
        password_confirm: str,
        profile_picture: str | None = None,
        age: int | None = None,
        about: str | None = None,
        college: str | None = None,
        favorite_listing_ids: list[int] | None = None,
    ) -> AuthResult:
        """Create a user from caller-supplied profile fields and log them in.

        Role and credential bookkeeping fields always take their defaults.
        """
        email = normalize_email(email)
        if db.query(User).filter(User.email == email).first():
            raise BadRequest("Email already registered")

        user = User(
            name=name.strip(),
            email=email,
            profile_picture=profile_picture,
            age=age,
            about=about,
            college=college,
        )
        user.set_password(password, password_confirm)
        if favorite_listing_ids:
            user.favorite_listings = db.query(Listing).filter(Listing.id.in_(favorite_listing_ids)).all()

        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise BadRequest("Email already registered") from None
        db.refresh(user)

        logger.info("New user signed up: id=%s", user.id)
        return self.issue(user)

    def login(self, db: Session, email: str | None, password: str | None) -> AuthResult:
        """Authenticate a user by email and password."""
        if not email or not password:
            raise BadRequest("Please provide email and password")

        user = find_active_user_by_email(db, email)
        if not user or not user.check_password(password):
            raise Unauthorized(LOGIN_FAILED_MESSAGE)

        return self.issue(user)

    def authenticate(self, db: Session, token: str | None) -> User:
        """Resolve a bearer token to an active user. Raises Unauthorized."""
        if not token:
            raise Unauthorized("You are not logged in! Please log in to get access.")

        payload = self.jwt_service.decode_token(token)
        if not payload:
            raise Unauthorized("Invalid or expired token. Please log in again.")

        try:
            user_id = int(payload["sub"])
        except ValueError:
            raise Unauthorized("Invalid or expired token. Please log in again.") from None

        user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if not user:
            raise Unauthorized("The user belonging to this token no longer exists.")

        if user.changed_password_after(float(payload["iat"])):
            raise Unauthorized("User recently changed password! Please log in again.")

        return user

    def change_password(
        self,
        db: Session,
        user: User,
        current_password: str | None,
        password: str | None,
        password_confirm: str | None,
    ) -> AuthResult:
        """Change the password of an authenticated user and issue a new token."""
        if not user.check_password(current_password or ""):
            raise InvalidCredentials()

        user.set_password(password, password_confirm)
        db.commit()
        db.refresh(user)

        logger.info("Password changed for user id=%s", user.id)
        return self.issue(user)


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(get_jwt_service())
    return _auth_service
