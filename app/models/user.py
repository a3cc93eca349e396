"""User model."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from app.config import get_settings
from app.database import Base
from app.errors import BadRequest

ROLES = ("user", "admin")
PASSWORD_MIN_LENGTH = 6

user_favorite_listing = Table(
    "user_favorite_listing",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True),
    Column("listing_id", Integer, ForeignKey("listing.id", ondelete="CASCADE"), primary_key=True),
)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest of a clear-text reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _timestamp(value: datetime) -> float:
    # Stored datetimes are naive UTC.
    return value.replace(tzinfo=timezone.utc).timestamp()


class User(Base):
    """Roomie user account and profile."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    role = Column(String(32), nullable=False, default="user")
    profile_picture = Column(String(512), nullable=True)
    age = Column(Integer, nullable=True)
    about = Column(Text, nullable=True)
    college = Column(String(256), nullable=True)
    password_hash = Column(String(256), nullable=False)
    password_changed_at = Column(DateTime, nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    listings = relationship("Listing", back_populates="owner", order_by="Listing.id")
    favorite_listings = relationship("Listing", secondary=user_favorite_listing, order_by="Listing.id")

    def set_password(self, password: str | None, password_confirm: str | None) -> None:
        """Validate and hash a new password.

        Replacing an existing password stamps ``password_changed_at`` so that
        session tokens issued before the change stop working.
        """
        if not password:
            raise BadRequest("Please provide a password")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise BadRequest(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if password != password_confirm:
            raise BadRequest("Passwords are not the same!")

        rounds = get_settings().BCRYPT_ROUNDS
        had_password = self.password_hash is not None
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")
        if had_password:
            self.password_changed_at = datetime.utcnow()

    def check_password(self, candidate: str) -> bool:
        """Verify a password against the stored hash."""
        if not candidate or not self.password_hash:
            return False
        return bcrypt.checkpw(candidate.encode("utf-8"), self.password_hash.encode("utf-8"))

    def changed_password_after(self, issued_at: float) -> bool:
        """True if the password changed after a token with this ``iat`` was issued."""
        if self.password_changed_at is None:
            return False
        return _timestamp(self.password_changed_at) > issued_at

    def create_password_reset_token(self, expires_in: timedelta) -> str:
        """Generate a reset token, store its hash and expiry, return the clear text.

        Any previously issued token is overwritten.
        """
        token = secrets.token_hex(32)
        self.password_reset_token = hash_reset_token(token)
        self.password_reset_expires_at = datetime.utcnow() + expires_in
        return token

    def clear_password_reset_token(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires_at = None

    def __repr__(self) -> str:
        return f"<User {self.email}>"
