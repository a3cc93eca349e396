"""Listing model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base


class Listing(Base):
    """Room listing posted by a user."""

    __tablename__ = "listing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    title = Column(String(256), nullable=False)
    picture_cover = Column(String(512), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(64), nullable=True)
    country = Column(String(64), nullable=True)
    zip = Column(String(16), nullable=True)
    rent = Column(Float, nullable=True)
    utilities_included = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    owner = relationship("User", back_populates="listings")
