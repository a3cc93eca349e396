"""Pydantic schemas for user profile endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class ListingSummary(BaseModel):
    """Read-only projection of a listing shown on a user's profile."""

    id: int
    title: str
    picture_cover: str | None
    city: str | None
    state: str | None
    country: str | None
    zip: str | None
    rent: float | None
    utilities_included: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    profile_picture: str | None
    age: int | None
    about: str | None
    college: str | None
    favorite_listings: list[int] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("favorite_listings", mode="before")
    @classmethod
    def listing_ids(cls, value):
        return [getattr(item, "id", item) for item in value or []]


class UserDetailResponse(UserResponse):
    listings: list[ListingSummary] = Field(default_factory=list)


class UserEnvelope(BaseModel):
    user: UserResponse


class UserDetailEnvelope(BaseModel):
    user: UserDetailResponse


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class UserUpdateRequest(BaseModel):
    """Self-service profile fields. Anything else is dropped before validation."""

    name: str | None = Field(default=None, max_length=256)
    email: EmailStr | None = None
    profile_picture: str | None = None
    about: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    college: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
