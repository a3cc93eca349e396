"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.schemas.user import UserResponse


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(CamelModel):
    name: str = Field(min_length=1, max_length=256)
    email: EmailStr
    password: str
    password_confirm: str
    profile_picture: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    about: str | None = None
    college: str | None = None
    favorite_listings: list[int] = Field(default_factory=list)


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: str | None = None
    password_confirm: str | None = None


class UpdatePasswordRequest(CamelModel):
    current_password: str | None = None
    password: str | None = None
    password_confirm: str | None = None


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
