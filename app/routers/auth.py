"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import get_current_user
from app.errors import NotFound
from app.models.user import User
from app.rate_limit import limiter
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
)
from app.schemas.user import UserResponse
from app.services.auth import AuthResult, get_auth_service
from app.services.password_reset import get_password_reset_service

logger = logging.getLogger("roomie")

router = APIRouter(prefix="/api/v1/users", tags=["Authentication"])

RESET_SENT_MESSAGE = "Token sent to email!"
RESET_GENERIC_MESSAGE = "If an account exists with that email, a reset link has been sent."


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=UserResponse.model_validate(result.user))


@router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit("5/minute")
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Create an account and receive a session token."""
    result = get_auth_service().signup(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        password_confirm=body.password_confirm,
        profile_picture=body.profile_picture,
        age=body.age,
        about=body.about,
        college=body.college,
        favorite_listing_ids=body.favorite_listings,
    )
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Authenticate and receive a session token."""
    result = get_auth_service().login(db, body.email, body.password)
    return _auth_response(result)


@router.post("/forgotPassword", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Email a one-time password reset link."""
    settings = get_settings()

    def build_reset_url(token: str) -> str:
        return str(request.url_for("reset_password", token=token))

    try:
        get_password_reset_service().request_reset(db, body.email, build_reset_url)
    except NotFound:
        if settings.PASSWORD_RESET_DISCLOSE_UNKNOWN_EMAIL:
            raise
        logger.info("Password reset requested for unknown email")
        return MessageResponse(message=RESET_GENERIC_MESSAGE)

    if settings.PASSWORD_RESET_DISCLOSE_UNKNOWN_EMAIL:
        return MessageResponse(message=RESET_SENT_MESSAGE)
    return MessageResponse(message=RESET_GENERIC_MESSAGE)


@router.patch("/resetPassword/{token}", response_model=AuthResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Reset password using a valid token. Returns a session token for auto-login."""
    result = get_password_reset_service().perform_reset(db, token, body.password, body.password_confirm)
    return _auth_response(result)


@router.patch("/updateMyPassword", response_model=AuthResponse)
def update_my_password(
    body: UpdatePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Change the current user's password. Returns a new session token."""
    result = get_auth_service().change_password(
        db, user, body.current_password, body.password, body.password_confirm
    )
    return _auth_response(result)
