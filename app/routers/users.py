"""User profile API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_role
from app.models.user import User
from app.schemas.user import UserDetailEnvelope, UserDetailResponse, UserEnvelope, UserListResponse, UserResponse
from app.services.user import get_user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.patch("/updateMe", response_model=UserEnvelope)
def update_me(
    body: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    """Update the current user's profile fields."""
    updated = get_user_service().update_me(db, user, body)
    return UserEnvelope(user=UserResponse.model_validate(updated))


@router.delete("/deleteMe", status_code=204)
def delete_me(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    """Deactivate the current user's account."""
    get_user_service().deactivate_me(db, user)
    return Response(status_code=204)


@router.get("", response_model=UserListResponse)
def list_users(
    user: User = Depends(require_role("user", "admin")),
    db: Session = Depends(get_db),
) -> UserListResponse:
    """List all active users."""
    users = get_user_service().list_users(db)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.get("/{user_id}", response_model=UserDetailEnvelope)
def get_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserDetailEnvelope:
    """Get a single user with their listings."""
    found = get_user_service().get_user(db, user_id)
    return UserDetailEnvelope(user=UserDetailResponse.model_validate(found))
