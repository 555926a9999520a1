# app/routers/auth.py
"""Login callback + current-user endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Header
from app.config import settings
from app.dependencies import get_storage
from app.schemas.user import LoginRequest, UserPreferences
from app.services import auth_service
from app.services.storage import Storage

router = APIRouter()


@router.post("/auth/login", summary="External-login callback — creates the user on first login")
async def login(body: LoginRequest, storage: Storage = Depends(get_storage)):
    """Rejects emails outside the institutional domain with 400."""
    user = auth_service.login(storage, body, settings.INSTITUTIONAL_EMAIL_DOMAIN)
    return {"user": user.public()}


@router.get("/auth/me", summary="Current user (identified by X-Student-Id)")
async def me(x_student_id: Optional[str] = Header(None), storage: Storage = Depends(get_storage)):
    user = auth_service.current_user(storage, x_student_id)
    return {"user": user.public()}


@router.put("/auth/preferences", summary="Update notification preferences of the current user")
async def update_preferences(body: UserPreferences,
                             x_student_id: Optional[str] = Header(None),
                             storage: Storage = Depends(get_storage)):
    user = auth_service.current_user(storage, x_student_id)
    user = storage.update_user_preferences(user.id, body)
    return {"user": user.public()}
