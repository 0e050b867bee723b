"""Notification inbox and device registration routes."""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.api.deps import get_current_user, get_db
from hangout.domain.identity.models import User
from hangout.infra.db.repositories.device_repo import DeviceRepository
from hangout.infra.db.repositories.notification_repo import NotificationRepository
from hangout.services.notification_service import notification_payload

router = APIRouter()


class NotificationResponse(BaseModel):
    """Notification response."""
    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = {}
    read: bool
    timestamp: int  # ms since epoch for client compatibility


class DeviceRegisterRequest(BaseModel):
    push_token: str
    platform: str  # 'ios' or 'android'


@router.get("/notifications", response_model=List[NotificationResponse])
async def list_notifications(
    limit: Optional[int] = 50,
    type: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List notifications for the current user, newest first. Optional filter by type."""
    if limit is not None and (limit < 1 or limit > 100):
        limit = 50
    repo = NotificationRepository(db)
    models = await repo.list_by_user(current_user.id, limit=limit or 50, type=type)
    return [NotificationResponse(**notification_payload(m)) for m in models]


@router.get("/notifications/unread-count")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return unread notification count for the current user."""
    count = await NotificationRepository(db).count_unread(current_user.id)
    return {"unread": count}


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a notification as read."""
    updated = await NotificationRepository(db).mark_read(notification_id, current_user.id)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"ok": True}


@router.post("/notifications/read-all")
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all notifications as read for the current user."""
    count = await NotificationRepository(db).mark_all_read(current_user.id)
    return {"ok": True, "updated": count}


@router.post("/devices")
async def register_device(
    request: DeviceRegisterRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register (or re-assign) a push token for the current user."""
    if request.platform not in ("ios", "android"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="platform must be ios or android")
    device = await DeviceRepository(db).upsert_by_token(current_user.id, request.push_token, request.platform)
    return {"ok": True, "id": device.id}
