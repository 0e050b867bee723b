"""Presence routes."""
from fastapi import APIRouter, Depends

from hangout.api.deps import get_current_user, get_presence_service
from hangout.domain.identity.models import User
from hangout.domain.presence.models import PresenceStatus
from hangout.domain.presence.services import PresenceService

router = APIRouter()


@router.post("/touch")
async def touch(
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    """Record that the current user is active."""
    seen_at = await service.touch(current_user.id)
    return {"ok": True, "last_seen_at": seen_at.isoformat()}


@router.get("/{user_id}", response_model=PresenceStatus)
async def get_presence(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.get_status(user_id)
