"""Live session routes: start, heartbeat, stop, listings."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hangout.api.deps import get_current_user, get_presence_service
from hangout.domain.identity.models import User
from hangout.domain.presence.models import LiveScope, LiveSession, LiveSessionPrivacy
from hangout.domain.presence.services import PresenceService

router = APIRouter()


class StartLiveRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    privacy: LiveSessionPrivacy = LiveSessionPrivacy.PUBLIC


@router.post("", response_model=LiveSession)
async def start_live(
    request: StartLiveRequest,
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.start_live_session(
        current_user.id, request.title, request.description, request.privacy
    )


@router.post("/{live_session_id}/heartbeat")
async def live_heartbeat(
    live_session_id: str,
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    at = await service.heartbeat(live_session_id, current_user.id)
    return {"ok": True, "last_heartbeat_at": at.isoformat()}


@router.post("/{live_session_id}/stop")
async def stop_live(
    live_session_id: str,
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    closed = await service.stop_live_session(current_user.id, live_session_id)
    return {"ok": True, "closed": closed}


@router.get("", response_model=List[LiveSession])
async def list_live(
    scope: LiveScope = LiveScope.FRIENDS,
    current_user: User = Depends(get_current_user),
    service: PresenceService = Depends(get_presence_service),
):
    """Live sessions: discover (public), friends, or me."""
    return await service.list_live_sessions(current_user.id, scope)
