"""Friend request and friend list routes."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hangout.api.deps import get_current_user, get_friendship_service
from hangout.domain.friends.models import FriendDecision, Friendship, FriendSummary, PendingRequest
from hangout.domain.friends.services import FriendshipService
from hangout.domain.identity.models import User

router = APIRouter()


class FriendRequestCreate(BaseModel):
    user_id: str


class FriendRequestResponse(BaseModel):
    decision: FriendDecision


@router.post("/requests", response_model=Friendship)
async def send_friend_request(
    request: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    """Send a friend request to another user."""
    return await service.send_request(current_user.id, request.user_id)


@router.get("/requests", response_model=List[PendingRequest])
async def list_friend_requests(
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    """Incoming pending friend requests."""
    return await service.list_pending(current_user.id)


@router.put("/requests/{friendship_id}", response_model=Friendship)
async def respond_to_friend_request(
    friendship_id: str,
    request: FriendRequestResponse,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    """Accept or reject a pending request addressed to the current user."""
    return await service.respond(friendship_id, current_user.id, request.decision)


@router.get("", response_model=List[FriendSummary])
async def list_friends(
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.list_friends(current_user.id)


@router.delete("/{other_user_id}")
async def unfriend(
    other_user_id: str,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    await service.unfriend(current_user.id, other_user_id)
    return {"ok": True}
