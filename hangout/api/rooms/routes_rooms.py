"""Room routes: create, list, join/leave, members and role changes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from hangout.api.deps import get_current_user, get_room_service
from hangout.domain.identity.models import User
from hangout.domain.rooms.models import MemberSummary, Room, RoomMembership, RoomPrivacy, RoomSpec
from hangout.domain.rooms.services import RoomService

router = APIRouter()


class CreateRoomRequest(BaseModel):
    name: str
    description: Optional[str] = None
    privacy: RoomPrivacy = RoomPrivacy.PUBLIC
    max_members: Optional[int] = None
    require_approval: bool = False


class RoomResponse(BaseModel):
    """Room as seen by clients; room_id is the public slug."""

    room_id: str
    name: str
    description: Optional[str] = None
    privacy: RoomPrivacy
    require_approval: bool
    max_members: int
    member_count: int
    owner_id: str

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            name=room.name,
            description=room.description,
            privacy=room.privacy,
            require_approval=room.require_approval,
            max_members=room.max_members,
            member_count=room.active_member_count,
            owner_id=room.owner_id,
        )


class MembershipResponse(BaseModel):
    room_id: str
    user_id: str
    role: str
    is_active: bool
    pending_approval: bool

    @classmethod
    def from_membership(cls, room_id: str, membership: RoomMembership) -> "MembershipResponse":
        return cls(
            room_id=room_id,
            user_id=membership.user_id,
            role=membership.role.value,
            is_active=membership.is_active,
            pending_approval=membership.pending_approval,
        )


@router.post("", response_model=RoomResponse)
async def create_room(
    request: CreateRoomRequest,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    """Create a room; the creator becomes its first admin."""
    room, _ = await service.create_room(current_user.id, RoomSpec(**request.model_dump()))
    return RoomResponse.from_room(room)


@router.get("", response_model=List[RoomResponse])
async def list_rooms(
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    """Public rooms, newest first."""
    return [RoomResponse.from_room(r) for r in await service.list_public_rooms(limit=limit)]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    return RoomResponse.from_room(await service.get_room(room_id, current_user))


@router.post("/{room_id}/join", response_model=MembershipResponse)
async def join_room(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    """Join a room (or request to, when it needs approval)."""
    membership = await service.join_room(current_user.id, room_id)
    return MembershipResponse.from_membership(room_id, membership)


@router.post("/{room_id}/leave", response_model=MembershipResponse)
async def leave_room(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    membership = await service.leave_room(current_user.id, room_id)
    return MembershipResponse.from_membership(room_id, membership)


@router.get("/{room_id}/members", response_model=List[MemberSummary])
async def list_members(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    return await service.list_members(room_id, current_user)


@router.post("/{room_id}/members/{user_id}/promote", response_model=MembershipResponse)
async def promote_member(
    room_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    membership = await service.promote(current_user, user_id, room_id)
    return MembershipResponse.from_membership(room_id, membership)


@router.post("/{room_id}/members/{user_id}/demote", response_model=MembershipResponse)
async def demote_member(
    room_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    membership = await service.demote(current_user, user_id, room_id)
    return MembershipResponse.from_membership(room_id, membership)


@router.post("/{room_id}/members/{user_id}/approve", response_model=MembershipResponse)
async def approve_member(
    room_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    membership = await service.approve_member(current_user, room_id, user_id)
    return MembershipResponse.from_membership(room_id, membership)


@router.post("/{room_id}/members/{user_id}/kick", response_model=MembershipResponse)
async def kick_member(
    room_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: RoomService = Depends(get_room_service),
):
    membership = await service.kick_member(current_user, user_id, room_id)
    return MembershipResponse.from_membership(room_id, membership)
