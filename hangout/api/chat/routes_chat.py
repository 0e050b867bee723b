"""Message routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from hangout.api.deps import get_current_user, get_chat_service
from hangout.domain.chat.models import ConversationSummary, DirectTarget, Message, RoomTarget
from hangout.domain.chat.services import ChatService
from hangout.domain.identity.models import User

router = APIRouter()


class PostMessageRequest(BaseModel):
    text: str


class DirectMessageRequest(BaseModel):
    to_user_id: str
    text: str


class ReactionRequest(BaseModel):
    emoji: str


class ReactionOut(BaseModel):
    user_id: str
    emoji: str


class MessageResponse(BaseModel):
    id: str
    room_id: Optional[str] = None  # room slug
    to_user_id: Optional[str] = None
    author_id: str
    text: str
    sequence: Optional[int] = None
    reactions: List[ReactionOut]
    is_read: bool
    created_at: datetime

    @classmethod
    def from_message(cls, m: Message, room_id: Optional[str] = None) -> "MessageResponse":
        return cls(
            id=m.id,
            room_id=room_id,
            to_user_id=m.to_user_id,
            author_id=m.author_id,
            text=m.text,
            sequence=m.sequence,
            reactions=[ReactionOut(user_id=r.user_id, emoji=r.emoji) for r in m.reactions],
            is_read=m.is_read,
            created_at=m.created_at,
        )


class ConversationResponse(BaseModel):
    friend_id: str
    username: str
    display_name: Optional[str] = None
    is_online: bool
    last_seen_at: Optional[datetime] = None
    last_message: Optional[MessageResponse] = None
    unread_count: int

    @classmethod
    def from_summary(cls, c: ConversationSummary) -> "ConversationResponse":
        return cls(
            friend_id=c.friend_id,
            username=c.username,
            display_name=c.display_name,
            is_online=c.is_online,
            last_seen_at=c.last_seen_at,
            last_message=MessageResponse.from_message(c.last_message) if c.last_message else None,
            unread_count=c.unread_count,
        )


@router.post("/rooms/{room_id}/messages", response_model=MessageResponse)
async def post_room_message(
    room_id: str,
    request: PostMessageRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    message = await service.post_message(current_user.id, RoomTarget(room_id=room_id), request.text)
    return MessageResponse.from_message(message, room_id)


@router.get("/rooms/{room_id}/messages", response_model=List[MessageResponse])
async def list_room_messages(
    room_id: str,
    limit: int = Query(50, ge=1, le=200),
    before_sequence: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Room history, oldest first within the page."""
    messages = await service.list_room_messages(current_user.id, room_id, limit, before_sequence)
    return [MessageResponse.from_message(m, room_id) for m in messages]


@router.post("/messages/direct", response_model=MessageResponse)
async def post_direct_message(
    request: DirectMessageRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    message = await service.post_message(
        current_user.id, DirectTarget(to_user_id=request.to_user_id), request.text
    )
    return MessageResponse.from_message(message)


@router.get("/messages/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Direct-message threads with every friend, most recently active first."""
    return [ConversationResponse.from_summary(c) for c in await service.list_conversations(current_user.id)]


@router.get("/messages/direct/{friend_id}", response_model=List[MessageResponse])
async def list_direct_messages(
    friend_id: str,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    messages = await service.list_direct_messages(current_user.id, friend_id, limit)
    return [MessageResponse.from_message(m) for m in messages]


@router.post("/messages/direct/{friend_id}/read")
async def mark_direct_read(
    friend_id: str,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    count = await service.mark_direct_read(current_user.id, friend_id)
    return {"ok": True, "updated": count}


@router.post("/messages/{message_id}/reactions")
async def toggle_reaction(
    message_id: str,
    request: ReactionRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Toggle the current user's emoji on a message."""
    message = await service.toggle_reaction(message_id, current_user.id, request.emoji)
    return {
        "message_id": message.id,
        "reactions": [{"user_id": r.user_id, "emoji": r.emoji} for r in message.reactions],
    }
