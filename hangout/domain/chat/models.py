"""Chat domain models."""
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field


class Reaction(BaseModel):
    """One (user, emoji) pair on a message."""

    user_id: str
    emoji: str


class Message(BaseModel):
    """A room message or a direct message. Exactly one of room_id / to_user_id is set.

    room_id is the room row key. sequence is per-room and None for direct messages.
    """

    id: str
    room_id: Optional[str] = None
    to_user_id: Optional[str] = None
    author_id: str
    text: str
    sequence: Optional[int] = None
    reactions: list[Reaction] = Field(default_factory=list)
    version: int = 0
    is_read: bool = False
    created_at: datetime

    @property
    def is_direct(self) -> bool:
        return self.to_user_id is not None

    def can_be_seen_by_party(self, user_id: str) -> bool:
        """Direct-message visibility: author or addressee."""
        return user_id in (self.author_id, self.to_user_id)


class RoomTarget(BaseModel):
    room_id: str


class DirectTarget(BaseModel):
    to_user_id: str


MessageTarget = Union[RoomTarget, DirectTarget]


def toggle_reactions(reactions: list[Reaction], user_id: str, emoji: str) -> list[Reaction]:
    """Remove (user_id, emoji) if present, otherwise append it. Order is preserved."""
    kept = [r for r in reactions if not (r.user_id == user_id and r.emoji == emoji)]
    if len(kept) == len(reactions):
        kept.append(Reaction(user_id=user_id, emoji=emoji))
    return kept


def reactions_payload(reactions: list[Reaction]) -> list[dict]:
    return [{"userId": r.user_id, "emoji": r.emoji} for r in reactions]


class ConversationSummary(BaseModel):
    """One friend's direct-message thread as seen from the other side."""

    friend_id: str
    username: str
    display_name: Optional[str] = None
    is_online: bool
    last_seen_at: Optional[datetime] = None
    last_message: Optional[Message] = None
    unread_count: int = 0
