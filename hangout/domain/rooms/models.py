"""Room domain models."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RoomPrivacy(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class RoomRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class RoomSpec(BaseModel):
    """Caller-supplied room settings."""

    name: str
    description: Optional[str] = None
    privacy: RoomPrivacy = RoomPrivacy.PUBLIC
    max_members: Optional[int] = None
    require_approval: bool = False


class Room(BaseModel):
    """Room domain model. room_id is the external slug; id is the row key."""

    id: str
    room_id: str
    name: str
    description: Optional[str] = None
    privacy: RoomPrivacy
    require_approval: bool = False
    max_members: int
    active_member_count: int = 0
    owner_id: str
    created_at: datetime
    updated_at: datetime

    @property
    def needs_approval(self) -> bool:
        return self.privacy == RoomPrivacy.PRIVATE and self.require_approval


class RoomMembership(BaseModel):
    """A user's participation record in a room."""

    id: str
    user_id: str
    room_id: str
    role: RoomRole
    is_active: bool
    pending_approval: bool = False
    joined_at: datetime
    left_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role == RoomRole.ADMIN


class MemberSummary(BaseModel):
    """Membership with the member's display attributes."""

    user_id: str
    username: str
    display_name: Optional[str] = None
    role: RoomRole
    is_active: bool
    pending_approval: bool
    joined_at: datetime
