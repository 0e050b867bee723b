"""Friendship domain models."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class Friendship(BaseModel):
    """The single persisted edge between two users."""

    id: str
    requester_id: str
    recipient_id: str
    status: FriendshipStatus
    created_at: datetime
    updated_at: datetime

    def involves(self, user_id: str) -> bool:
        return user_id in (self.requester_id, self.recipient_id)

    def counterpart(self, user_id: str) -> str:
        """Return the other side of the edge."""
        return self.recipient_id if user_id == self.requester_id else self.requester_id


class FriendSummary(BaseModel):
    """Accepted friend as seen from one user's list."""

    id: str
    username: str
    display_name: Optional[str] = None
    is_online: bool
    last_seen_at: Optional[datetime] = None
    friends_since: datetime


class PendingRequest(BaseModel):
    """Incoming friend request."""

    friendship_id: str
    from_user_id: str
    from_username: str
    from_display_name: Optional[str] = None
    created_at: datetime
