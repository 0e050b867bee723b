"""Presence domain models and the online-window predicate."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


def is_within_window(
    last_activity_at: Optional[datetime], window_seconds: float, now: datetime
) -> bool:
    """True iff now - last_activity_at < window_seconds. Absent timestamp is offline."""
    if last_activity_at is None:
        return False
    return (now - last_activity_at).total_seconds() < window_seconds


class PresenceStatus(BaseModel):
    """Online status for one user."""

    user_id: str
    is_online: bool
    last_seen_at: Optional[datetime] = None


class LiveSessionPrivacy(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"


class LiveSession(BaseModel):
    """Ephemeral personal live session kept alive by heartbeats."""

    id: str
    owner_id: str
    title: str
    description: str = ""
    privacy: LiveSessionPrivacy = LiveSessionPrivacy.PUBLIC
    is_live: bool
    started_at: datetime
    last_heartbeat_at: datetime
    ended_at: Optional[datetime] = None


class LiveScope(str, Enum):
    DISCOVER = "discover"
    FRIENDS = "friends"
    ME = "me"
