"""Identity reference: users as supplied by the auth/session collaborator."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    """Platform-wide role."""
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class User(BaseModel):
    """User domain model. Core only writes last_seen_at."""

    id: str
    username: str
    display_name: Optional[str] = None
    role: UserRole = UserRole.MEMBER
    last_seen_at: Optional[datetime] = None
    created_at: datetime

    @property
    def is_moderator(self) -> bool:
        """Moderators and admins may override room-level role checks."""
        return self.role in (UserRole.MODERATOR, UserRole.ADMIN)

    @property
    def label(self) -> str:
        return self.display_name or self.username
