"""Identity repository protocol."""
from datetime import datetime
from typing import Optional, Protocol

from hangout.domain.identity.models import User


class UserRepository(Protocol):
    """User repository protocol."""

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        ...

    async def get_many(self, user_ids: list[str]) -> dict[str, User]:
        """Get users by ID, keyed by id. Unknown ids are omitted."""
        ...

    async def set_last_seen(self, user_id: str, seen_at: datetime) -> bool:
        """Overwrite last_seen_at. Returns False if the user does not exist."""
        ...
