"""Friendship repository protocol."""
from typing import Optional, Protocol

from hangout.domain.friends.models import Friendship, FriendshipStatus
from hangout.domain.identity.models import User


class FriendshipRepository(Protocol):
    """Friendship repository protocol."""

    async def create_pending(self, requester_id: str, recipient_id: str) -> Friendship:
        """Insert a pending row. Raises AlreadyExistsError if the unordered pair exists."""
        ...

    async def get_by_id(self, friendship_id: str) -> Optional[Friendship]:
        ...

    async def get_between(self, user_a: str, user_b: str) -> Optional[Friendship]:
        """Row connecting the pair in either direction, any status."""
        ...

    async def resolve_pending(
        self, friendship_id: str, status: FriendshipStatus
    ) -> Optional[Friendship]:
        """Move a pending row to status. Returns None if the row is no longer pending."""
        ...

    async def delete_accepted_between(self, user_a: str, user_b: str) -> bool:
        """Hard-delete the accepted row for the pair. Returns False if none."""
        ...

    async def list_accepted_with_users(self, user_id: str) -> list[tuple[Friendship, User]]:
        """Accepted rows touching user_id, each with the counterpart user."""
        ...

    async def list_pending_for_recipient(self, user_id: str) -> list[tuple[Friendship, User]]:
        """Pending rows addressed to user_id, each with the requester."""
        ...
