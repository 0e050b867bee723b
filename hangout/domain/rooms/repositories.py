"""Room repository protocol."""
from typing import Optional, Protocol

from hangout.domain.identity.models import User
from hangout.domain.rooms.models import Room, RoomMembership, RoomRole


class RoomRepository(Protocol):
    """Room and membership repository protocol.

    Room arguments named room_pk are row keys (Room.id), not slugs.
    """

    async def create_with_owner(self, room: Room) -> tuple[Room, RoomMembership]:
        """Insert the room and the owner's admin membership in one transaction."""
        ...

    async def get_by_slug(self, room_id: str) -> Optional[Room]:
        ...

    async def get_by_id(self, room_pk: str) -> Optional[Room]:
        ...

    async def list_public(self, limit: int = 50) -> list[Room]:
        ...

    async def get_membership(self, room_pk: str, user_id: str) -> Optional[RoomMembership]:
        ...

    async def admit(self, room: Room, user_id: str, pending_approval: bool = False) -> RoomMembership:
        """Create or reactivate a membership.

        An active admission claims capacity atomically (RoomFullError); a
        pending one only checks it. Raises AlreadyMemberError when an active
        or pending membership already exists.
        """
        ...

    async def set_active(self, room: Room, user_id: str, active: bool) -> Optional[RoomMembership]:
        """Flip is_active, claiming or releasing capacity. None if no membership row."""
        ...

    async def set_role(self, room_pk: str, user_id: str, role: RoomRole) -> Optional[RoomMembership]:
        ...

    async def list_members(
        self, room_pk: str, include_inactive: bool = False
    ) -> list[tuple[RoomMembership, User]]:
        ...
