"""Message repository protocol."""
from typing import Optional, Protocol

from hangout.domain.chat.models import Message, Reaction


class MessageRepository(Protocol):
    """Message repository protocol."""

    async def append_room_message(self, room_pk: str, author_id: str, text: str) -> Message:
        """Insert with sequence = max + 1. Raises AlreadyExistsError if the sequence was taken.

        Any other integrity failure propagates unchanged.
        """
        ...

    async def create_direct_message(self, author_id: str, to_user_id: str, text: str) -> Message:
        ...

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        ...

    async def update_reactions(
        self, message_id: str, expected_version: int, reactions: list[Reaction]
    ) -> Optional[Message]:
        """Write reactions iff the row is still at expected_version. None on a lost race."""
        ...

    async def list_room(
        self, room_pk: str, limit: int = 50, before_sequence: Optional[int] = None
    ) -> list[Message]:
        """Newest page of room messages, returned in ascending sequence order."""
        ...

    async def list_direct(self, user_a: str, user_b: str, limit: int = 100) -> list[Message]:
        ...

    async def mark_direct_read(self, reader_id: str, author_id: str) -> int:
        ...

    async def unread_direct_counts(self, reader_id: str) -> dict[str, int]:
        """Unread direct messages addressed to reader_id, keyed by author."""
        ...
