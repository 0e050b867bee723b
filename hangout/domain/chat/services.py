"""Message fan-out and reaction store."""
import logging
from datetime import datetime
from typing import Callable, Optional

from hangout.domain.common.channels import EventPublisher, KeyedLock, publish_best_effort
from hangout.domain.common.errors import (
    AlreadyExistsError,
    AuthorizationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.common.types import room_topic, user_topic, utcnow
from hangout.domain.chat.models import (
    ConversationSummary,
    DirectTarget,
    Message,
    MessageTarget,
    RoomTarget,
    reactions_payload,
    toggle_reactions,
)
from hangout.domain.chat.repositories import MessageRepository
from hangout.domain.friends.models import FriendshipStatus
from hangout.domain.friends.repositories import FriendshipRepository
from hangout.domain.identity.repositories import UserRepository
from hangout.domain.presence.models import is_within_window
from hangout.domain.rooms.models import Room
from hangout.domain.rooms.repositories import RoomRepository

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_MAX_LENGTH = 2000
DEFAULT_REACTION_MAX_RETRIES = 8
DEFAULT_CONVERSATION_ONLINE_WINDOW_SECONDS = 300
_SEQUENCE_ATTEMPTS = 5

# Shared by every ChatService in the process so room events publish in write order
room_locks = KeyedLock()


class ChatService:
    """Persist messages and reactions, then fan them out to topic subscribers."""

    def __init__(
        self,
        message_repo: MessageRepository,
        room_repo: RoomRepository,
        user_repo: UserRepository,
        friendship_repo: FriendshipRepository,
        publisher: Optional[EventPublisher] = None,
        max_length: int = DEFAULT_MESSAGE_MAX_LENGTH,
        reaction_max_retries: int = DEFAULT_REACTION_MAX_RETRIES,
        locks: Optional[KeyedLock] = None,
        online_window_seconds: float = DEFAULT_CONVERSATION_ONLINE_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.message_repo = message_repo
        self.room_repo = room_repo
        self.user_repo = user_repo
        self.friendship_repo = friendship_repo
        self.publisher = publisher
        self.max_length = max_length
        self.reaction_max_retries = reaction_max_retries
        self.locks = locks if locks is not None else room_locks
        self.online_window_seconds = online_window_seconds
        self.clock = clock

    async def post_message(self, author_id: str, target: MessageTarget, text: str) -> Message:
        text = self._clean_text(text)
        if isinstance(target, RoomTarget):
            return await self._post_room_message(author_id, target.room_id, text)
        if isinstance(target, DirectTarget):
            return await self._post_direct_message(author_id, target.to_user_id, text)
        raise ValidationError("Unknown message target")

    async def _post_room_message(self, author_id: str, room_id: str, text: str) -> Message:
        room = await self._require_room(room_id)
        await self._require_active_member(room, author_id)

        async with self.locks.hold(room.id):
            message = None
            for attempt in range(_SEQUENCE_ATTEMPTS):
                try:
                    message = await self.message_repo.append_room_message(room.id, author_id, text)
                    break
                except AlreadyExistsError:
                    # Another process took the sequence number
                    logger.warning("Sequence conflict in room %s (attempt %d)", room.room_id, attempt + 1)
            if message is None:
                raise InternalError(f"Could not allocate a message sequence in room {room.room_id}")

            await publish_best_effort(
                self.publisher,
                room_topic(room.room_id),
                "message",
                {
                    "messageId": message.id,
                    "roomId": room.room_id,
                    "authorId": author_id,
                    "text": message.text,
                    "createdAt": message.created_at.isoformat(),
                    "sequence": message.sequence,
                },
            )
        return message

    async def _post_direct_message(self, author_id: str, to_user_id: str, text: str) -> Message:
        if not to_user_id or to_user_id == author_id:
            raise ValidationError("Cannot send a direct message to yourself")
        if await self.user_repo.get_by_id(to_user_id) is None:
            raise NotFoundError("User", to_user_id)
        await self._require_friends(author_id, to_user_id)

        message = await self.message_repo.create_direct_message(author_id, to_user_id, text)
        payload = {
            "messageId": message.id,
            "authorId": author_id,
            "toUserId": to_user_id,
            "text": message.text,
            "createdAt": message.created_at.isoformat(),
        }
        for party in (to_user_id, author_id):
            await publish_best_effort(self.publisher, user_topic(party), "message", payload)
        return message

    async def toggle_reaction(self, message_id: str, user_id: str, emoji: str) -> Message:
        """Add the user's emoji to a message, or remove it if already there."""
        emoji = (emoji or "").strip()
        if not emoji:
            raise ValidationError("Emoji is required")

        message = await self.message_repo.get_by_id(message_id)
        if message is None:
            raise NotFoundError("Message", message_id)
        room = await self._require_visible(message, user_id)

        for _ in range(self.reaction_max_retries):
            reactions = toggle_reactions(message.reactions, user_id, emoji)
            updated = await self.message_repo.update_reactions(message.id, message.version, reactions)
            if updated is not None:
                break
            message = await self.message_repo.get_by_id(message_id)
            if message is None:
                raise NotFoundError("Message", message_id)
        else:
            raise InternalError(f"Reaction update on message {message_id} kept conflicting")

        payload = {"messageId": updated.id, "reactions": reactions_payload(updated.reactions)}
        if room is not None:
            await publish_best_effort(self.publisher, room_topic(room.room_id), "reaction_updated", payload)
        else:
            for party in (updated.to_user_id, updated.author_id):
                await publish_best_effort(self.publisher, user_topic(party), "reaction_updated", payload)
        return updated

    async def list_room_messages(
        self, user_id: str, room_id: str, limit: int = 50, before_sequence: Optional[int] = None
    ) -> list[Message]:
        room = await self._require_room(room_id)
        await self._require_active_member(room, user_id)
        return await self.message_repo.list_room(room.id, limit=limit, before_sequence=before_sequence)

    async def list_direct_messages(self, user_id: str, friend_id: str, limit: int = 100) -> list[Message]:
        await self._require_friends(user_id, friend_id)
        return await self.message_repo.list_direct(user_id, friend_id, limit=limit)

    async def mark_direct_read(self, user_id: str, friend_id: str) -> int:
        """Mark every unread message from friend_id to user_id as read."""
        count = await self.message_repo.mark_direct_read(reader_id=user_id, author_id=friend_id)
        if count:
            logger.info("Marked %d direct messages from %s to %s as read", count, friend_id, user_id)
        return count

    async def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        """One entry per accepted friend: latest direct message, unread count, online flag.

        Threads with messages come first, most recent first; friends never messaged follow
        in friend-list order.
        """
        now = self.clock()
        unread = await self.message_repo.unread_direct_counts(user_id)
        with_messages, without_messages = [], []
        for _, friend in await self.friendship_repo.list_accepted_with_users(user_id):
            latest = await self.message_repo.list_direct(user_id, friend.id, limit=1)
            summary = ConversationSummary(
                friend_id=friend.id,
                username=friend.username,
                display_name=friend.display_name,
                is_online=is_within_window(friend.last_seen_at, self.online_window_seconds, now),
                last_seen_at=friend.last_seen_at,
                last_message=latest[0] if latest else None,
                unread_count=unread.get(friend.id, 0),
            )
            (with_messages if latest else without_messages).append(summary)
        with_messages.sort(key=lambda c: (c.last_message.created_at, c.last_message.id), reverse=True)
        return with_messages + without_messages

    def _clean_text(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required")
        if len(text) > self.max_length:
            raise ValidationError(f"Message text exceeds {self.max_length} characters")
        return text

    async def _require_room(self, room_id: str) -> Room:
        room = await self.room_repo.get_by_slug(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    async def _require_active_member(self, room: Room, user_id: str) -> None:
        membership = await self.room_repo.get_membership(room.id, user_id)
        if membership is None or not membership.is_active:
            raise AuthorizationError("Not an active member of this room")

    async def _require_friends(self, user_id: str, other_id: str) -> None:
        friendship = await self.friendship_repo.get_between(user_id, other_id)
        if friendship is None or friendship.status != FriendshipStatus.ACCEPTED:
            raise AuthorizationError("Direct messages are only available between friends")

    async def _require_visible(self, message: Message, user_id: str) -> Optional[Room]:
        """Room of the message if the user may see it; None for a visible direct message."""
        if message.is_direct:
            if not message.can_be_seen_by_party(user_id):
                raise AuthorizationError("Not a party to this conversation")
            return None
        room = await self.room_repo.get_by_id(message.room_id)
        if room is None:
            raise NotFoundError("Room", message.room_id)
        await self._require_active_member(room, user_id)
        return room
