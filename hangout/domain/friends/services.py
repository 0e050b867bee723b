"""Friendship ledger services."""
import logging
from datetime import datetime
from typing import Callable, Optional

from hangout.domain.common.channels import (
    EventPublisher,
    Notifier,
    notify_best_effort,
    publish_best_effort,
)
from hangout.domain.common.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.common.types import user_topic, utcnow
from hangout.domain.friends.models import (
    FriendDecision,
    Friendship,
    FriendshipStatus,
    FriendSummary,
    PendingRequest,
)
from hangout.domain.friends.repositories import FriendshipRepository
from hangout.domain.identity.repositories import UserRepository
from hangout.domain.presence.models import is_within_window

logger = logging.getLogger(__name__)

DEFAULT_FRIEND_ONLINE_WINDOW_SECONDS = 300


class FriendshipService:
    """Friend request lifecycle: pending -> accepted | rejected, unfriend = hard delete.

    A rejected row keeps blocking send_request for the same pair; there is no
    re-request path other than removing the row.
    """

    def __init__(
        self,
        friendship_repo: FriendshipRepository,
        user_repo: UserRepository,
        publisher: Optional[EventPublisher] = None,
        notifier: Optional[Notifier] = None,
        online_window_seconds: float = DEFAULT_FRIEND_ONLINE_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.friendship_repo = friendship_repo
        self.user_repo = user_repo
        self.publisher = publisher
        self.notifier = notifier
        self.online_window_seconds = online_window_seconds
        self.clock = clock

    async def send_request(self, requester_id: str, recipient_id: str) -> Friendship:
        """Create a pending request from requester to recipient."""
        if not recipient_id or requester_id == recipient_id:
            raise ValidationError("Cannot send a friend request to yourself")
        recipient = await self.user_repo.get_by_id(recipient_id)
        if recipient is None:
            raise NotFoundError("User", recipient_id)

        friendship = await self.friendship_repo.create_pending(requester_id, recipient_id)
        logger.info(
            "Friend request %s created: %s -> %s", friendship.id, requester_id, recipient_id
        )

        await publish_best_effort(
            self.publisher,
            user_topic(recipient_id),
            "friend_request",
            {"friendshipId": friendship.id, "fromUserId": requester_id},
        )
        requester = await self.user_repo.get_by_id(requester_id)
        sender_name = requester.label if requester else "Someone"
        await notify_best_effort(
            self.notifier,
            recipient_id,
            "friend_request",
            "New friend request",
            f"{sender_name} sent you a friend request",
            {"friendshipId": friendship.id, "fromUserId": requester_id},
        )
        return friendship

    async def respond(
        self, friendship_id: str, acting_user_id: str, decision: FriendDecision | str
    ) -> Friendship:
        """Accept or reject a pending request. Only the recipient may respond, once."""
        try:
            decision = FriendDecision(decision)
        except ValueError:
            raise ValidationError(f"Invalid decision: {decision}")

        friendship = await self.friendship_repo.get_by_id(friendship_id)
        if friendship is None:
            raise NotFoundError("Friendship", friendship_id)
        if friendship.recipient_id != acting_user_id:
            raise AuthorizationError("Only the recipient can respond to a friend request")
        if friendship.status != FriendshipStatus.PENDING:
            raise InvalidStateError(f"Friend request is already {friendship.status.value}")

        new_status = (
            FriendshipStatus.ACCEPTED if decision == FriendDecision.ACCEPT else FriendshipStatus.REJECTED
        )
        updated = await self.friendship_repo.resolve_pending(friendship_id, new_status)
        if updated is None:
            # Lost a race with another response
            raise InvalidStateError("Friend request is no longer pending")
        logger.info("Friend request %s %s by %s", friendship_id, new_status.value, acting_user_id)

        accepted = new_status == FriendshipStatus.ACCEPTED
        await publish_best_effort(
            self.publisher,
            user_topic(updated.requester_id),
            "friend_response",
            {"friendshipId": updated.id, "accepted": accepted},
        )
        responder = await self.user_repo.get_by_id(acting_user_id)
        responder_name = responder.label if responder else "Someone"
        if accepted:
            title, message = "Friend request accepted", f"{responder_name} accepted your friend request"
        else:
            title, message = "Friend request declined", f"{responder_name} declined your friend request"
        await notify_best_effort(
            self.notifier,
            updated.requester_id,
            "friend_accepted" if accepted else "friend_rejected",
            title,
            message,
            {"friendshipId": updated.id, "friendId": acting_user_id},
        )
        return updated

    async def unfriend(self, acting_user_id: str, other_user_id: str) -> None:
        """Delete the accepted edge between the two users."""
        deleted = await self.friendship_repo.delete_accepted_between(acting_user_id, other_user_id)
        if not deleted:
            raise NotFoundError("Friendship", f"{acting_user_id}/{other_user_id}")
        logger.info("Friendship removed: %s <-> %s", acting_user_id, other_user_id)

    async def list_friends(self, user_id: str) -> list[FriendSummary]:
        """Accepted friends with the friend-list online flag."""
        now = self.clock()
        rows = await self.friendship_repo.list_accepted_with_users(user_id)
        return [
            FriendSummary(
                id=friend.id,
                username=friend.username,
                display_name=friend.display_name,
                is_online=is_within_window(friend.last_seen_at, self.online_window_seconds, now),
                last_seen_at=friend.last_seen_at,
                friends_since=friendship.updated_at,
            )
            for friendship, friend in rows
        ]

    async def list_pending(self, user_id: str) -> list[PendingRequest]:
        """Incoming pending requests."""
        rows = await self.friendship_repo.list_pending_for_recipient(user_id)
        return [
            PendingRequest(
                friendship_id=friendship.id,
                from_user_id=requester.id,
                from_username=requester.username,
                from_display_name=requester.display_name,
                created_at=friendship.created_at,
            )
            for friendship, requester in rows
        ]

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        friendship = await self.friendship_repo.get_between(user_a, user_b)
        return friendship is not None and friendship.status == FriendshipStatus.ACCEPTED
