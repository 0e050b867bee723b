"""Room membership registry services."""
import logging
from typing import Optional

from hangout.domain.common.channels import EventPublisher, publish_best_effort
from hangout.domain.common.errors import (
    AlreadyExistsError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.common.types import generate_id, generate_slug, room_topic, utcnow
from hangout.domain.identity.models import User
from hangout.domain.identity.repositories import UserRepository
from hangout.domain.rooms.models import (
    MemberSummary,
    Room,
    RoomMembership,
    RoomPrivacy,
    RoomRole,
    RoomSpec,
)
from hangout.domain.rooms.repositories import RoomRepository

logger = logging.getLogger(__name__)

_SLUG_ATTEMPTS = 3


class RoomService:
    """Room creation, membership, capacity and role management."""

    def __init__(
        self,
        room_repo: RoomRepository,
        user_repo: UserRepository,
        publisher: Optional[EventPublisher] = None,
        default_max_members: int = 50,
        max_members_limit: int = 500,
    ):
        self.room_repo = room_repo
        self.user_repo = user_repo
        self.publisher = publisher
        self.default_max_members = default_max_members
        self.max_members_limit = max_members_limit

    async def create_room(self, owner_id: str, spec: RoomSpec) -> tuple[Room, RoomMembership]:
        """Create a room with the owner as its first admin member."""
        name = (spec.name or "").strip()
        if not name:
            raise ValidationError("Room name is required")
        max_members = spec.max_members if spec.max_members is not None else self.default_max_members
        if max_members < 1 or max_members > self.max_members_limit:
            raise ValidationError(f"max_members must be between 1 and {self.max_members_limit}")

        description = (spec.description or "").strip() or None
        for attempt in range(_SLUG_ATTEMPTS):
            now = utcnow()
            room = Room(
                id=generate_id(),
                room_id=generate_slug("room"),
                name=name,
                description=description,
                privacy=spec.privacy,
                require_approval=spec.require_approval,
                max_members=max_members,
                active_member_count=1,
                owner_id=owner_id,
                created_at=now,
                updated_at=now,
            )
            try:
                created, membership = await self.room_repo.create_with_owner(room)
            except AlreadyExistsError:
                logger.warning("Room slug collision on %s (attempt %d)", room.room_id, attempt + 1)
                continue
            logger.info("Room %s created by %s", created.room_id, owner_id)
            return created, membership
        raise AlreadyExistsError("Could not allocate a unique room id")

    async def get_room(self, room_id: str, acting_user: Optional[User] = None) -> Room:
        """Look up a room by slug. With acting_user, private rooms are only shown to insiders."""
        room = await self.room_repo.get_by_slug(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        if acting_user is not None:
            await self._require_can_view(acting_user, room)
        return room

    async def list_public_rooms(self, limit: int = 50) -> list[Room]:
        return await self.room_repo.list_public(limit=limit)

    async def join_room(self, user_id: str, room_id: str) -> RoomMembership:
        """Join a room, or request to join when it needs approval."""
        room = await self.get_room(room_id)
        membership = await self.room_repo.admit(room, user_id, pending_approval=room.needs_approval)
        if membership.pending_approval:
            logger.info("User %s requested to join %s", user_id, room.room_id)
        else:
            logger.info("User %s joined %s", user_id, room.room_id)
            await publish_best_effort(
                self.publisher,
                room_topic(room.room_id),
                "member_joined",
                {"roomId": room.room_id, "userId": user_id, "role": membership.role.value},
            )
        return membership

    async def set_membership_active(self, room_id: str, user_id: str, active: bool) -> RoomMembership:
        """Activate or deactivate an existing membership (approval / removal primitive)."""
        room = await self.get_room(room_id)
        membership = await self.room_repo.set_active(room, user_id, active)
        if membership is None:
            raise NotFoundError("RoomMembership", f"{room_id}/{user_id}")
        return membership

    async def leave_room(self, user_id: str, room_id: str) -> RoomMembership:
        """Soft-remove the caller's membership; the row is kept for moderation lookups."""
        room = await self.get_room(room_id)
        current = await self.room_repo.get_membership(room.id, user_id)
        if current is None or not (current.is_active or current.pending_approval):
            raise NotFoundError("RoomMembership", f"{room_id}/{user_id}")
        membership = await self.room_repo.set_active(room, user_id, False)
        logger.info("User %s left %s", user_id, room.room_id)
        await publish_best_effort(
            self.publisher,
            room_topic(room.room_id),
            "member_left",
            {"roomId": room.room_id, "userId": user_id},
        )
        return membership

    async def approve_member(self, acting_user: User, room_id: str, user_id: str) -> RoomMembership:
        """Room admin approves a pending join request."""
        room = await self.get_room(room_id)
        await self._require_admin(acting_user, room)
        current = await self.room_repo.get_membership(room.id, user_id)
        if current is None or not current.pending_approval:
            raise InvalidStateError("No pending join request for this user")
        membership = await self.room_repo.set_active(room, user_id, True)
        await publish_best_effort(
            self.publisher,
            room_topic(room.room_id),
            "member_joined",
            {"roomId": room.room_id, "userId": user_id, "role": membership.role.value},
        )
        return membership

    async def promote(self, acting_user: User, target_user_id: str, room_id: str) -> RoomMembership:
        return await self._change_role(acting_user, target_user_id, room_id, RoomRole.ADMIN)

    async def demote(self, acting_user: User, target_user_id: str, room_id: str) -> RoomMembership:
        return await self._change_role(acting_user, target_user_id, room_id, RoomRole.MEMBER)

    async def kick_member(self, acting_user: User, target_user_id: str, room_id: str) -> RoomMembership:
        """Admin soft-removes another member. The owner cannot be kicked."""
        room = await self.get_room(room_id)
        await self._require_admin(acting_user, room)
        if target_user_id == room.owner_id:
            raise AuthorizationError("The room owner cannot be removed")
        target = await self.room_repo.get_membership(room.id, target_user_id)
        if target is None or not target.is_active:
            raise NotFoundError("RoomMembership", f"{room_id}/{target_user_id}")
        membership = await self.room_repo.set_active(room, target_user_id, False)
        logger.info("User %s removed from %s by %s", target_user_id, room.room_id, acting_user.id)
        await publish_best_effort(
            self.publisher,
            room_topic(room.room_id),
            "member_left",
            {"roomId": room.room_id, "userId": target_user_id, "removedBy": acting_user.id},
        )
        return membership

    async def list_members(
        self, room_id: str, acting_user: Optional[User] = None, include_inactive: bool = False
    ) -> list[MemberSummary]:
        room = await self.get_room(room_id, acting_user)
        rows = await self.room_repo.list_members(room.id, include_inactive=include_inactive)
        return [
            MemberSummary(
                user_id=user.id,
                username=user.username,
                display_name=user.display_name,
                role=membership.role,
                is_active=membership.is_active,
                pending_approval=membership.pending_approval,
                joined_at=membership.joined_at,
            )
            for membership, user in rows
        ]

    async def is_active_member(self, room_id: str, user_id: str) -> bool:
        room = await self.room_repo.get_by_slug(room_id)
        if room is None:
            return False
        membership = await self.room_repo.get_membership(room.id, user_id)
        return membership is not None and membership.is_active

    async def _require_can_view(self, acting_user: User, room: Room) -> None:
        if room.privacy != RoomPrivacy.PRIVATE or acting_user.is_moderator or acting_user.id == room.owner_id:
            return
        membership = await self.room_repo.get_membership(room.id, acting_user.id)
        if membership is None or not (membership.is_active or membership.pending_approval):
            raise AuthorizationError("This room is private")

    async def _require_admin(self, acting_user: User, room: Room) -> None:
        if acting_user.is_moderator:
            return
        membership = await self.room_repo.get_membership(room.id, acting_user.id)
        if membership is None or not membership.is_admin:
            raise AuthorizationError("Only room admins can do that")

    async def _change_role(
        self, acting_user: User, target_user_id: str, room_id: str, role: RoomRole
    ) -> RoomMembership:
        room = await self.get_room(room_id)
        await self._require_admin(acting_user, room)
        if (
            role == RoomRole.MEMBER
            and target_user_id == room.owner_id
            and acting_user.id != room.owner_id
            and not acting_user.is_moderator
        ):
            raise AuthorizationError("Only the owner can give up the owner's admin role")

        target = await self.room_repo.get_membership(room.id, target_user_id)
        if target is None or not target.is_active:
            raise NotFoundError("RoomMembership", f"{room_id}/{target_user_id}")
        if target.role == role:
            return target

        membership = await self.room_repo.set_role(room.id, target_user_id, role)
        logger.info(
            "User %s set role of %s in %s to %s", acting_user.id, target_user_id, room.room_id, role.value
        )
        await publish_best_effort(
            self.publisher,
            room_topic(room.room_id),
            "member_role_changed",
            {"roomId": room.room_id, "userId": target_user_id, "role": role.value},
        )
        return membership
