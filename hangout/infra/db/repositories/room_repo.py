"""Room and membership repository implementation.

Capacity is held in rooms.active_member_count. A seat is claimed with
UPDATE ... WHERE active_member_count < max_members in the same transaction
as the membership write, so concurrent joins can never overshoot max_members.
"""
import logging
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.common.errors import (
    AlreadyExistsError,
    AlreadyMemberError,
    InternalError,
    RoomFullError,
)
from hangout.domain.common.types import generate_id, utcnow
from hangout.domain.identity.models import User
from hangout.domain.rooms.models import Room, RoomMembership, RoomPrivacy, RoomRole
from hangout.domain.rooms.repositories import RoomRepository
from hangout.infra.db.base import violates_constraint
from hangout.infra.db.models.room import RoomMembershipModel, RoomModel
from hangout.infra.db.models.user import UserModel

logger = logging.getLogger(__name__)


class RoomRepositoryImpl(RoomRepository):
    """Room repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_with_owner(self, room: Room) -> tuple[Room, RoomMembership]:
        room_model = RoomModel.from_entity(room)
        membership_model = RoomMembershipModel(
            id=generate_id(),
            user_id=room.owner_id,
            room_id=room.id,
            role=RoomRole.ADMIN.value,
            is_active=True,
            pending_approval=False,
            joined_at=room.created_at,
        )
        self.session.add(room_model)
        self.session.add(membership_model)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if violates_constraint(e, "ix_rooms_room_id", "rooms.room_id"):
                raise AlreadyExistsError(f"Room {room.room_id} already exists")
            logger.error("Creating room %s failed: %s", room.room_id, e.orig)
            raise InternalError(f"Could not create room {room.room_id}")
        return room_model.to_entity(), membership_model.to_entity()

    async def get_by_slug(self, room_id: str) -> Optional[Room]:
        result = await self.session.execute(
            select(RoomModel)
            .where(RoomModel.room_id == room_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_by_id(self, room_pk: str) -> Optional[Room]:
        result = await self.session.execute(
            select(RoomModel)
            .where(RoomModel.id == room_pk)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_public(self, limit: int = 50) -> list[Room]:
        result = await self.session.execute(
            select(RoomModel)
            .where(RoomModel.privacy == RoomPrivacy.PUBLIC.value)
            .order_by(RoomModel.created_at.desc())
            .limit(limit)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def get_membership(self, room_pk: str, user_id: str) -> Optional[RoomMembership]:
        model = await self._membership_model(room_pk, user_id)
        return model.to_entity() if model else None

    async def admit(self, room: Room, user_id: str, pending_approval: bool = False) -> RoomMembership:
        now = utcnow()
        if pending_approval:
            await self._check_capacity(room)
        else:
            await self._claim_seat(room)

        existing = await self._membership_model(room.id, user_id)
        if existing is not None and (existing.is_active or existing.pending_approval):
            await self.session.rollback()
            raise AlreadyMemberError(f"User {user_id} is already a member of room {room.room_id}")

        role = RoomRole.ADMIN if user_id == room.owner_id else RoomRole.MEMBER
        values = dict(
            role=role.value,
            is_active=not pending_approval,
            pending_approval=pending_approval,
            joined_at=now,
            left_at=None,
            updated_at=now,
        )
        try:
            if existing is None:
                self.session.add(
                    RoomMembershipModel(id=generate_id(), user_id=user_id, room_id=room.id, **values)
                )
                await self.session.flush()
                admitted = True
            else:
                # Rejoin after leaving: reactivate the retained row
                result = await self.session.execute(
                    update(RoomMembershipModel)
                    .where(
                        RoomMembershipModel.id == existing.id,
                        RoomMembershipModel.is_active.is_(False),
                        RoomMembershipModel.pending_approval.is_(False),
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                admitted = result.rowcount > 0
        except IntegrityError:
            admitted = False
        if not admitted:
            await self.session.rollback()
            raise AlreadyMemberError(f"User {user_id} is already a member of room {room.room_id}")

        await self.session.commit()
        return await self.get_membership(room.id, user_id)

    async def set_active(self, room: Room, user_id: str, active: bool) -> Optional[RoomMembership]:
        existing = await self._membership_model(room.id, user_id)
        if existing is None:
            return None
        now = utcnow()

        if active:
            if existing.is_active:
                return existing.to_entity()
            await self._claim_seat(room)
            result = await self.session.execute(
                update(RoomMembershipModel)
                .where(RoomMembershipModel.id == existing.id, RoomMembershipModel.is_active.is_(False))
                .values(is_active=True, pending_approval=False, joined_at=now, left_at=None, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Activated concurrently; give the seat back
                await self.session.rollback()
                return await self.get_membership(room.id, user_id)
        else:
            result = await self.session.execute(
                update(RoomMembershipModel)
                .where(RoomMembershipModel.id == existing.id, RoomMembershipModel.is_active.is_(True))
                .values(is_active=False, pending_approval=False, left_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount > 0:
                await self._release_seat(room)
            elif existing.pending_approval:
                await self.session.execute(
                    update(RoomMembershipModel)
                    .where(RoomMembershipModel.id == existing.id)
                    .values(pending_approval=False, left_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )

        await self.session.commit()
        return await self.get_membership(room.id, user_id)

    async def set_role(self, room_pk: str, user_id: str, role: RoomRole) -> Optional[RoomMembership]:
        await self.session.execute(
            update(RoomMembershipModel)
            .where(RoomMembershipModel.room_id == room_pk, RoomMembershipModel.user_id == user_id)
            .values(role=role.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return await self.get_membership(room_pk, user_id)

    async def list_members(
        self, room_pk: str, include_inactive: bool = False
    ) -> list[tuple[RoomMembership, User]]:
        q = (
            select(RoomMembershipModel, UserModel)
            .join(UserModel, UserModel.id == RoomMembershipModel.user_id)
            .where(RoomMembershipModel.room_id == room_pk)
            .order_by(RoomMembershipModel.joined_at)
        )
        if not include_inactive:
            q = q.where(
                or_(
                    RoomMembershipModel.is_active.is_(True),
                    RoomMembershipModel.pending_approval.is_(True),
                )
            )
        result = await self.session.execute(q)
        return [(m.to_entity(), u.to_entity()) for m, u in result.all()]

    async def _membership_model(self, room_pk: str, user_id: str) -> Optional[RoomMembershipModel]:
        result = await self.session.execute(
            select(RoomMembershipModel)
            .where(RoomMembershipModel.room_id == room_pk, RoomMembershipModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _check_capacity(self, room: Room) -> None:
        result = await self.session.execute(
            select(RoomModel.active_member_count, RoomModel.max_members).where(RoomModel.id == room.id)
        )
        count, max_members = result.one()
        if count >= max_members:
            raise RoomFullError(room.room_id, max_members)

    async def _claim_seat(self, room: Room) -> None:
        """Take one seat or raise RoomFullError. Leaves the transaction open on success."""
        result = await self.session.execute(
            update(RoomModel)
            .where(
                RoomModel.id == room.id,
                RoomModel.active_member_count < RoomModel.max_members,
            )
            .values(active_member_count=RoomModel.active_member_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            logger.info("Room %s is full", room.room_id)
            raise RoomFullError(room.room_id, room.max_members)

    async def _release_seat(self, room: Room) -> None:
        await self.session.execute(
            update(RoomModel)
            .where(RoomModel.id == room.id, RoomModel.active_member_count > 0)
            .values(active_member_count=RoomModel.active_member_count - 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
