"""Friendship repository implementation.

Undirected uniqueness is enforced by the UNIQUE pair_key column, so a single
INSERT decides between concurrent requests in either direction.
"""
import logging
from typing import Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.common.errors import AlreadyExistsError
from hangout.domain.common.types import generate_id, pair_key, utcnow
from hangout.domain.friends.models import Friendship, FriendshipStatus
from hangout.domain.friends.repositories import FriendshipRepository
from hangout.domain.identity.models import User
from hangout.infra.db.models.friendship import FriendshipModel
from hangout.infra.db.models.user import UserModel

logger = logging.getLogger(__name__)


class FriendshipRepositoryImpl(FriendshipRepository):
    """Friendship repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_pending(self, requester_id: str, recipient_id: str) -> Friendship:
        now = utcnow()
        model = FriendshipModel(
            id=generate_id(),
            requester_id=requester_id,
            recipient_id=recipient_id,
            pair_key=pair_key(requester_id, recipient_id),
            status=FriendshipStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Friendship already exists for pair %s", pair_key(requester_id, recipient_id))
            raise AlreadyExistsError("A friendship or request already exists between these users")
        return model.to_entity()

    async def get_by_id(self, friendship_id: str) -> Optional[Friendship]:
        result = await self.session.execute(
            select(FriendshipModel)
            .where(FriendshipModel.id == friendship_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_between(self, user_a: str, user_b: str) -> Optional[Friendship]:
        result = await self.session.execute(
            select(FriendshipModel)
            .where(FriendshipModel.pair_key == pair_key(user_a, user_b))
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def resolve_pending(
        self, friendship_id: str, status: FriendshipStatus
    ) -> Optional[Friendship]:
        result = await self.session.execute(
            update(FriendshipModel)
            .where(
                FriendshipModel.id == friendship_id,
                FriendshipModel.status == FriendshipStatus.PENDING.value,
            )
            .values(status=status.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_by_id(friendship_id)

    async def delete_accepted_between(self, user_a: str, user_b: str) -> bool:
        result = await self.session.execute(
            delete(FriendshipModel)
            .where(
                FriendshipModel.pair_key == pair_key(user_a, user_b),
                FriendshipModel.status == FriendshipStatus.ACCEPTED.value,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def list_accepted_with_users(self, user_id: str) -> list[tuple[Friendship, User]]:
        counterpart = or_(
            and_(FriendshipModel.requester_id == user_id, UserModel.id == FriendshipModel.recipient_id),
            and_(FriendshipModel.recipient_id == user_id, UserModel.id == FriendshipModel.requester_id),
        )
        result = await self.session.execute(
            select(FriendshipModel, UserModel)
            .join(UserModel, counterpart)
            .where(FriendshipModel.status == FriendshipStatus.ACCEPTED.value)
            .order_by(UserModel.username)
        )
        return [(f.to_entity(), u.to_entity()) for f, u in result.all()]

    async def list_pending_for_recipient(self, user_id: str) -> list[tuple[Friendship, User]]:
        result = await self.session.execute(
            select(FriendshipModel, UserModel)
            .join(UserModel, UserModel.id == FriendshipModel.requester_id)
            .where(
                FriendshipModel.recipient_id == user_id,
                FriendshipModel.status == FriendshipStatus.PENDING.value,
            )
            .order_by(FriendshipModel.created_at.desc())
        )
        return [(f.to_entity(), u.to_entity()) for f, u in result.all()]
