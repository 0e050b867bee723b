"""User repository implementation."""
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.identity.models import User
from hangout.domain.identity.repositories import UserRepository
from hangout.infra.db.models.user import UserModel


class UserRepositoryImpl(UserRepository):
    """User repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        """Create a user row (identity is owned elsewhere; used for seeding and tests)."""
        model = UserModel.from_entity(user)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(UserModel).where(UserModel.id.in_(ids)))
        return {m.id: m.to_entity() for m in result.scalars().all()}

    async def set_last_seen(self, user_id: str, seen_at: datetime) -> bool:
        """Last-write-wins update of last_seen_at. Returns False if the user does not exist."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(last_seen_at=seen_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0
